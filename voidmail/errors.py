# Copyright (C) 2021 The VoidMail Contributors
#
# This file is part of VoidMail.
#
# VoidMail is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# VoidMail is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with VoidMail.  If not, see <http://www.gnu.org/licenses/>.
"""Exceptions for infrastructure faults.

Expected outcomes, like a duplicate registration or a wrong password, are not exceptions in VoidMail.
They are reported as `voidmail.answer.Answer`.
"""
from typing import Optional


class VoidMailError(Exception):
    """The base of all VoidMail exceptions."""

    pass


class PasswordHashingError(VoidMailError):
    """The password hashing primitive failed. It's a configuration fault, never a wrong password."""

    pass


class SaveFailed(VoidMailError):
    """Writing a snapshot file failed.

    Attributes:
        path: `str`. The file could not be written.
        written: `List[str]`. Files already written before the failure, they are not rolled back.
    """

    def __init__(self, message: str, path: str, written: Optional[list] = None) -> None:
        self.path = path
        self.written = written if written else []
        super().__init__(message)


class LoadFailed(VoidMailError):
    """Reading a snapshot file failed because of I/O, not because of its content.

    Attributes:
        path: `str`. The file could not be read.
    """

    def __init__(self, message: str, path: str) -> None:
        self.path = path
        super().__init__(message)
