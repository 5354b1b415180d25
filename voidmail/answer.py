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
"""`Answer` and `Failure`: the results of store operations.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Failure(Enum):
    """Expected reasons for an operation to be refused."""

    ALREADY_EXISTS = "already_exists"
    INVALID_DETAILS = "invalid_details"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_NOT_FOUND = "user_not_found"
    EMAIL_NOT_FOUND = "email_not_found"


@dataclass
class Answer(Generic[T]):
    """The answer of a store operation.

    Attributes:
        success: `bool`. The result of the operation.
        value: `Optional[T]`. The payload of a successful operation.
        failure: `Optional[Failure]`. Why the operation is refused.
        message: `Optional[str]`. Human-readable details about the failure.

    Typical usage:

    ````python
    answer = await user_store.login(email, password)
    if answer.success:
        ...
    elif answer.failure is Failure.INVALID_CREDENTIALS:
        ...
    ````
    """

    success: bool
    value: Optional[T] = None
    failure: Optional[Failure] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Answer[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, failure: Failure, message: Optional[str] = None) -> "Answer[T]":
        return cls(success=False, failure=failure, message=message)
