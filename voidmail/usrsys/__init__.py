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

"""The user system for VoidMail.

User system process all the things about users:

- User records and the rules for registration (`usr`)
- The user table: registration, authentication and session flags (`storage`)

## Passwords
The raw password only lives during a registration or a login request.
The user table keeps a salted hash (`UserRecord.password_hash`) and the salt (`UserRecord.salt`), see `voidmail.utils.asec`.
"""
