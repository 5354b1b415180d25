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
"""The vocabulary of the VoidMail wire protocol.

Every request and response is one UTF-8 line. Fields in the line are joined by `SEP`,
the first field is always the command name.
"""
from typing import Dict, Tuple

SEP = "##"
"""The separator token between fields."""

ENCODING = "utf-8"

# COMMANDS
REGISTER = "REGISTER"
LOGIN = "LOGIN"
LOGOUT = "LOGOUT"
SEND_EMAIL = "SENDEMAIL"
GET_EMAILS = "GETEMAILS"
MARK_AS_VIEWED = "MARK_AS_VIEWED"
SEARCH_RECEIVED = "SEARCH_RECEIVED"
SEARCH_SENT = "SEARCH_SENT"

# MAILBOXES
INBOX = "INBOX"
SENT = "SENT"

# RESPONSE CODES
SUCCESS = "SUCCESS"
FAILURE = "FAILURE"
INVALID_DETAILS = "INVALID_DETAILS"
USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
NO_USER = "NO_USER"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
RECIPIENT_NOT_FOUND = "RECIPIENT_NOT_FOUND"
NO_EMAILS = "NO_EMAILS"

# WRONG REQUEST CODES
INVALID_FORMAT = "INVALID_FORMAT"
UNKNOWN_COMMAND = "UNKNOWN_COMMAND"

COMMAND_ARITY: Dict[str, Tuple[int, ...]] = {
    REGISTER: (4,),
    LOGIN: (2,),
    LOGOUT: (1,),
    SEND_EMAIL: (4,),
    GET_EMAILS: (1, 2),
    MARK_AS_VIEWED: (1,),
    SEARCH_RECEIVED: (2,),
    SEARCH_SENT: (2,),
}
"""Accepted numbers of arguments (fields after the command name) for each command."""


def join(*fields: str) -> str:
    """Join `fields` into one line, without the line ending."""
    return SEP.join(fields)


def split(line: str) -> Tuple[str, ...]:
    """Split one line into fields. Empty fields are kept."""
    return tuple(line.strip().split(SEP))


def encode_bool(value: bool) -> str:
    return "true" if value else "false"
