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
"""`CommandDispatcher`: turns one request line into one response line.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from ..answer import Failure
from ..mailstore import EmailRecord, EmailStore, Scope
from ..usrsys.storage import UserStore
from . import wire

GENERIC_FAILURE_MESSAGE = "Internal server error"
"""The message for unexpected faults. Details are only written to the log."""


class CommandDispatcher(object):
    """The request handler of the VoidMail protocol.

    The dispatcher keeps nothing between requests, every line is a new request.
    A command `FOO` is handled by the method `cmd_FOO`, which receives the fields after the command name.
    The number of fields is checked against `wire.COMMAND_ARITY` before calling it.

    `dispatch` always returns a response line:

    - an unknown command gives `UNKNOWN_COMMAND`
    - a wrong number of fields gives `<COMMAND>##INVALID_FORMAT`
    - a refused operation gives its specific code
    - an unexpected exception is logged and gives `<COMMAND>##FAILURE##<message>`

    Related:

    - `voidmail.server.wire` The vocabulary.
    - `voidmail.server.MailServer` Calls `dispatch` for each line received.
    """

    __logger = logging.getLogger("voidmail.server.CommandDispatcher")

    def __init__(self, user_store: UserStore, email_store: EmailStore) -> None:
        self.user_store = user_store
        self.email_store = email_store
        super().__init__()

    def find_handler(self, command: str) -> Optional[Callable[..., Awaitable[str]]]:
        if command not in wire.COMMAND_ARITY:
            return None
        return getattr(self, "cmd_{}".format(command))

    async def dispatch(self, line: str) -> str:
        """Handle one request line (without the line ending) and return the response line."""
        fields = wire.split(line)
        command = fields[0].upper()
        handler = self.find_handler(command)
        if not handler:
            self.__logger.warning("unknown command: %r", fields[0][:32])
            return wire.UNKNOWN_COMMAND
        args = fields[1:]
        if len(args) not in wire.COMMAND_ARITY[command]:
            return wire.join(command, wire.INVALID_FORMAT)
        try:
            return await handler(*args)
        except Exception as e:
            self.__logger.exception("command %s failed", command, exc_info=e)
            return wire.join(command, wire.FAILURE, GENERIC_FAILURE_MESSAGE)

    async def cmd_REGISTER(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> str:
        answer = await self.user_store.register(first_name, last_name, email, password)
        if answer.success:
            return wire.join(wire.REGISTER, wire.SUCCESS)
        elif answer.failure is Failure.ALREADY_EXISTS:
            return wire.join(wire.REGISTER, wire.USER_ALREADY_EXISTS)
        else:
            return wire.join(
                wire.REGISTER, wire.INVALID_DETAILS, answer.message or ""
            )

    async def cmd_LOGIN(self, email: str, password: str) -> str:
        answer = await self.user_store.login(email, password)
        if answer.success:
            await self.user_store.set_logged_in(email, True)
            return wire.join(wire.LOGIN, wire.SUCCESS)
        elif answer.failure is Failure.NOT_FOUND:
            return wire.join(wire.LOGIN, wire.NO_USER)
        else:
            return wire.join(wire.LOGIN, wire.INVALID_CREDENTIALS)

    async def cmd_LOGOUT(self, email: str) -> str:
        if await self.user_store.set_logged_in(email, False):
            return wire.join(wire.LOGOUT, wire.SUCCESS)
        return wire.join(wire.LOGOUT, wire.NO_USER)

    async def cmd_SENDEMAIL(
        self, sender: str, recipient: str, subject: str, content: str
    ) -> str:
        answer = await self.email_store.send(sender, recipient, subject, content)
        if answer.success:
            return wire.join(wire.SEND_EMAIL, wire.SUCCESS, answer.value)
        elif answer.failure is Failure.USER_NOT_FOUND:
            return wire.join(wire.SEND_EMAIL, wire.RECIPIENT_NOT_FOUND)
        else:
            return wire.join(
                wire.SEND_EMAIL, wire.INVALID_DETAILS, answer.message or ""
            )

    async def cmd_GETEMAILS(self, email: str, mailbox: str = wire.INBOX) -> str:
        mailbox = mailbox.upper()
        if mailbox not in (wire.INBOX, wire.SENT):
            return wire.join(wire.GET_EMAILS, wire.INVALID_FORMAT)
        if not await self.email_store.check_address(email):
            return wire.join(wire.GET_EMAILS, wire.NO_USER)
        if mailbox == wire.SENT:
            emails = await self.email_store.list_sent(email)
            scope = "sent"
        else:
            emails = await self.email_store.list_received(email)
            scope = "received"
        fields = [wire.GET_EMAILS, wire.SUCCESS]
        if not emails:
            fields.append(wire.NO_EMAILS)
        for rec in emails:
            fields.extend(
                (
                    rec.id,
                    rec.counterpart(scope),
                    rec.subject,
                    rec.content,
                    rec.timestamp.isoformat(),
                    wire.encode_bool(rec.viewed),
                )
            )
        return wire.join(*fields)

    async def cmd_MARK_AS_VIEWED(self, id: str) -> str:
        answer = await self.email_store.mark_viewed(id)
        if answer.success:
            return wire.join(wire.MARK_AS_VIEWED, wire.SUCCESS)
        return wire.join(wire.MARK_AS_VIEWED, wire.FAILURE, "Email not found")

    async def _search(self, command: str, email: str, query: str, scope: Scope) -> str:
        emails = await self.email_store.search(email, query, scope)
        return wire.join(command, wire.SUCCESS, *self.search_fields(emails, scope))

    @staticmethod
    def search_fields(emails: List[EmailRecord], scope: Scope) -> List[str]:
        if not emails:
            return [wire.NO_EMAILS]
        fields = []
        for rec in emails:
            fields.extend(
                (
                    rec.id,
                    rec.counterpart(scope),
                    rec.subject,
                    rec.timestamp.isoformat(),
                    wire.encode_bool(rec.viewed),
                )
            )
        return fields

    async def cmd_SEARCH_RECEIVED(self, email: str, query: str) -> str:
        return await self._search(wire.SEARCH_RECEIVED, email, query, "received")

    async def cmd_SEARCH_SENT(self, email: str, query: str) -> str:
        return await self._search(wire.SEARCH_SENT, email, query, "sent")
