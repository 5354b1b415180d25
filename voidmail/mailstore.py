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

"""
`EmailStore` stores emails by their identities.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Literal

from .answer import Answer, Failure
from .usrsys.storage import UserStore
from .utils.storage import (
    CommonStorage,
    CommonStorageRecordWrapper,
    DataclassCommonStorageAdapter,
)

SUBJECT_MAX_LENGTH = 255

DISPLAY_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
"""The human-readable timestamp form, searched along with the ISO form."""

Scope = Literal["sent", "received"]


@dataclass
class EmailRecord(object):
    """A record for storing email.

    Attributes:
        id: `str`. 64 lowercase hex characters, see `email_id`.
        sender: `str`. The sender address.
        recipient: `str`. The recipient address.
        subject: `str`.
        content: `str`.
        timestamp: `datetime`. The local time the email is created.
        viewed: `bool`. If the recipient marked the email as viewed.

    ..note:: Only `viewed` changes after the email is created.
    """

    id: str
    sender: str
    recipient: str
    subject: str
    content: str
    timestamp: datetime
    viewed: bool = False

    def counterpart(self, scope: Scope) -> str:
        """The address on the other side: the recipient of a sent email, the sender of a received one."""
        return self.recipient if scope == "sent" else self.sender

    def matches(self, query: str, scope: Scope) -> bool:
        """Case-insensitive substring match against the subject, the counterpart and the timestamp."""
        query = query.lower()
        fields = (
            self.subject,
            self.counterpart(scope),
            self.timestamp.strftime(DISPLAY_TIMESTAMP_FORMAT),
            self.timestamp.isoformat(),
        )
        return any(query in f.lower() for f in fields)


def email_id(
    sender: str, recipient: str, subject: str, content: str, timestamp: datetime
) -> str:
    """Return the identity of an email: SHA-256 of the fields and the creation time, in hex."""
    digest = hashlib.sha256()
    for part in (sender, recipient, subject, content, timestamp.isoformat()):
        digest.update(part.encode("utf-8"))
    return digest.hexdigest()


def check_email_details(
    sender: str, recipient: str, subject: str, content: str
) -> List[str]:
    """Check the fields of a new email. Return all the problems found."""
    problems = []
    if not sender or not sender.strip():
        problems.append("Sender cannot be blank")
    if not recipient or not recipient.strip():
        problems.append("Recipient cannot be blank")
    if not subject or not subject.strip():
        problems.append("Subject cannot be blank")
    elif len(subject) > SUBJECT_MAX_LENGTH:
        problems.append(
            "Subject must be at most {} characters".format(SUBJECT_MAX_LENGTH)
        )
    if not content or not content.strip():
        problems.append("Content cannot be blank")
    return problems


class EmailStore(CommonStorageRecordWrapper[EmailRecord]):
    """Interface for email storing.

    Listing and searching are scans over all stored emails, in insertion order.

    ..note:: When the user table is empty, `send` does not check if the sender and the recipient exist.
        It's kept for bootstrapping and testing, don't rely on it.

    Related:

    - `voidmail.usrsys.storage.UserStore` Only read, for checking addresses.
    """

    __logger = logging.getLogger("voidmail.mailstore.EmailStore")

    def __init__(self, common_storage: CommonStorage, user_store: UserStore) -> None:
        self.user_store = user_store
        super().__init__(common_storage, DataclassCommonStorageAdapter(EmailRecord))

    async def check_address(self, address: str) -> bool:
        """Check if `address` is a known user, always `True` if there is no user at all."""
        if await self.user_store.count() == 0:
            return True
        return await self.user_store.exists(address)

    async def send(
        self, sender: str, recipient: str, subject: str, content: str
    ) -> Answer[str]:
        """Create and store a new email. The answer value is the email id.

        Fails with `Failure.USER_NOT_FOUND` naming the missing address (sender checked first),
        or `Failure.INVALID_DETAILS`.
        """
        for address in (sender, recipient):
            if not await self.check_address(address):
                self.__logger.warning("email refused, user not found: %s", address)
                return Answer.fail(Failure.USER_NOT_FOUND, address)
        problems = check_email_details(sender, recipient, subject, content)
        if problems:
            self.__logger.warning(
                "email refused, invalid details: %s -> %s", sender, recipient
            )
            return Answer.fail(Failure.INVALID_DETAILS, "; ".join(problems))
        timestamp = datetime.now()
        rec = EmailRecord(
            id=email_id(sender, recipient, subject, content, timestamp),
            sender=sender,
            recipient=recipient,
            subject=subject,
            content=content,
            timestamp=timestamp,
            viewed=False,
        )
        await self.store(rec)
        self.__logger.info("email sent: %s -> %s (%s)", sender, recipient, rec.id)
        return Answer.ok(rec.id)

    async def list_received(self, email: str) -> List[EmailRecord]:
        return [rec async for rec in self.find({"recipient": email})]

    async def list_sent(self, email: str) -> List[EmailRecord]:
        return [rec async for rec in self.find({"sender": email})]

    async def list_all(self, email: str) -> List[EmailRecord]:
        """Emails sent by `email` followed by emails received by it."""
        return (await self.list_sent(email)) + (await self.list_received(email))

    async def search(self, email: str, query: str, scope: Scope) -> List[EmailRecord]:
        """Search emails sent or received by `email`. An empty list means nothing matches."""
        if scope == "sent":
            emails = await self.list_sent(email)
        else:
            emails = await self.list_received(email)
        return [rec for rec in emails if rec.matches(query, scope)]

    async def mark_viewed(self, id: str) -> Answer[EmailRecord]:
        """Mark the email as viewed. Marking a viewed email again is fine."""
        rec = await self.patch(id, {"viewed": True})
        if rec is None:
            self.__logger.warning("email not found: %s", id)
            return Answer.fail(Failure.EMAIL_NOT_FOUND, id)
        self.__logger.info("email marked as viewed: %s", id)
        return Answer.ok(rec)

    async def restore(self, table: Dict[str, EmailRecord]) -> None:
        await super().restore(table)
        self.__logger.info("email table restored, total emails: %d", len(table))
