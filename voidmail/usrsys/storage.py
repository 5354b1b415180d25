"""This module contains the storage class for the user system: `UserStore`.
"""
import logging
from typing import Dict, List
from uuid import uuid4

from ..answer import Answer, Failure
from ..utils.asec import new_salt, password_check, password_hashing
from ..utils.storage import (
    CommonStorage,
    CommonStorageRecordWrapper,
    DataclassCommonStorageAdapter,
)
from .usr import UserRecord, check_user_details


class UserStore(CommonStorageRecordWrapper[UserRecord]):
    """
    A `voidmail.utils.storage.RecordStorage` for `voidmail.usrsys.usr.UserRecord`, keyed by email address.

    Related:

    - `voidmail.storagehub.StorageHub.user_store`
    """

    __logger = logging.getLogger("voidmail.usrsys.UserStore")

    def __init__(self, common_storage: CommonStorage) -> None:
        super().__init__(common_storage, DataclassCommonStorageAdapter(UserRecord))

    async def register(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> Answer[UserRecord]:
        """Create a new user, then save it. The new user is not logged in.

        Fails with `Failure.ALREADY_EXISTS` before checking anything else if the email is taken,
        or `Failure.INVALID_DETAILS` with all the problems in the message.

        ..note:: Two registrations for the same email could run at the same time.
            The final insert is `store_if_absent`, so only one of them gets the email.

        May raise `voidmail.errors.PasswordHashingError`.
        """
        if await self.exists(email):
            self.__logger.warning("registration refused, user exists: %s", email)
            return Answer.fail(Failure.ALREADY_EXISTS, email)
        problems = check_user_details(first_name, last_name, email, password)
        if problems:
            self.__logger.warning("registration refused, invalid details: %s", email)
            return Answer.fail(Failure.INVALID_DETAILS, "; ".join(problems))
        salt = new_salt()
        rec = UserRecord(
            id=uuid4().hex,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=await password_hashing(password, salt),
            salt=salt,
            logged_in=False,
        )
        del password
        if not await self.store_if_absent(rec):
            self.__logger.warning("registration lost a race, user exists: %s", email)
            return Answer.fail(Failure.ALREADY_EXISTS, email)
        self.__logger.info("user registered: %s", email)
        return Answer.ok(rec)

    async def login(self, email: str, password: str) -> Answer[UserRecord]:
        """Check the user password.

        ..note:: It does not set the session flag, see `UserStore.set_logged_in`.
        """
        rec = await self.get(email)
        if rec is None:
            self.__logger.warning("login refused, user not found: %s", email)
            return Answer.fail(Failure.NOT_FOUND, email)
        if not await password_check(password, rec.salt, rec.password_hash):
            self.__logger.warning("login refused, invalid password: %s", email)
            return Answer.fail(Failure.INVALID_CREDENTIALS, email)
        self.__logger.info("user authenticated: %s", email)
        return Answer.ok(rec)

    async def set_logged_in(self, email: str, status: bool) -> bool:
        """Set the session flag of the user. Return `False` (and do nothing else) if the user does not exist."""
        rec = await self.patch(email, {"logged_in": status})
        if rec is None:
            self.__logger.warning("user not found for setting logged-in status: %s", email)
            return False
        return True

    async def exists(self, email: str) -> bool:
        return (await self.get(email)) is not None

    async def logged_in_users(self) -> List[UserRecord]:
        """Return all users with the session flag set."""
        return [rec async for rec in self.find({"logged_in": True})]

    async def restore(self, table: Dict[str, UserRecord]) -> None:
        await super().restore(table)
        self.__logger.info("user table restored, total users: %d", len(table))
