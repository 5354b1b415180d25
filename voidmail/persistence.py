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
"""`PersistenceGateway`: snapshots of the user table and the email table in JSON files.

Each table is a JSON object from key (email address or email id) to the full record.
`{}` is an empty table. Timestamps are ISO-8601 local date-time strings.

The gateway only works on snapshots given by the caller, it never touches the stores.
"""
import json
import logging
import os
import os.path
import tempfile
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, TypeVar

from .errors import LoadFailed, SaveFailed
from .mailstore import EmailRecord
from .usrsys.usr import UserRecord

T = TypeVar("T")

USERS_FILE_NAME = "users.json"
EMAILS_FILE_NAME = "emails.json"


USER_FIELDS: Dict[str, type] = {
    "id": str,
    "first_name": str,
    "last_name": str,
    "email": str,
    "password_hash": str,
    "salt": str,
    "logged_in": bool,
}

EMAIL_FIELDS: Dict[str, type] = {
    "id": str,
    "sender": str,
    "recipient": str,
    "subject": str,
    "content": str,
    "timestamp": str,
    "viewed": bool,
}


def check_fields(d: Any, fields: Dict[str, type]) -> None:
    """Raise `TypeError` if `d` is not an object with exactly `fields` of the given types."""
    if not isinstance(d, dict):
        raise TypeError("record should be a JSON object")
    if set(d) != set(fields):
        raise TypeError("record fields should be {}".format(sorted(fields)))
    for name, t in fields.items():
        if not isinstance(d[name], t):
            raise TypeError("field {} should be {}".format(name, t.__name__))


def user2json(rec: UserRecord) -> Dict[str, Any]:
    return asdict(rec)


def json2user(d: Dict[str, Any]) -> UserRecord:
    check_fields(d, USER_FIELDS)
    return UserRecord(**d)


def email2json(rec: EmailRecord) -> Dict[str, Any]:
    d = asdict(rec)
    d["timestamp"] = rec.timestamp.isoformat()
    return d


def json2email(d: Dict[str, Any]) -> EmailRecord:
    check_fields(d, EMAIL_FIELDS)
    d = dict(d)
    d["timestamp"] = datetime.fromisoformat(d["timestamp"])
    return EmailRecord(**d)


class PersistenceGateway(object):
    """Save, load and clear the snapshot files in `data_dir`.

    ..caution:: `save_all` writes two files one after another, there is no transaction across them.
        If the second write fails, `voidmail.errors.SaveFailed.written` tells the file already written.
    """

    __logger = logging.getLogger("voidmail.persistence.PersistenceGateway")

    def __init__(self, data_dir: str) -> None:
        self.data_dir = data_dir
        """`str`. The directory for snapshot files."""
        super().__init__()

    @property
    def users_path(self) -> str:
        return os.path.join(self.data_dir, USERS_FILE_NAME)

    @property
    def emails_path(self) -> str:
        return os.path.join(self.data_dir, EMAILS_FILE_NAME)

    def prepare(self) -> None:
        """Create the data directory, and empty snapshot files if they are missing."""
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            raise SaveFailed(
                "could not create {}".format(self.data_dir), self.data_dir
            ) from e
        for path in (self.users_path, self.emails_path):
            if not os.path.exists(path):
                self._write(path, {})
                self.__logger.info("created and initialized file: %s", path)

    def _write(self, path: str, doc: Dict[str, Any]) -> None:
        """Write `doc` to `path` through a temporary file, so the file is either old or new, never half written."""
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=os.path.dirname(path) or ".", prefix=".tmp-"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise SaveFailed("failed to save {}".format(path), path) from e

    def _read(
        self, path: str, convert: Callable[[Dict[str, Any]], T], key_field: str
    ) -> Dict[str, T]:
        """Load the table in `path`. Every record must be filed under its own `key_field`, or the whole file is malformed."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError:
            self.__logger.warning("snapshot file not found, load as empty: %s", path)
            return {}
        except (OSError, UnicodeDecodeError) as e:
            raise LoadFailed("failed to load {}".format(path), path) from e
        if not text.strip():
            return {}
        try:
            doc = json.loads(text)
            if not isinstance(doc, dict):
                raise ValueError("snapshot should be a JSON object")
            table = {k: convert(v) for k, v in doc.items()}
            for k, rec in table.items():
                if getattr(rec, key_field) != k:
                    raise ValueError(
                        "record under {!r} has {} {!r}".format(
                            k, key_field, getattr(rec, key_field)
                        )
                    )
            return table
        except (ValueError, TypeError, KeyError) as e:
            self.__logger.warning(
                "malformed snapshot file, load as empty: %s (%s)", path, e
            )
            return {}

    def save_users(self, table: Dict[str, UserRecord]) -> None:
        self._write(self.users_path, {k: user2json(v) for k, v in table.items()})
        self.__logger.info("saved %d users to %s", len(table), self.users_path)

    def save_emails(self, table: Dict[str, EmailRecord]) -> None:
        self._write(self.emails_path, {k: email2json(v) for k, v in table.items()})
        self.__logger.info("saved %d emails to %s", len(table), self.emails_path)

    def save_all(
        self, users: Dict[str, UserRecord], emails: Dict[str, EmailRecord]
    ) -> None:
        self.save_users(users)
        try:
            self.save_emails(emails)
        except SaveFailed as e:
            raise SaveFailed(
                "failed to save {}, {} is already saved".format(
                    self.emails_path, self.users_path
                ),
                e.path,
                written=[self.users_path],
            ) from e

    def load_users(self) -> Dict[str, UserRecord]:
        table = self._read(self.users_path, json2user, "email")
        self.__logger.info("loaded %d users from %s", len(table), self.users_path)
        return table

    def load_emails(self) -> Dict[str, EmailRecord]:
        table = self._read(self.emails_path, json2email, "id")
        self.__logger.info("loaded %d emails from %s", len(table), self.emails_path)
        return table

    def clear_users(self) -> None:
        self._write(self.users_path, {})

    def clear_emails(self) -> None:
        self._write(self.emails_path, {})

    def clear_all(self) -> None:
        written: List[str] = []
        for path in (self.users_path, self.emails_path):
            try:
                self._write(path, {})
            except SaveFailed as e:
                raise SaveFailed(
                    "failed to clear {}".format(path), path, written=written
                ) from e
            written.append(path)
