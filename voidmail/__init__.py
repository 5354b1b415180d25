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

import logging
import ssl
from asyncio import get_running_loop
from typing import List, Optional

from .errors import LoadFailed, SaveFailed
from .persistence import PersistenceGateway
from .server import MailServer
from .server.dispatcher import CommandDispatcher
from .storagehub import StorageHub
from .usrsys.usr import UserRecord
from .utils import global_executor


class VoidMail(object):
    """The entry of VoidMail. This class stores configuration and tools to keep other components running.

    VoidMail splits its feature units as reusable components:

    - User System (`voidmail.usrsys`)
    - Email Store (`voidmail.mailstore`)
    - Snapshot files (`voidmail.persistence`)
    - Protocol server (`voidmail.server`)

    This class is also provided as a bridge among different components.

    .. caution:: `load` replaces the tables entirely.
        Stop the server first if clients should not see the tables change under them.
    """

    def __init__(
        self,
        *,
        hostname: str = "127.0.0.1",
        port: Optional[int] = None,
        data_dir: str = "data",
        certfile: Optional[str] = None,
        keyfile: Optional[str] = None,
        debug: bool = False,
    ) -> None:
        if port is None:
            port = 12345
        self.debug = debug
        """`bool`. Log everything under the `voidmail` logger, down to `logging.DEBUG`."""
        if debug:
            logging.getLogger("voidmail").setLevel(logging.DEBUG)
        self.hostname = hostname
        """`str`. The address the server binds."""
        self.data_dir = data_dir
        """`str`. The directory of the snapshot files."""
        self.storage_hub = StorageHub()
        """`voidmail.storagehub.StorageHub`. The tables of this instance."""
        self.persistence = PersistenceGateway(data_dir)
        """`voidmail.persistence.PersistenceGateway`. Reads and writes snapshot files."""
        self.dispatcher = CommandDispatcher(
            self.storage_hub.user_store, self.storage_hub.email_store
        )
        """`voidmail.server.dispatcher.CommandDispatcher`."""
        self.server = MailServer(
            self.dispatcher,
            hostname=hostname,
            port=port,
            ssl_context=self.create_ssl_context(certfile, keyfile),
        )
        """`voidmail.server.MailServer`. The server for this instance."""
        super().__init__()

    @staticmethod
    def create_ssl_context(
        certfile: Optional[str], keyfile: Optional[str]
    ) -> Optional[ssl.SSLContext]:
        """Return a server-side TLS context if both `certfile` and `keyfile` are given, otherwise `None`."""
        if not (certfile and keyfile):
            return None
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(certfile, keyfile)
        return context

    @property
    def port(self) -> int:
        "The server port."
        return self.server.port

    async def start(self):
        """Start the engine!

        Related:

        - `voidmail.server.MailServer.start`
        """
        await self.server.start()

    def stop(self):
        """Stop accepting connections.

        Related:

        - `voidmail.server.MailServer.stop`
        """
        self.server.stop()

    async def _in_executor(self, f, *args):
        return await get_running_loop().run_in_executor(global_executor.get(), f, *args)

    async def load(self) -> None:
        """Replace both tables with the snapshot files. Missing files are created empty.

        May raise `voidmail.errors.LoadFailed`.
        """
        try:
            await self._in_executor(self.persistence.prepare)
        except SaveFailed as e:
            raise LoadFailed(
                "could not prepare {}".format(self.data_dir), e.path
            ) from e
        users = await self._in_executor(self.persistence.load_users)
        emails = await self._in_executor(self.persistence.load_emails)
        await self.storage_hub.user_store.restore(users)
        await self.storage_hub.email_store.restore(emails)

    async def save(self) -> None:
        """Write both tables to the snapshot files. May raise `voidmail.errors.SaveFailed`."""
        users = await self.storage_hub.user_store.snapshot()
        emails = await self.storage_hub.email_store.snapshot()
        await self._in_executor(self.persistence.save_all, users, emails)

    async def save_users(self) -> None:
        users = await self.storage_hub.user_store.snapshot()
        await self._in_executor(self.persistence.save_users, users)

    async def save_emails(self) -> None:
        emails = await self.storage_hub.email_store.snapshot()
        await self._in_executor(self.persistence.save_emails, emails)

    async def clear(self) -> None:
        """Empty both snapshot files. The tables in memory are not touched."""
        await self._in_executor(self.persistence.clear_all)

    async def logged_in_users(self) -> List[UserRecord]:
        return await self.storage_hub.user_store.logged_in_users()
