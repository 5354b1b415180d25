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
"""The connection acceptor for VoidMail: `MailServer`.
"""
import asyncio
import logging
from ssl import SSLContext
from typing import Optional

from . import wire
from .dispatcher import CommandDispatcher


class MailServer(object):
    """Accept connections and serve the VoidMail protocol on them.

    Each accepted connection runs in its own task:
    read one line, dispatch it, write the response back, until the peer closes the connection.
    Requests on one connection are handled one at a time, in order.

    ..caution:: There is no read timeout and no limit on connections.
        An idle client keeps its task forever.

    Related:

    - `voidmail.server.dispatcher.CommandDispatcher`
    - [Streams - asyncio documentation](https://docs.python.org/3/library/asyncio-stream.html)
    """

    __logger = logging.getLogger("voidmail.server.MailServer")

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        *,
        hostname: str = "127.0.0.1",
        port: int = 12345,
        ssl_context: Optional[SSLContext] = None,
    ) -> None:
        self.dispatcher = dispatcher
        """`CommandDispatcher`. Handles every request line."""
        self.hostname = hostname
        """`str`. The address to bind."""
        self._port = port
        self.ssl_context = ssl_context
        """`Optional[ssl.SSLContext]`. Connections are wrapped in TLS if it's set."""
        self._server: Optional[asyncio.AbstractServer] = None
        super().__init__()

    @property
    def port(self) -> int:
        """The port listened on. It's the real port after `start` even if 0 is given."""
        if self._server and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._port

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> None:
        """Bind the listening socket and start accepting connections."""
        if self.is_serving:
            self.__logger.warning("server is already running")
            return
        self._server = await asyncio.start_server(
            self.handle_connection,
            host=self.hostname,
            port=self._port,
            ssl=self.ssl_context,
        )
        self.__logger.info(
            "server started listening on %s:%d%s",
            self.hostname,
            self.port,
            " (TLS)" if self.ssl_context else "",
        )

    def stop(self) -> None:
        """Stop accepting new connections.

        ..note:: Connections already accepted are not closed, they end when their peers leave.
        """
        if self._server is None:
            return
        self._port = self.port
        self._server.close()
        self._server = None
        self.__logger.info("server stopped")

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """The loop for one connection: receive, dispatch, send."""
        peer = writer.get_extra_info("peername")
        self.__logger.info("client connected: %s", peer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                request = line.decode(wire.ENCODING, errors="replace")
                response = await self.dispatcher.dispatch(request)
                writer.write((response + "\n").encode(wire.ENCODING))
                await writer.drain()
        except (OSError, asyncio.IncompleteReadError, ValueError) as e:
            self.__logger.warning("client error %s: %s", peer, e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
            self.__logger.info("client disconnected: %s", peer)
