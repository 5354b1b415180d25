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
import asyncio
from typing import List

import pytest
from nacl.pwhash import argon2id
from voidmail import VoidMail
from voidmail.server.dispatcher import CommandDispatcher
from voidmail.storagehub import StorageHub
from voidmail.utils import asec


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    # the interactive limits cost ~64MiB per hash, tests don't need that
    monkeypatch.setattr(asec, "OPSLIMIT", argon2id.OPSLIMIT_MIN)
    monkeypatch.setattr(asec, "MEMLIMIT", argon2id.MEMLIMIT_MIN)


@pytest.fixture
def storage_hub():
    return StorageHub()


@pytest.fixture
def user_store(storage_hub):
    return storage_hub.user_store


@pytest.fixture
def email_store(storage_hub):
    return storage_hub.email_store


@pytest.fixture
def dispatcher(storage_hub):
    return CommandDispatcher(storage_hub.user_store, storage_hub.email_store)


@pytest.fixture
async def voidmail(tmp_path):
    instance = VoidMail(
        hostname="127.0.0.1",
        port=0,
        data_dir=str(tmp_path / "data"),
        debug=True,
    )
    try:
        await instance.start()
        yield instance
    finally:
        instance.stop()


class LineClient(object):
    """A client speaking the line protocol, for tests."""

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self.reader = reader
        self.writer = writer

    @classmethod
    async def connect(cls, port: int) -> "LineClient":
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        return cls(reader, writer)

    async def send_line(self, line: str) -> None:
        self.writer.write((line + "\n").encode("utf-8"))
        await self.writer.drain()

    async def receive_line(self) -> str:
        data = await asyncio.wait_for(self.reader.readline(), 5)
        return data.decode("utf-8").rstrip("\n")

    async def request(self, line: str) -> str:
        await self.send_line(line)
        return await self.receive_line()

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError:
            pass


@pytest.fixture
async def connect(voidmail):
    """Return a function opening a new client to the `voidmail` fixture. Clients are closed after the test."""
    clients: List[LineClient] = []

    async def _connect() -> LineClient:
        client = await LineClient.connect(voidmail.port)
        clients.append(client)
        return client

    try:
        yield _connect
    finally:
        for client in clients:
            await client.close()
