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
import logging
import re
import ssl

import pytest
import trustme
from conftest import LineClient
from voidmail import VoidMail
from voidmail.server import MailServer
from voidmail.server.dispatcher import CommandDispatcher


class TestMailServer:
    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, connect):
        client = await connect()
        assert (
            await client.request("REGISTER##Alice##Smith##alice@voidmail.com##Secret1!")
            == "REGISTER##SUCCESS"
        )
        assert (
            await client.request("LOGIN##alice@voidmail.com##Secret1!")
            == "LOGIN##SUCCESS"
        )
        assert (
            await client.request("REGISTER##Bob##Jones##bob@voidmail.com##Secret1!")
            == "REGISTER##SUCCESS"
        )
        response = await client.request(
            "SENDEMAIL##alice@voidmail.com##bob@voidmail.com##Hi##Hello"
        )
        match = re.fullmatch(r"SENDEMAIL##SUCCESS##([0-9a-f]{64})", response)
        assert match
        inbox = await client.request("GETEMAILS##bob@voidmail.com##INBOX")
        fields = inbox.split("##")
        assert fields[:6] == [
            "GETEMAILS",
            "SUCCESS",
            match.group(1),
            "alice@voidmail.com",
            "Hi",
            "Hello",
        ]
        assert fields[7:] == ["false"]
        assert await client.request("FOO") == "UNKNOWN_COMMAND"

    @pytest.mark.asyncio
    async def test_requests_on_one_connection_are_answered_in_order(self, connect):
        client = await connect()
        lines = ["FOO", "LOGIN##x", "LOGIN##a@voidmail.com##Secret1!", "LOGOUT"]
        for line in lines:
            await client.send_line(line)
        assert [await client.receive_line() for _ in lines] == [
            "UNKNOWN_COMMAND",
            "LOGIN##INVALID_FORMAT",
            "LOGIN##NO_USER",
            "LOGOUT##INVALID_FORMAT",
        ]

    @pytest.mark.asyncio
    async def test_clients_share_the_tables(self, connect):
        alice = await connect()
        bob = await connect()
        assert (
            await alice.request("REGISTER##Alice##Smith##alice@voidmail.com##Secret1!")
            == "REGISTER##SUCCESS"
        )
        assert (
            await bob.request("LOGIN##alice@voidmail.com##Secret1!") == "LOGIN##SUCCESS"
        )

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_registration(self, connect):
        clients = [await connect() for _ in range(4)]
        responses = await asyncio.gather(
            *(
                c.request("REGISTER##Alice##Smith##alice@voidmail.com##Secret1!")
                for c in clients
            )
        )
        assert sorted(responses) == [
            "REGISTER##SUCCESS",
            "REGISTER##USER_ALREADY_EXISTS",
            "REGISTER##USER_ALREADY_EXISTS",
            "REGISTER##USER_ALREADY_EXISTS",
        ]

    @pytest.mark.asyncio
    async def test_disconnected_client_does_not_affect_others(self, connect):
        leaving = await connect()
        staying = await connect()
        await leaving.close()
        assert await staying.request("FOO") == "UNKNOWN_COMMAND"
        late = await connect()
        assert await late.request("FOO") == "UNKNOWN_COMMAND"

    @pytest.mark.asyncio
    async def test_oversized_line_closes_only_that_connection(self, connect):
        flooding = await connect()
        other = await connect()
        try:
            await flooding.send_line("FOO##" + "x" * (128 * 1024))
            assert await asyncio.wait_for(flooding.reader.read(), 5) == b""
        except ConnectionError:
            pass  # the server may reset the connection with unread data in it
        assert await other.request("FOO") == "UNKNOWN_COMMAND"

    @pytest.mark.asyncio
    async def test_stop_refuses_new_connections_but_keeps_old_ones(
        self, voidmail: VoidMail, connect
    ):
        client = await connect()
        port = voidmail.port
        voidmail.stop()
        assert not voidmail.server.is_serving
        with pytest.raises(OSError):
            await LineClient.connect(port)
        assert await client.request("FOO") == "UNKNOWN_COMMAND"

    @pytest.mark.asyncio
    async def test_start_on_given_port(self, storage_hub, unused_tcp_port: int):
        server = MailServer(
            CommandDispatcher(storage_hub.user_store, storage_hub.email_store),
            port=unused_tcp_port,
        )
        assert not server.is_serving
        try:
            await server.start()
            assert server.is_serving
            assert server.port == unused_tcp_port
            client = await LineClient.connect(unused_tcp_port)
            try:
                assert await client.request("LOGOUT##a@voidmail.com") == "LOGOUT##NO_USER"
            finally:
                await client.close()
        finally:
            server.stop()
        assert not server.is_serving

    def test_tls_is_off_without_certificate_and_key(self):
        assert VoidMail.create_ssl_context(None, None) is None
        assert VoidMail.create_ssl_context("cert.pem", None) is None
        assert VoidMail(port=0).server.ssl_context is None

    @pytest.mark.asyncio
    async def test_tls_connection(self, tmp_path):
        ca = trustme.CA()
        cert = ca.issue_cert("127.0.0.1")
        certfile = tmp_path / "cert.pem"
        keyfile = tmp_path / "key.pem"
        cert.cert_chain_pems[0].write_to_path(str(certfile))
        cert.private_key_pem.write_to_path(str(keyfile))
        instance = VoidMail(
            port=0,
            data_dir=str(tmp_path / "data"),
            certfile=str(certfile),
            keyfile=str(keyfile),
        )
        assert isinstance(instance.server.ssl_context, ssl.SSLContext)
        client_ctx = ssl.create_default_context()
        ca.configure_trust(client_ctx)
        await instance.start()
        try:
            reader, writer = await asyncio.open_connection(
                "127.0.0.1", instance.port, ssl=client_ctx
            )
            client = LineClient(reader, writer)
            try:
                assert (
                    await client.request(
                        "REGISTER##Alice##Smith##alice@voidmail.com##Secret1!"
                    )
                    == "REGISTER##SUCCESS"
                )
                assert await client.request("FOO") == "UNKNOWN_COMMAND"
            finally:
                await client.close()
        finally:
            instance.stop()


class TestVoidMailConfiguration:
    def test_debug_lowers_the_package_log_level(self, monkeypatch):
        logger = logging.getLogger("voidmail")
        monkeypatch.setattr(logger, "level", logging.WARNING)
        VoidMail(port=0)
        assert logger.level == logging.WARNING
        VoidMail(port=0, debug=True)
        assert logger.level == logging.DEBUG
