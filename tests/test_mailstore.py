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
import hashlib
import re
from datetime import datetime

import pytest
from voidmail.answer import Failure
from voidmail.mailstore import EmailStore, email_id
from voidmail.usrsys.storage import UserStore

ALICE = "alice@voidmail.com"
BOB = "bob@voidmail.com"
CAROL = "carol@voidmail.com"


@pytest.fixture
async def registered(user_store: UserStore):
    for first_name, email in (("Alice", ALICE), ("Bob", BOB)):
        answer = await user_store.register(first_name, "Smith", email, "Secret1!")
        assert answer.success


class TestEmailId:
    def test_email_id_is_sha256_of_fields_and_time(self):
        timestamp = datetime(2025, 5, 1, 12, 30, 15, 123456)
        expected = hashlib.sha256(
            (ALICE + BOB + "Hi" + "Hello" + "2025-05-01T12:30:15.123456").encode(
                "utf-8"
            )
        ).hexdigest()
        assert email_id(ALICE, BOB, "Hi", "Hello", timestamp) == expected


class TestEmailStore:
    @pytest.mark.asyncio
    async def test_send_without_any_user_skips_address_checking(
        self, email_store: EmailStore
    ):
        answer = await email_store.send(ALICE, BOB, "Hi", "Hello")
        assert answer.success
        assert re.fullmatch(r"[0-9a-f]{64}", answer.value)

    @pytest.mark.asyncio
    async def test_sent_email_is_listed_once_on_both_sides(
        self, email_store: EmailStore, registered
    ):
        answer = await email_store.send(ALICE, BOB, "Hi", "Hello")
        sent = await email_store.list_sent(ALICE)
        received = await email_store.list_received(BOB)
        assert [e.id for e in sent] == [answer.value]
        assert [e.id for e in received] == [answer.value]
        assert sent[0].viewed is False
        assert received[0].subject == "Hi"
        assert received[0].content == "Hello"
        assert await email_store.list_received(ALICE) == []

    @pytest.mark.asyncio
    async def test_send_checks_the_sender_first(
        self, email_store: EmailStore, registered
    ):
        answer = await email_store.send(CAROL, "dave@voidmail.com", "Hi", "Hello")
        assert answer.failure is Failure.USER_NOT_FOUND
        assert answer.message == CAROL

    @pytest.mark.asyncio
    async def test_send_to_unknown_recipient(self, email_store: EmailStore, registered):
        answer = await email_store.send(ALICE, CAROL, "Hi", "Hello")
        assert answer.failure is Failure.USER_NOT_FOUND
        assert answer.message == CAROL
        assert await email_store.count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "subject, content",
        [("", "Hello"), ("   ", "Hello"), ("Hi", ""), ("x" * 256, "Hello")],
    )
    async def test_send_invalid_details(
        self, email_store: EmailStore, registered, subject, content
    ):
        answer = await email_store.send(ALICE, BOB, subject, content)
        assert answer.failure is Failure.INVALID_DETAILS
        assert answer.message
        assert await email_store.count() == 0

    @pytest.mark.asyncio
    async def test_subject_of_255_characters_is_fine(self, email_store: EmailStore):
        assert (await email_store.send(ALICE, BOB, "x" * 255, "Hello")).success

    @pytest.mark.asyncio
    async def test_listing_keeps_insertion_order(self, email_store: EmailStore):
        ids = [
            (await email_store.send(ALICE, BOB, "Mail {}".format(i), "Hello")).value
            for i in range(5)
        ]
        assert [e.id for e in await email_store.list_received(BOB)] == ids
        assert [e.id for e in await email_store.list_received(BOB)] == ids

    @pytest.mark.asyncio
    async def test_list_all_gives_sent_then_received(self, email_store: EmailStore):
        to_bob = (await email_store.send(ALICE, BOB, "Hi", "Hello")).value
        to_alice = (await email_store.send(BOB, ALICE, "Re: Hi", "Hey")).value
        assert [e.id for e in await email_store.list_all(ALICE)] == [to_bob, to_alice]

    @pytest.mark.asyncio
    async def test_mark_viewed_is_idempotent(self, email_store: EmailStore):
        id = (await email_store.send(ALICE, BOB, "Hi", "Hello")).value
        assert (await email_store.mark_viewed(id)).success
        assert (await email_store.get(id)).viewed is True
        assert (await email_store.mark_viewed(id)).success
        assert (await email_store.get(id)).viewed is True

    @pytest.mark.asyncio
    async def test_mark_viewed_unknown_email_always_fails(
        self, email_store: EmailStore
    ):
        for _ in range(2):
            answer = await email_store.mark_viewed("0" * 64)
            assert answer.failure is Failure.EMAIL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_search_received(self, email_store: EmailStore):
        await email_store.send(ALICE, BOB, "Lunch plans", "Pizza?")
        await email_store.send(CAROL, BOB, "Report", "Attached")
        found = await email_store.search(BOB, "LUNCH", "received")
        assert [e.subject for e in found] == ["Lunch plans"]
        found = await email_store.search(BOB, "carol@", "received")
        assert [e.subject for e in found] == ["Report"]
        assert await email_store.search(BOB, "nothing like it", "received") == []

    @pytest.mark.asyncio
    async def test_search_sent_matches_recipient_not_sender(
        self, email_store: EmailStore
    ):
        await email_store.send(ALICE, BOB, "Hi", "Hello")
        assert len(await email_store.search(ALICE, "bob", "sent")) == 1
        assert await email_store.search(ALICE, "alice", "sent") == []
        assert await email_store.search(ALICE, "bob", "received") == []

    @pytest.mark.asyncio
    async def test_search_by_date(self, email_store: EmailStore):
        await email_store.send(ALICE, BOB, "Hi", "Hello")
        today = datetime.now().strftime("%Y-%m-%d")
        assert len(await email_store.search(BOB, today, "received")) == 1

    @pytest.mark.asyncio
    async def test_restore_snapshot_round_trip(self, email_store: EmailStore):
        await email_store.send(ALICE, BOB, "Hi", "Hello")
        id = (await email_store.send(BOB, ALICE, "Re: Hi", "Hey")).value
        await email_store.mark_viewed(id)
        before = await email_store.snapshot()
        await email_store.restore(before)
        assert await email_store.snapshot() == before

    @pytest.mark.asyncio
    async def test_restore_discards_previous_emails(self, email_store: EmailStore):
        await email_store.restore({})
        await email_store.send(ALICE, BOB, "Hi", "Hello")
        await email_store.restore({})
        assert await email_store.count() == 0


class TestTables:
    @pytest.mark.parametrize("name", ["remove_one", "find_one"])
    def test_tables_have_no_single_record_removal_or_lookup_by_query(
        self, storage_hub, name
    ):
        # records only leave a table through restore
        assert not hasattr(storage_hub.user_store, name)
        assert not hasattr(storage_hub.email_store, name)
        assert not hasattr(storage_hub.email_store.common_storage, name)
