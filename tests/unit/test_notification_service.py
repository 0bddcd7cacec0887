from __future__ import annotations

import asyncio
import json

import pytest

from ride_sync.application.dto.notification import NotificationDraft
from ride_sync.domain.entities.notification import NotificationRecord
from ride_sync.domain.value_objects.enums import NotificationCategory
from ride_sync.services import notification_service
from tests.conftest import InMemoryStore


def _record(nid: str, timestamp: int, read: bool = False) -> NotificationRecord:
    return NotificationRecord(
        id=nid, title="t", body="b",
        category=NotificationCategory.INFORMATIONAL, timestamp=timestamp, read=read,
    )


def _is_sorted_desc(items: list[NotificationRecord]) -> bool:
    return all(a.timestamp >= b.timestamp for a, b in zip(items, items[1:]))


def test_key_for_falls_back_to_guest():
    assert notification_service.key_for("u1") == "notifications:u1"
    assert notification_service.key_for(None) == "notifications:guest"
    assert notification_service.key_for("") == "notifications:guest"


@pytest.mark.parametrize(
    "items, expected",
    [
        ([], 0),
        ([_record("a", 1)], 1),
        ([_record("a", 1, read=True), _record("b", 2)], 1),
        ([_record("a", 1, read=True), _record("b", 2, read=True)], 0),
    ],
)
def test_unread_count(items, expected):
    assert notification_service.unread_count(items) == expected


@pytest.mark.asyncio
async def test_add_on_empty_store(store, clock):
    items = await notification_service.add(
        store, "u1", NotificationDraft(title="t", body="b"), clock,
    )

    assert len(items) == 1
    assert notification_service.unread_count(items) == 1
    assert items[0].read is False
    assert items[0].category == NotificationCategory.INFORMATIONAL
    assert items[0].timestamp == int(clock.now().timestamp() * 1000)
    assert items[0].id.startswith(f"{items[0].timestamp}-")
    assert "notifications:u1" in store.data


@pytest.mark.asyncio
async def test_mark_all_read(store, clock):
    await notification_service.add(store, "u1", NotificationDraft(title="one", body="b"), clock)
    clock.advance(10)
    await notification_service.add(store, "u1", NotificationDraft(title="two", body="b"), clock)

    items = await notification_service.mark_all_read(store, "u1")

    assert notification_service.unread_count(items) == 0
    assert [n.read for n in items] == [True, True]


@pytest.mark.asyncio
async def test_mutations_keep_newest_first(store, clock):
    await notification_service.add(store, "u1", NotificationDraft(title="a", body="", timestamp=500), clock)
    items = await notification_service.add(store, "u1", NotificationDraft(title="b", body="", timestamp=100), clock)
    assert _is_sorted_desc(items)

    items = await notification_service.add(store, "u1", NotificationDraft(title="c", body="", timestamp=900), clock)
    assert [n.title for n in items] == ["c", "a", "b"]

    items = await notification_service.mark_read(store, "u1", items[1].id)
    assert _is_sorted_desc(items)
    assert [n.read for n in items] == [False, True, False]


@pytest.mark.asyncio
async def test_mark_read_unknown_id_changes_nothing(store, clock):
    await notification_service.add(store, "u1", NotificationDraft(title="t", body="b"), clock)

    items = await notification_service.mark_read(store, "u1", "missing")

    assert notification_service.unread_count(items) == 1


@pytest.mark.asyncio
async def test_add_same_id_replaces_and_keeps_read_flag(store, clock):
    draft = NotificationDraft(title="t", body="b", id="n-1", timestamp=100)
    await notification_service.add(store, "u1", draft, clock)
    await notification_service.mark_read(store, "u1", "n-1")

    items = await notification_service.add(store, "u1", draft, clock)

    assert len(items) == 1
    assert items[0].read is True


@pytest.mark.asyncio
async def test_collections_are_per_user(store, clock):
    await notification_service.add(store, "u1", NotificationDraft(title="t", body="b"), clock)

    assert await notification_service.load(store, "u2") == []
    assert await notification_service.load(store, None) == []


@pytest.mark.asyncio
async def test_guest_collection_is_persisted(store, clock):
    await notification_service.add(store, None, NotificationDraft(title="t", body="b"), clock)

    assert "notifications:guest" in store.data
    assert len(await notification_service.load(store, None)) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{not json", '{"id": "x"}', "42", "null"])
async def test_load_treats_corrupt_payload_as_empty(raw):
    store = InMemoryStore(data={"notifications:u1": raw})

    assert await notification_service.load(store, "u1") == []


@pytest.mark.asyncio
async def test_load_skips_malformed_entries(clock):
    good = {"id": "a", "title": "t", "body": "b", "category": "urgent", "timestamp": 5, "read": False}
    store = InMemoryStore(data={"notifications:u1": json.dumps([good, {"title": "no id"}, "junk"])})

    items = await notification_service.load(store, "u1")

    assert [n.id for n in items] == ["a"]
    assert items[0].category == NotificationCategory.URGENT


@pytest.mark.asyncio
async def test_add_over_corrupt_payload_starts_fresh(clock):
    store = InMemoryStore(data={"notifications:u1": "garbage"})

    items = await notification_service.add(store, "u1", NotificationDraft(title="t", body="b"), clock)

    assert len(items) == 1
    assert json.loads(store.data["notifications:u1"])[0]["title"] == "t"


@pytest.mark.asyncio
async def test_clear_all_removes_collection(store, clock):
    await notification_service.add(store, "u1", NotificationDraft(title="t", body="b"), clock)

    await notification_service.clear_all(store, "u1")

    assert "notifications:u1" not in store.data
    assert await notification_service.load(store, "u1") == []


@pytest.mark.asyncio
async def test_unserialized_adds_lose_an_update(clock):
    """Two concurrent read-modify-write cycles: the later write wins."""
    store = InMemoryStore(yield_on_io=True)

    await asyncio.gather(
        notification_service.add(store, "u1", NotificationDraft(title="one", body=""), clock),
        notification_service.add(store, "u1", NotificationDraft(title="two", body=""), clock),
    )

    assert len(await notification_service.load(store, "u1")) == 1
