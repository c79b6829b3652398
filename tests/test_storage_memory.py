import asyncio

import pytest

from drainq.adapters.storage.memory import InMemoryStorage
from drainq.core.store import QueueStore
from drainq.domain.errors import CASConflictError
from drainq.domain.models import ItemStatus
from drainq.ports.storage import ObjectStoragePort


def test_satisfies_port():
    assert isinstance(InMemoryStorage(), ObjectStoragePort)


async def test_read_empty_returns_empty():
    content, etag = await InMemoryStorage().read()
    assert content == b""
    assert etag is None


async def test_seeded_history():
    storage = InMemoryStorage(history=[b"v1", b"v2"])
    assert await storage.read() == (b"v2", "2")


async def test_write_appends_version():
    storage = InMemoryStorage()
    etag1 = await storage.write(b"v1", if_match=None)
    etag2 = await storage.write(b"v2", if_match=etag1)
    assert (etag1, etag2) == ("1", "2")
    assert storage.history == [b"v1", b"v2"]
    assert await storage.read() == (b"v2", "2")


async def test_cas_conflict_leaves_history_unchanged():
    storage = InMemoryStorage()
    await storage.write(b"original", if_match=None)
    with pytest.raises(CASConflictError):
        await storage.write(b"corrupted", if_match="stale")
    with pytest.raises(CASConflictError):
        await storage.write(b"corrupted", if_match=None)
    assert storage.history == [b"original"]
    assert storage.conflicts == 2


async def test_concurrent_writes_exactly_one_wins():
    storage = InMemoryStorage()
    _, etag = await storage.read()

    async def attempt(data: bytes) -> bool:
        try:
            await storage.write(data, if_match=etag)
        except CASConflictError:
            return False
        return True

    results = await asyncio.gather(attempt(b"a"), attempt(b"b"))
    assert sorted(results) == [False, True]
    assert storage.conflicts == 1


async def test_states_replays_a_claim():
    storage = InMemoryStorage()
    store = QueueStore(storage=storage)
    item = await store.enqueue("distrib", b"x")
    await store.claim()
    await store.done(item.id)

    enqueued, claimed, done = storage.states()
    assert enqueued.find(item.id).status == ItemStatus.QUEUED
    assert claimed.find(item.id).status == ItemStatus.CLAIMED
    assert done.items == ()
