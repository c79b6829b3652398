from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from drainq.domain.errors import ItemNotFoundError
from drainq.domain.models import ItemStatus, QueueItem, QueueState

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def make_item(transport: str = "t", offset: int = 0, **kwargs) -> QueueItem:
    return QueueItem(
        transport=transport,
        payload=b"x",
        created_at=T0 + timedelta(seconds=offset),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# QueueItem
# ---------------------------------------------------------------------------


def test_new_item_defaults():
    item = QueueItem.new("distrib", b"data")
    assert item.status == ItemStatus.QUEUED
    assert item.claimed_at is None
    assert item.created_at.tzinfo is not None
    assert len(item.id) == 36


def test_new_items_get_distinct_ids():
    assert QueueItem.new("t", b"").id != QueueItem.new("t", b"").id


def test_item_is_frozen():
    item = QueueItem.new("t", b"x")
    with pytest.raises(ValidationError):
        item.transport = "other"


def test_payload_accepts_base64_string():
    item = QueueItem(transport="t", payload="aGVsbG8=")
    assert item.payload == b"hello"


def test_payload_rejects_other_types():
    with pytest.raises(ValidationError):
        QueueItem(transport="t", payload=42)


def test_payload_serialises_as_base64():
    data = QueueItem.new("t", b"hello").model_dump(mode="json")
    assert data["payload"] == "aGVsbG8="


def test_claimed_and_released():
    item = make_item()
    claimed = item.claimed(T0)
    assert claimed.status == ItemStatus.CLAIMED
    assert claimed.claimed_at == T0
    assert item.status == ItemStatus.QUEUED

    released = claimed.released()
    assert released.status == ItemStatus.QUEUED
    assert released.claimed_at is None


def test_label():
    item = make_item(transport="distrib", id="42")
    assert item.label == "[distrib:item 42]"


# ---------------------------------------------------------------------------
# QueueState queries
# ---------------------------------------------------------------------------


def test_claimable_oldest_first():
    late, early = make_item(offset=5), make_item(offset=1)
    state = QueueState(items=(late, early))
    assert state.claimable() == (early, late)


def test_claimable_excludes_claimed():
    claimed = make_item().claimed(T0)
    queued = make_item(offset=1)
    state = QueueState(items=(claimed, queued))
    assert state.claimable() == (queued,)
    assert state.claimed_items() == (claimed,)


def test_claimable_transport_filters():
    a, b, c = make_item("a"), make_item("b", 1), make_item("c", 2)
    state = QueueState(items=(a, b, c))
    assert state.claimable(transports=["a", "b"]) == (a, b)
    assert state.claimable(ignored=["a"]) == (b, c)
    assert state.claimable(transports=["a"], ignored=["a"]) == ()


def test_find():
    item = make_item()
    state = QueueState(items=(item,))
    assert state.find(item.id) is item
    assert state.find("missing") is None


def test_count_by_transport():
    state = QueueState(items=(make_item("a"), make_item("a"), make_item("b")))
    assert state.count_by_transport() == {"a": 2, "b": 1}


# ---------------------------------------------------------------------------
# QueueState mutations
# ---------------------------------------------------------------------------


def test_with_item_added_bumps_version():
    state = QueueState().with_item_added(make_item())
    assert len(state.items) == 1
    assert state.version == 1


def test_with_item_replaced():
    item = make_item()
    state = QueueState(items=(item,)).with_item_replaced(item.claimed(T0))
    assert state.items[0].status == ItemStatus.CLAIMED
    assert state.version == 1


def test_with_item_replaced_missing_raises():
    with pytest.raises(ItemNotFoundError):
        QueueState().with_item_replaced(make_item())


def test_with_item_removed():
    a, b = make_item(), make_item()
    state = QueueState(items=(a, b)).with_item_removed(a.id)
    assert state.items == (b,)
    assert state.version == 1


def test_with_item_removed_missing_raises():
    with pytest.raises(ItemNotFoundError):
        QueueState().with_item_removed("missing")


def test_release_stale_claims():
    old = make_item().claimed(T0)
    fresh = make_item().claimed(T0 + timedelta(hours=2))
    state = QueueState(items=(old, fresh))

    new_state = state.release_stale_claims(T0 + timedelta(hours=1))

    assert new_state.find(old.id).status == ItemStatus.QUEUED
    assert new_state.find(fresh.id).status == ItemStatus.CLAIMED
    assert new_state.version == 1


def test_release_stale_claims_noop_returns_self():
    state = QueueState(items=(make_item().claimed(T0),))
    assert state.release_stale_claims(T0 - timedelta(seconds=1)) is state
