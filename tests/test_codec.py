import json
from datetime import UTC, datetime

from drainq.core import codec
from drainq.domain.models import ItemStatus, QueueItem, QueueState


def test_decode_empty_bytes_returns_empty_state():
    state = codec.decode(b"")
    assert state.items == ()
    assert state.version == 0


def test_encoded_claim_survives_decode():
    claimed_at = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    item = QueueItem.new("distrib", b"binary\x00\xff").claimed(claimed_at)
    state = QueueState(items=(item,), version=7)

    restored = codec.decode(codec.encode(state))

    assert restored == state
    assert restored.items[0].status == ItemStatus.CLAIMED
    assert restored.items[0].claimed_at == claimed_at


def test_wire_format():
    item = QueueItem.new("distrib", b"hello")
    data = json.loads(codec.encode(QueueState(items=(item,), version=1)))
    assert data["version"] == 1
    [wire] = data["items"]
    assert wire["transport"] == "distrib"
    assert wire["payload"] == "aGVsbG8="
    assert wire["status"] == "queued"
    assert wire["claimed_at"] is None
