"""
Codec — QueueState to and from the bytes kept by an ObjectStoragePort.

Wire format (model_dump_json):
------------------------------
{
  "items": [
    {
      "id": "550e8400-...",
      "transport": "distrib",
      "payload": "SGVsbG8=",        <-- base64-encoded bytes
      "status": "claimed",
      "created_at": "2024-01-01T00:00:00Z",
      "claimed_at": "2024-01-01T00:00:05Z"
    }
  ],
  "version": 7
}
"""
from __future__ import annotations

from drainq.domain.models import QueueState


def encode(state: QueueState) -> bytes:
    """Serialize QueueState to UTF-8 JSON bytes."""
    return state.model_dump_json(indent=2).encode("utf-8")


def decode(data: bytes) -> QueueState:
    """Deserialize UTF-8 JSON bytes to QueueState. Empty bytes → empty state."""
    if not data:
        return QueueState()
    return QueueState.model_validate_json(data)
