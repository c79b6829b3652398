"""
Domain models for drainq — backed by Pydantic v2.

Pydantic handles:
  - JSON serialization / deserialization (via codec.py)
  - bytes ↔ base64 encoding in JSON mode
  - datetime parsing (ISO-8601 with timezone)

All models are frozen (immutable). Mutations return new instances via
model_copy(update=...).
"""

import base64
import uuid
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ItemStatus(str, Enum):
    """Lifecycle states for a queue item."""

    QUEUED = "queued"
    CLAIMED = "claimed"


class PollResult(str, Enum):
    """Outcome of a single poll against the queue."""

    DISPATCHED = "dispatched"
    EMPTY = "empty"


class DrainOutcome(str, Enum):
    """How a bounded drain loop terminated."""

    EXHAUSTED = "exhausted"
    BUDGET_EXCEEDED = "budget_exceeded"


class QueueItem(BaseModel):
    """
    A single unit of deferred work.

    id         — stable identifier, assigned at enqueue time
    transport  — handler channel this item is routed to
    payload    — opaque bytes (serialised as base64 in JSON)
    status     — QUEUED (claimable) or CLAIMED (invisible to other consumers)
    created_at — UTC timestamp set at enqueue time
    claimed_at — UTC timestamp of the current claim (None when QUEUED)
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    transport: str
    payload: bytes
    status: ItemStatus = ItemStatus.QUEUED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    claimed_at: datetime | None = None

    @field_validator("payload", mode="before")
    @classmethod
    def _decode_payload(cls, v: str | bytes) -> bytes:
        """Accept base64 strings from JSON; pass bytes through unchanged."""
        match v:
            case bytes():
                return v
            case str():
                return base64.b64decode(v)
            case _:
                raise ValueError(
                    f"payload must be bytes or a base64-encoded str, got {type(v).__name__}"
                )

    @field_serializer("payload")
    def _encode_payload(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")

    @classmethod
    def new(cls, transport: str, payload: bytes) -> "QueueItem":
        """Factory — assigns a fresh UUID and sets status to QUEUED."""
        return cls(transport=transport, payload=payload)

    def claimed(self, ts: datetime) -> "QueueItem":
        return self.model_copy(update={"status": ItemStatus.CLAIMED, "claimed_at": ts})

    def released(self) -> "QueueItem":
        return self.model_copy(update={"status": ItemStatus.QUEUED, "claimed_at": None})

    @property
    def label(self) -> str:
        """Log prefix used for every line about this item."""
        return f"[{self.transport}:item {self.id}]"


class QueueState(BaseModel):
    """
    The complete, authoritative state of the queue store.

    items   — ordered sequence of items; order is preserved across ser/de
    version — monotonically increasing counter, incremented on every CAS write
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[QueueItem, ...] = ()
    version: int = 0

    # ------------------------------------------------------------------ #
    # Query helpers                                                        #
    # ------------------------------------------------------------------ #

    def claimable(
        self,
        transports: Iterable[str] | None = None,
        ignored: Iterable[str] = (),
    ) -> tuple[QueueItem, ...]:
        """
        QUEUED items oldest first.

        transports — only these transports (None means all)
        ignored    — never these transports
        """
        wanted = None if transports is None else set(transports)
        skip = set(ignored)
        candidates = (
            i
            for i in self.items
            if i.status == ItemStatus.QUEUED
            and i.transport not in skip
            and (wanted is None or i.transport in wanted)
        )
        return tuple(sorted(candidates, key=lambda i: i.created_at))

    def claimed_items(self) -> tuple[QueueItem, ...]:
        return tuple(i for i in self.items if i.status == ItemStatus.CLAIMED)

    def find(self, item_id: str) -> QueueItem | None:
        """Return the item with the given id, or None if absent."""
        return next((i for i in self.items if i.id == item_id), None)

    def count_by_transport(self) -> Counter[str]:
        return Counter(i.transport for i in self.items)

    # ------------------------------------------------------------------ #
    # Mutation helpers — each returns a new QueueState                    #
    # ------------------------------------------------------------------ #

    def with_item_added(self, item: QueueItem) -> "QueueState":
        """Append an item and increment version."""
        return self.model_copy(
            update={"items": self.items + (item,), "version": self.version + 1}
        )

    def with_item_replaced(self, updated: QueueItem) -> "QueueState":
        """Replace the item with the same id. Raises ItemNotFoundError if absent."""
        from drainq.domain.errors import ItemNotFoundError

        if self.find(updated.id) is None:
            raise ItemNotFoundError(updated.id)
        new_items = tuple(updated if i.id == updated.id else i for i in self.items)
        return self.model_copy(
            update={"items": new_items, "version": self.version + 1}
        )

    def with_item_removed(self, item_id: str) -> "QueueState":
        """Remove an item by id. Raises ItemNotFoundError if absent."""
        from drainq.domain.errors import ItemNotFoundError

        new_items = tuple(i for i in self.items if i.id != item_id)
        if len(new_items) == len(self.items):
            raise ItemNotFoundError(item_id)
        return self.model_copy(
            update={"items": new_items, "version": self.version + 1}
        )

    def release_stale_claims(self, cutoff: datetime) -> "QueueState":
        """
        Release every CLAIMED item whose claim is older than `cutoff`.

        A claim that old belongs to a consumer that died mid-poll.
        Returns self unchanged when no claims are stale.
        """
        new_items = tuple(
            i.released()
            if (
                i.status == ItemStatus.CLAIMED
                and (i.claimed_at is None or i.claimed_at < cutoff)
            )
            else i
            for i in self.items
        )
        if new_items == self.items:
            return self
        return self.model_copy(
            update={"items": new_items, "version": self.version + 1}
        )
