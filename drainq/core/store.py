"""
QueueStore — the persistent table of queue items.

Every enqueue, claim, done or release call does:
  1. read current state + etag from storage
  2. mutate state in memory
  3. CAS write back with if_match=etag (retries on CASConflictError)

The guarded write makes claim() atomic across every consumer sharing the
same storage object: of two consumers racing for one item, exactly one
write succeeds and the loser re-reads and claims something else (or
nothing).

Abandoned claims
----------------
A consumer that dies mid-poll leaves its item CLAIMED. claim() first
releases claims older than `claim_timeout`, so such items become visible
again without a separate sweeper.

Retry policy
------------
Operations retry up to `max_retries` times (default 10) on CASConflictError
with linear back-off (10ms × attempt). Raises CASConflictError if all retries
are exhausted.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Callable

from drainq.core import codec
from drainq.domain.errors import CASConflictError, ItemNotFoundError
from drainq.domain.models import QueueItem, QueueState
from drainq.ports.storage import ObjectStoragePort

logger = logging.getLogger(__name__)

MutationFn = Callable[[QueueState], QueueState]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclasses.dataclass
class QueueStore:
    """
    Stateless wrapper around ObjectStoragePort.

    Safe to share between coroutines; each operation performs a full CAS
    cycle independently.
    """

    storage: ObjectStoragePort
    max_retries: int = 10
    claim_timeout: timedelta = timedelta(hours=1)
    clock: Callable[[], datetime] = utcnow

    # ------------------------------------------------------------------ #
    # Write operations                                                     #
    # ------------------------------------------------------------------ #

    async def enqueue(self, transport: str, payload: bytes) -> QueueItem:
        """Add a new item to the queue. Returns the committed item."""
        item = QueueItem.new(transport, payload)
        await self._mutate(lambda state: state.with_item_added(item))
        logger.debug("%s Enqueued", item.label)
        return item

    async def claim(
        self,
        transports: Iterable[str] | None = None,
        ignored: Iterable[str] = (),
    ) -> QueueItem | None:
        """
        Claim the oldest QUEUED item, marking it CLAIMED.

        transports — restrict to these transports (None means any)
        ignored    — never claim items of these transports

        Returns None when nothing is claimable.
        """
        wanted = None if transports is None else tuple(transports)
        skip = tuple(ignored)
        claimed: QueueItem | None = None

        def _fn(state: QueueState) -> QueueState:
            nonlocal claimed
            now = self.clock()
            state = state.release_stale_claims(now - self.claim_timeout)
            available = state.claimable(wanted, skip)
            if not available:
                claimed = None
                return state
            claimed = available[0].claimed(now)
            return state.with_item_replaced(claimed)

        await self._mutate(_fn)
        return claimed

    async def done(self, item_id: str) -> None:
        """Delete a successfully processed item."""
        await self._mutate(lambda state: state.with_item_removed(item_id))

    async def release(self, item_id: str) -> None:
        """Return a claimed item to QUEUED so any consumer can claim it again."""

        def _fn(state: QueueState) -> QueueState:
            item = state.find(item_id)
            if item is None:
                raise ItemNotFoundError(item_id)
            return state.with_item_replaced(item.released())

        await self._mutate(_fn)

    async def release_stale_claims(self, timeout: timedelta) -> int:
        """
        Release CLAIMED items whose claim is older than `timeout`.

        Returns the number of items released.
        """
        cutoff = self.clock() - timeout
        released = 0

        def _fn(state: QueueState) -> QueueState:
            nonlocal released
            before = {i.id for i in state.claimed_items()}
            new_state = state.release_stale_claims(cutoff)
            released = len(before - {i.id for i in new_state.claimed_items()})
            return new_state

        await self._mutate(_fn)
        return released

    # ------------------------------------------------------------------ #
    # Read operations (no CAS needed)                                     #
    # ------------------------------------------------------------------ #

    async def read_state(self) -> QueueState:
        """Read-only snapshot of the current queue state."""
        content, _ = await self.storage.read()
        return codec.decode(content)

    # ------------------------------------------------------------------ #
    # Internal CAS loop                                                   #
    # ------------------------------------------------------------------ #

    async def _mutate(self, fn: MutationFn) -> None:
        """
        Read-modify-write with CAS retry loop.

        fn(state) -> new_state  (synchronous)
        Nothing is written when fn returns the state it was given.
        """
        for attempt in range(self.max_retries):
            content, etag = await self.storage.read()
            state = codec.decode(content)
            new_state = fn(state)
            if new_state is state:
                return
            try:
                await self.storage.write(codec.encode(new_state), if_match=etag)
                return
            except CASConflictError:
                if attempt == self.max_retries - 1:
                    raise
                await asyncio.sleep(0.01 * (attempt + 1))
