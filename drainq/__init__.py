"""
drainq — bounded, opportunistic draining of a persistent work queue.

Producers defer work by enqueueing items tagged with a transport name.
Consumers drain the queue whenever they have a spare moment: an
OpportunisticQueueManager claims items one at a time, hands them to the
handler registered for their transport, and stops as soon as the queue is
empty or its time/item budget is spent. Items it has no handler for are
released, never discarded, so other consumers sharing the store can take
them.

The queue state lives in a single JSON object behind a compare-and-set
storage port. Every claim is a CAS write, which makes it atomic across
any number of concurrent drain loops.

Quick start
-----------
    import asyncio
    from drainq import DrainLoopConfig, InMemoryStorage, OpportunisticQueueManager, QueueStore

    async def distribute(item):
        print(f"Distributing {item.payload!r}")
        return True

    async def main():
        store = QueueStore(InMemoryStorage())
        await store.enqueue("distrib", b"notice 42")

        qm = OpportunisticQueueManager(
            store,
            DrainLoopConfig(max_execution_time=10),
            handlers={"distrib": distribute},
        )
        finished = await qm.run_queue()   # True: nothing left

    asyncio.run(main())

Architecture
------------
  domain/   — pure value types (QueueItem, QueueState, DrainLoopConfig, errors)
  ports/    — Protocol interfaces (ObjectStoragePort, QueueHandler)
  core/     — QueueStore, QueueManager, OpportunisticQueueManager
  adapters/ — concrete storage implementations
"""
from __future__ import annotations

from drainq.adapters.storage.filesystem import LocalFileSystemStorage
from drainq.adapters.storage.memory import InMemoryStorage
from drainq.core.manager import QueueManager, QueueStats
from drainq.core.opportunistic import OpportunisticQueueManager, verify_key
from drainq.core.store import QueueStore
from drainq.domain.config import DrainLoopConfig
from drainq.domain.errors import (
    AlreadyFulfilledError,
    BadAuthorizationKey,
    BadAuthorizationKeyError,
    CASConflictError,
    DrainQError,
    HandlerSignal,
    ItemNotFoundError,
    NoHandlerError,
    NoResultError,
    StorageError,
)
from drainq.domain.models import (
    DrainOutcome,
    ItemStatus,
    PollResult,
    QueueItem,
    QueueState,
)
from drainq.ports.handler import QueueHandler
from drainq.ports.storage import ObjectStoragePort
from drainq.settings import DrainQSettings

__all__ = [
    # Domain models
    "QueueItem",
    "ItemStatus",
    "QueueState",
    "PollResult",
    "DrainOutcome",
    "DrainLoopConfig",
    # Errors
    "DrainQError",
    "CASConflictError",
    "ItemNotFoundError",
    "StorageError",
    "BadAuthorizationKeyError",
    "BadAuthorizationKey",
    "NoHandlerError",
    "HandlerSignal",
    "AlreadyFulfilledError",
    "NoResultError",
    # Ports
    "ObjectStoragePort",
    "QueueHandler",
    # Queue API
    "QueueStore",
    "QueueManager",
    "QueueStats",
    "OpportunisticQueueManager",
    "verify_key",
    "DrainQSettings",
    # Built-in storage adapters
    "InMemoryStorage",
    "LocalFileSystemStorage",
]
