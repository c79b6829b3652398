"""
Exception hierarchy for drainq.

DrainQError
├── CASConflictError          — write rejected because etag did not match
├── ItemNotFoundError         — item_id not present in current QueueState
├── StorageError              — underlying I/O failure (wraps original exception)
├── BadAuthorizationKeyError  — supplied qmkey does not match the expected key
└── NoHandlerError            — no handler registered for a transport

Handler signals (raised by handlers, consumed by QueueManager.poll):

HandlerSignal
├── AlreadyFulfilledError  — the work was already done elsewhere
└── NoResultError          — the work refers to something that no longer exists
"""

from __future__ import annotations


class DrainQError(Exception):
    """Base class for all drainq exceptions."""


class CASConflictError(DrainQError):
    """
    Raised when a compare-and-set write is rejected by the storage backend.

    The caller should re-read the current state and retry the operation.
    This is the normal concurrency signal — not an error in the traditional sense.
    """


class ItemNotFoundError(DrainQError):
    """Raised when an item_id is not present in the current QueueState."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Queue item {item_id!r} not found in queue state")


class StorageError(DrainQError):
    """
    Wraps an underlying I/O failure from a storage adapter.

    Attributes
    ----------
    cause : Exception
        The original exception from the storage backend.
    """

    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")


class BadAuthorizationKeyError(DrainQError):
    """
    Raised at construction of an OpportunisticQueueManager when the supplied
    key differs from the expected one. The loop never starts.
    """

    def __init__(self, qmkey: str | None) -> None:
        self.qmkey = qmkey
        super().__init__("Bad queue manager key")


BadAuthorizationKey = BadAuthorizationKeyError


class NoHandlerError(DrainQError):
    """Raised by QueueManager.get_handler for an unregistered transport."""

    def __init__(self, transport: str) -> None:
        self.transport = transport
        super().__init__(f"No handler registered for transport {transport!r}")


class HandlerSignal(DrainQError):
    """Base class for exceptions a handler raises to mark an item as moot."""


class AlreadyFulfilledError(HandlerSignal):
    """The work an item describes has already been carried out."""


class NoResultError(HandlerSignal):
    """The object an item refers to no longer exists."""
