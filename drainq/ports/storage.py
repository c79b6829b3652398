"""
ObjectStoragePort — where QueueStore keeps its serialized QueueState.

Any object with these two coroutines can back a queue store; structural
typing is enough, nothing needs to subclass it.

Contract
--------
read()
  - Returns (content_bytes, etag)
  - A missing object reads as (b"", None), which decodes to an empty queue

write(content, if_match=None)
  - if_match None  → create; fails if the object already exists
  - if_match given → replace only if the stored etag still equals it
  - Returns the new etag
  - Raises CASConflictError when the guard fails, StorageError on I/O failure

The guarded write is what makes a claim atomic: two consumers that read the
same state and both try to claim the same item cannot both succeed.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ObjectStoragePort(Protocol):
    """
    Minimal storage interface required by QueueStore.

    Built-in adapters:
      - InMemoryStorage        — asyncio.Lock-based, for tests
      - LocalFileSystemStorage — lock file + atomic rename, single machine
    """

    async def read(self) -> tuple[bytes, str | None]:
        """Read the current state object and its etag."""
        ...

    async def write(
        self,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        """Write the state object if its etag still equals if_match."""
        ...
