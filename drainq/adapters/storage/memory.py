"""
InMemoryStorage — the queue state kept as a history of committed versions.

Each successful write appends to `history`; the etag of the current version
is its position in that history ("1" for the first write). Keeping every
version lets tests replay how a drain changed the queue, and `conflicts`
counts the CAS writes that lost a race.

read() and write() never await, so within one event loop each call runs to
completion before any other coroutine can touch the history. That is the
whole of the CAS guarantee here; it does not extend across threads or
processes.
"""
from __future__ import annotations

import dataclasses

from drainq.core import codec
from drainq.domain.errors import CASConflictError
from drainq.domain.models import QueueState


@dataclasses.dataclass
class InMemoryStorage:
    """
    Parameters
    ----------
    history : committed versions to start from, oldest first
    """

    history: list[bytes] = dataclasses.field(default_factory=list)
    conflicts: int = dataclasses.field(default=0, init=False)

    def _etag(self) -> str | None:
        return str(len(self.history)) if self.history else None

    async def read(self) -> tuple[bytes, str | None]:
        if not self.history:
            return b"", None
        return self.history[-1], self._etag()

    async def write(
        self,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        current = self._etag()
        if if_match != current:
            self.conflicts += 1
            raise CASConflictError(
                f"Version {current!r} is current, write was based on {if_match!r}"
            )
        self.history.append(content)
        return str(len(self.history))

    def states(self) -> list[QueueState]:
        """Every committed version, decoded."""
        return [codec.decode(content) for content in self.history]
