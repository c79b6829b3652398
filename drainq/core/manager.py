"""
QueueManager — claims items from a QueueStore and dispatches them to handlers.

One poll() claims at most one item:

  claim ──► no item           → PollResult.EMPTY
        ──► no handler        → no_handler_found(item)          → DISPATCHED
        ──► handler truthy    → done(item)      (deleted)       → DISPATCHED
        ──► handler falsy     → fail(item)      (released)      → DISPATCHED
        ──► handler raises    → fail(item)      (released)      → DISPATCHED
        ──► HandlerSignal     → done(item)      (moot, deleted) → DISPATCHED

The generic manager discards items nobody handles; subclasses that share a
store with other consumers override no_handler_found().
"""
from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from collections.abc import Iterable, Mapping

from drainq.core.store import QueueStore
from drainq.domain.errors import HandlerSignal, NoHandlerError
from drainq.domain.models import PollResult, QueueItem
from drainq.ports.handler import QueueHandler

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class QueueStats:
    """Per-transport counters of what happened to polled items."""

    handled: Counter[str] = dataclasses.field(default_factory=Counter)
    errors: Counter[str] = dataclasses.field(default_factory=Counter)
    released: Counter[str] = dataclasses.field(default_factory=Counter)
    discarded: Counter[str] = dataclasses.field(default_factory=Counter)


class QueueManager:
    """
    Parameters
    ----------
    store              : QueueStore the items are claimed from
    handlers           : transport name → handler
    ignored_transports : transports this manager never claims
    """

    def __init__(
        self,
        store: QueueStore,
        handlers: Mapping[str, QueueHandler] | None = None,
        ignored_transports: Iterable[str] = (),
    ) -> None:
        self.store = store
        self.handlers: dict[str, QueueHandler] = dict(handlers or {})
        self.ignored_transports = frozenset(ignored_transports)
        self.stats = QueueStats()

    # ------------------------------------------------------------------ #
    # Handler registry                                                    #
    # ------------------------------------------------------------------ #

    def connect(self, transport: str, handler: QueueHandler) -> None:
        """Register the handler for a transport, replacing any previous one."""
        self.handlers[transport] = handler

    def get_handler(self, transport: str) -> QueueHandler:
        try:
            return self.handlers[transport]
        except KeyError:
            raise NoHandlerError(transport) from None

    def active_transports(self) -> Iterable[str] | None:
        """Transports to claim from. None claims from all of them."""
        return None

    # ------------------------------------------------------------------ #
    # Polling                                                              #
    # ------------------------------------------------------------------ #

    async def poll(self) -> PollResult:
        """Claim and dispatch at most one item."""
        item = await self.store.claim(
            self.active_transports(), self.ignored_transports
        )
        if item is None:
            return PollResult.EMPTY

        logger.debug("%s Claimed", item.label)
        try:
            handler = self.get_handler(item.transport)
        except NoHandlerError:
            await self.no_handler_found(item)
            return PollResult.DISPATCHED

        try:
            result = await handler(item)
        except HandlerSignal as exc:
            logger.error(
                "%s %s thrown (%s), ignoring queue item",
                item.label,
                type(exc).__name__,
                exc,
            )
            result = True
        except Exception:
            logger.exception("%s Handler raised", item.label)
            result = False

        if result:
            logger.info("%s Successfully handled item", item.label)
            await self.done(item)
        else:
            logger.info("%s Failed to handle item", item.label)
            await self.fail(item)
        return PollResult.DISPATCHED

    async def no_handler_found(self, item: QueueItem) -> None:
        logger.info("%s No handler for transport; discarding", item.label)
        await self.store.done(item.id)
        self.stats.discarded[item.transport] += 1

    # ------------------------------------------------------------------ #
    # Item lifecycle                                                       #
    # ------------------------------------------------------------------ #

    async def done(self, item: QueueItem) -> None:
        """Delete a processed item."""
        await self.store.done(item.id)
        self.stats.handled[item.transport] += 1

    async def fail(self, item: QueueItem, release_only: bool = False) -> None:
        """
        Release the claim on an item so it can be polled again.

        With release_only the release is not counted as an error.
        """
        if not release_only:
            self.stats.errors[item.transport] += 1
        await self.store.release(item.id)
        self.stats.released[item.transport] += 1
