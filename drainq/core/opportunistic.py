"""
OpportunisticQueueManager — drain the queue within a time and item budget.

Meant to be run from whatever happens to have a spare moment: a web request,
a cron tick, a CLI call. It works the queue until either nothing claimable is
left or its budget runs out, and it never sinks items it cannot handle,
since another consumer sharing the store may have a handler for them.

Usage
-----
    store = QueueStore(LocalFileSystemStorage("queue.json"))
    qm = OpportunisticQueueManager(
        store,
        DrainLoopConfig(qmkey="abc123", max_queue_items=50),
        expected_key="abc123",
        handlers={"distrib": distribute},
    )
    finished = await qm.run_queue()

Budget
------
can_continue() is evaluated before every poll, in order:
  1. no time elapsed yet and an item ceiling ≤ 0 is set → stop
  2. elapsed ≥ max_execution_time                       → stop
  3. item ceiling set and handled_items ≥ ceiling       → stop
handled_items counts poll attempts, including the final one that found the
queue empty, so the ceiling bounds the number of probes against the store.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Callable

from drainq.core.manager import QueueManager
from drainq.core.store import QueueStore, utcnow
from drainq.domain.config import DrainLoopConfig
from drainq.domain.errors import BadAuthorizationKeyError
from drainq.domain.models import DrainOutcome, PollResult, QueueItem
from drainq.ports.handler import QueueHandler
from drainq.settings import MAXEXECTIME, DrainQSettings, get_settings

logger = logging.getLogger(__name__)


def verify_key(qmkey: str | None, expected: str | None) -> None:
    """Raise BadAuthorizationKeyError unless qmkey is exactly the expected key."""
    if qmkey != expected:
        raise BadAuthorizationKeyError(qmkey)


class OpportunisticQueueManager(QueueManager):
    """
    Parameters
    ----------
    store                  : QueueStore shared with any other consumers
    config                 : DrainLoopConfig, or a mapping read with
                             DrainLoopConfig.from_mapping
    expected_key           : key config.qmkey must equal (None: no key)
    default_execution_time : budget used when config.max_execution_time is None;
                             0 falls back to MAXEXECTIME
    clock                  : returns the current UTC time
    """

    def __init__(
        self,
        store: QueueStore,
        config: DrainLoopConfig | Mapping[str, Any] | None = None,
        *,
        expected_key: str | None = None,
        default_execution_time: int = MAXEXECTIME,
        handlers: Mapping[str, QueueHandler] | None = None,
        ignored_transports: Iterable[str] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        # The key is checked on the raw value, before any other field is parsed.
        if config is None:
            verify_key(None, expected_key)
            config = DrainLoopConfig()
        elif isinstance(config, DrainLoopConfig):
            verify_key(config.qmkey, expected_key)
        else:
            verify_key(config.get("qmkey"), expected_key)
            config = DrainLoopConfig.from_mapping(config)

        super().__init__(store, handlers, ignored_transports)
        self.clock = clock
        self.qmkey = config.qmkey
        self.started_at: datetime = (
            config.started_at if config.started_at is not None else clock()
        )
        if config.max_execution_time is None:
            self.max_execution_time = default_execution_time or MAXEXECTIME
        else:
            self.max_execution_time = config.max_execution_time
        self.max_queue_items = config.max_queue_items
        self.handled_items = 0

    @classmethod
    def from_settings(
        cls,
        store: QueueStore,
        config: DrainLoopConfig | Mapping[str, Any] | None = None,
        settings: DrainQSettings | None = None,
        **kwargs: Any,
    ) -> OpportunisticQueueManager:
        """Take the expected key and execution limit from DrainQSettings."""
        settings = settings or get_settings()
        return cls(
            store,
            config,
            expected_key=settings.qmkey,
            default_execution_time=settings.default_execution_time,
            **kwargs,
        )

    # ------------------------------------------------------------------ #
    # Budget                                                               #
    # ------------------------------------------------------------------ #

    def elapsed(self) -> int:
        """Whole seconds since started_at."""
        return math.floor((self.clock() - self.started_at).total_seconds())

    def can_continue(self) -> bool:
        time_passed = self.elapsed()
        limited = self.max_queue_items is not None

        # Only continue if limit values are sane
        if time_passed <= 0 and limited and self.max_queue_items <= 0:
            return False
        if time_passed >= self.max_execution_time:
            return False
        if limited and self.handled_items >= self.max_queue_items:
            return False
        return True

    # ------------------------------------------------------------------ #
    # Polling                                                              #
    # ------------------------------------------------------------------ #

    async def poll(self) -> PollResult:
        self.handled_items += 1
        return await super().poll()

    async def no_handler_found(self, item: QueueItem) -> None:
        # Not ours to sink: release it for a consumer that has a handler.
        logger.warning(
            "%s Releasing claim for queue item without a handler", item.label
        )
        await self.fail(item, release_only=True)
        # Stop re-claiming the same transport for the rest of this run.
        self.ignored_transports = self.ignored_transports | {item.transport}

    async def drain(self) -> DrainOutcome:
        """Poll until the queue is empty or the budget is spent."""
        while self.can_continue():
            match await self.poll():
                case PollResult.EMPTY:
                    return DrainOutcome.EXHAUSTED
                case PollResult.DISPATCHED:
                    continue
        logger.debug(
            "Opportunistic queue manager passed execution time/item handling "
            "limit without being out of work (%d polls in %ds)",
            self.handled_items,
            self.elapsed(),
        )
        return DrainOutcome.BUDGET_EXCEEDED

    async def run_queue(self) -> bool:
        """
        Returns True when nothing this consumer can handle remains, False
        when the budget ran out first and items may remain.

        True does not mean the store is empty: items whose transport has no
        handler here are released and their transport is skipped for the
        rest of the run, so they are left for other consumers.
        """
        return await self.drain() is DrainOutcome.EXHAUSTED
