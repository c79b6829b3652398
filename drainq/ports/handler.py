"""
QueueHandler — processes the items of one transport.

A handler is any async callable taking the claimed QueueItem:

    async def send_email(item: QueueItem) -> bool:
        ...

Return value
------------
truthy → the item is done and deleted from the store
falsy  → processing failed; the claim is released and counted as an error

Raising AlreadyFulfilledError or NoResultError marks the item as moot (it is
deleted). Any other exception counts as a processing failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from drainq.domain.models import QueueItem


@runtime_checkable
class QueueHandler(Protocol):
    async def __call__(self, item: QueueItem) -> bool: ...
