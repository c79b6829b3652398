"""
drainq command line — enqueue into, inspect and drain a queue state file.

Usage:
    drainq enqueue distrib '{"notice": 42}' --state queue.json
    drainq status --state queue.json
    drainq run --state queue.json --qmkey abc123 --max-items 50 \\
        --handler distrib=myapp.handlers:distribute

`run` is the opportunistic trigger: it drains within the given budget and
exits 0 when the queue is empty, 3 when the budget ran out first and 2 when
the key is rejected. The expected key and default execution time come from
the DRAINQ_* environment (see drainq.settings).
"""
from __future__ import annotations

import asyncio
import importlib
import logging
from datetime import timedelta
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from drainq.adapters.storage.filesystem import LocalFileSystemStorage
from drainq.core.opportunistic import OpportunisticQueueManager
from drainq.core.store import QueueStore
from drainq.domain.config import DrainLoopConfig
from drainq.domain.errors import BadAuthorizationKeyError
from drainq.ports.handler import QueueHandler
from drainq.settings import get_settings

EXIT_BAD_KEY = 2
EXIT_BUDGET_EXCEEDED = 3

app = typer.Typer(
    help="Enqueue, inspect and opportunistically drain a drainq queue",
    add_completion=False,
)
console = Console()

STATE_OPTION = typer.Option(
    Path("queue.json"),
    "--state",
    "-s",
    help="Queue state file",
)


def _store(state: Path) -> QueueStore:
    settings = get_settings()
    return QueueStore(
        LocalFileSystemStorage(state),
        claim_timeout=timedelta(seconds=settings.claim_timeout_seconds),
    )


def load_handler(spec: str) -> tuple[str, QueueHandler]:
    """Parse `transport=module:attr` into (transport, handler)."""
    transport, sep, target = spec.partition("=")
    module_name, colon, attr = target.partition(":")
    if not (sep and colon and transport and module_name and attr):
        raise typer.BadParameter(
            f"expected transport=module:attr, got {spec!r}", param_hint="--handler"
        )
    try:
        handler = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--handler") from exc
    return transport, handler


@app.callback()
def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def enqueue(
    transport: str = typer.Argument(..., help="Transport the item is routed to"),
    payload: str = typer.Argument(..., help="Item payload (UTF-8 text)"),
    state: Path = STATE_OPTION,
) -> None:
    """Add one item to the queue."""
    item = asyncio.run(_store(state).enqueue(transport, payload.encode("utf-8")))
    console.print(item.id)


@app.command()
def status(state: Path = STATE_OPTION) -> None:
    """Show queued and claimed items per transport."""
    queue_state = asyncio.run(_store(state).read_state())
    claimed = {i.id for i in queue_state.claimed_items()}

    table = Table(title=f"{state} (version {queue_state.version})")
    table.add_column("Transport")
    table.add_column("Queued", justify="right")
    table.add_column("Claimed", justify="right")
    for transport, total in sorted(queue_state.count_by_transport().items()):
        busy = sum(
            1 for i in queue_state.items if i.transport == transport and i.id in claimed
        )
        table.add_row(transport, str(total - busy), str(busy))
    console.print(table)


@app.command()
def run(
    state: Path = STATE_OPTION,
    qmkey: str | None = typer.Option(None, "--qmkey", help="Authorization key"),
    max_execution_time: int | None = typer.Option(
        None,
        "--max-execution-time",
        "-t",
        help="Seconds to keep draining",
    ),
    max_items: int | None = typer.Option(
        None,
        "--max-items",
        "-n",
        help="Maximum number of polls",
    ),
    handler: list[str] | None = typer.Option(
        None,
        "--handler",
        "-H",
        help="transport=module:attr, repeatable",
    ),
) -> None:
    """Drain the queue within a time and item budget."""
    handlers = dict(load_handler(spec) for spec in handler or [])
    config = DrainLoopConfig(
        qmkey=qmkey,
        max_execution_time=max_execution_time,
        max_queue_items=max_items,
    )
    try:
        qm = OpportunisticQueueManager.from_settings(
            _store(state), config, handlers=handlers
        )
    except BadAuthorizationKeyError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=EXIT_BAD_KEY) from exc

    finished = asyncio.run(qm.run_queue())
    console.print(
        f"{qm.handled_items} polls, "
        f"{sum(qm.stats.handled.values())} handled, "
        f"{sum(qm.stats.errors.values())} errors"
    )
    if not finished:
        console.print("Budget exhausted, items may remain")
        raise typer.Exit(code=EXIT_BUDGET_EXCEEDED)


if __name__ == "__main__":
    app()
