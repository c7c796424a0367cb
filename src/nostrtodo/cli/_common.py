"""Shared utilities for all CLI command modules.

Provides the Rich consoles, engine construction from the click
context, and the asyncio runner that turns core errors into exit codes.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Coroutine, NoReturn, Optional, TypeVar

import click
from rich.console import Console
from rich.markup import escape

from ..config import load_config
from ..errors import TodoError
from ..sync import CommitReport, SyncEngine

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)
logger = logging.getLogger("nostrtodo.cli")

T = TypeVar("T")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_engine(ctx: click.Context) -> SyncEngine:
    """Load the selected profile and build a SyncEngine for it.

    ``ctx.obj["transport"]`` overrides the relay transport, which is how
    tests run commands against in-memory relays.
    """
    state: dict[str, Any] = ctx.find_root().obj or {}
    try:
        config = load_config(state.get("profile", ""))
    except TodoError as exc:
        fail(exc)
    return SyncEngine(config, transport=state.get("transport"))


def fail(exc: BaseException) -> NoReturn:
    """Print an error and exit non-zero."""
    err_console.print(f"[bold red]Error:[/] {escape(str(exc))}")
    sys.exit(EXIT_FAILURE)


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on a fresh event loop.

    Any TodoError becomes one red message and exit status 1. Ctrl-C
    cancels every in-flight relay task and exits 130.
    """
    try:
        return asyncio.run(coro)
    except TodoError as exc:
        fail(exc)
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/]")
        sys.exit(EXIT_INTERRUPTED)


def note_unmatched(missing: list[str]) -> None:
    """Tell the user which ids matched no task."""
    for task_id in missing:
        err_console.print(f"[yellow]Note:[/] no task with id [cyan]{escape(task_id)}[/]; nothing changed for it")


def report_commit(report: Optional[CommitReport]) -> None:
    """Warn when a commit reached no relay at all."""
    if report is None or not report.outcomes:
        return
    if report.accepted_count == 0:
        err_console.print(
            "[yellow]Warning:[/] no relay accepted the update "
            f"({len(report.outcomes)} attempted)"
        )
    logger.debug(
        "Record %s accepted by %d/%d relay(s)",
        report.record_id[:12], report.accepted_count, len(report.outcomes),
    )
