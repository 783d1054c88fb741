"""Report sending commands.

Provides CLI commands for:
    - Sending today's (or a given day's) Work section on demand
    - Running the daily scheduler
"""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import TYPE_CHECKING

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel

from dailymail.core.console import console
from dailymail.core.decorators import handle_exceptions
from dailymail.core.dispatch import Dispatcher, DispatchStatus
from dailymail.core.mailer import SendRequest
from dailymail.core.notes_impl import get_today_path
from dailymail.core.scheduler import run_scheduler

if TYPE_CHECKING:
    from dailymail.main import AppState


def _parse_day(value: str | None) -> dt.date | None:
    if not value:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}", param_hint="--date")


def _render_request(request: SendRequest) -> Panel:
    lines = [
        f"[cyan]From:[/cyan] {escape(request.sender)}",
        f"[cyan]To:[/cyan] {escape(', '.join(request.to))}",
    ]
    if request.cc:
        lines.append(f"[cyan]Cc:[/cyan] {escape(', '.join(request.cc))}")
    if request.bcc:
        lines.append(f"[cyan]Bcc:[/cyan] {escape(', '.join(request.bcc))}")
    lines.append(f"[cyan]Subject:[/cyan] {escape(request.subject)}")
    lines.append("")
    lines.append(escape(request.text))
    return Panel("\n".join(lines), title="Report", box=box.SIMPLE)


@handle_exceptions
def send(
    ctx: typer.Context,
    date: str | None = typer.Option(
        None, "--date", "-d", help="Report date (YYYY-MM-DD). Defaults to today."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Build and show the report without sending it."
    ),
) -> None:
    """Send the Work section of the daily note now."""
    state: AppState = ctx.obj
    day = _parse_day(date)
    dispatcher = Dispatcher.from_config(state.config)

    outcome = asyncio.run(dispatcher.dispatch(day, dry_run=dry_run))
    if dry_run and outcome.request is not None:
        console.print(_render_request(outcome.request))
    if outcome.status is DispatchStatus.NO_DAILY_NOTE:
        expected = get_today_path(dispatcher.store.vault_dir, day)
        console.print(f"[dim]Expected a note like {escape(str(expected))}[/dim]")
    if not outcome.ok:
        raise typer.Exit(code=1)


@handle_exceptions
def schedule(
    ctx: typer.Context,
    once: bool = typer.Option(False, "--once", help="Check the clock a single time and exit."),
) -> None:
    """Send the report every day at the configured hour."""
    state: AppState = ctx.obj
    config = state.config
    dispatcher = Dispatcher.from_config(config)

    console.print(
        f"[cyan]Daily report at {config.schedule.send_hour:02d}:00[/cyan] "
        f"from {escape(str(config.user.notes_dir))}"
    )
    try:
        asyncio.run(run_scheduler(dispatcher, config.schedule, max_ticks=1 if once else None))
    except KeyboardInterrupt:
        console.print("[yellow]Stopping scheduler...[/yellow]")
