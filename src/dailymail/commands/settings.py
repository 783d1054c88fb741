"""Settings commands.

Every edit changes one field and is written to the config file right away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich import box
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from dailymail.core.config import (
    AppConfig,
    ConfigError,
    config_to_dict,
    save_config,
    update_setting,
)
from dailymail.core.console import console
from dailymail.core.decorators import handle_exceptions

if TYPE_CHECKING:
    from dailymail.main import AppState

app = typer.Typer(help="Show and edit dailymail settings.")

# (key, label) pairs asked by `settings init`, in form order.
_FORM_FIELDS: list[tuple[str, str]] = [
    ("mail.host", "Host"),
    ("mail.port", "Port"),
    ("mail.secure", "Use TLS (true/false)"),
    ("mail.password", "Password"),
    ("mail.from_address", "From"),
    ("mail.to", "To (comma separated)"),
    ("mail.cc", "Cc (comma separated)"),
    ("mail.bcc", "Bcc (comma separated)"),
    ("mail.subject_format", "Subject format"),
    ("schedule.send_hour", "Send hour (0-23)"),
    ("user.notes_dir", "Notes directory"),
]


def _ensure_writable(state: AppState) -> None:
    if state.config_meta.error:
        console.print(
            f"[red]Refusing to overwrite {state.config_meta.path}: it failed to load.[/red]\n"
            "Fix or remove the file first."
        )
        raise typer.Exit(code=1)
    if state.config_meta.path.suffix.lower() == ".toml":
        console.print(
            f"[red]{state.config_meta.path} is a TOML file and is never rewritten.[/red]\n"
            "Use a .json config file to edit settings."
        )
        raise typer.Exit(code=1)


def _current_value(config: AppConfig, key: str) -> str:
    group, _, name = key.partition(".")
    value = getattr(getattr(config, group), name)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _commit(state: AppState, key: str, value: str) -> None:
    state.config = update_setting(state.config, key, value)
    save_config(state.config, state.config_meta.path)
    state.logger.debug("Saved %s to %s", key, state.config_meta.path)


@app.command("show")
def show(ctx: typer.Context) -> None:
    """Show the current settings. The password is masked."""
    state: AppState = ctx.obj
    table = Table(title="Settings", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for group, values in config_to_dict(state.config, reveal_secrets=False).items():
        for key, value in values.items():
            table.add_row(f"{group}.{key}", escape(str(value)))

    console.print(table)


@app.command("set")
@handle_exceptions
def set_value(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Setting key, e.g. mail.port or schedule.send_hour."),
    value: str = typer.Argument(..., help="New value."),
) -> None:
    """Change one setting and save it."""
    state: AppState = ctx.obj
    _ensure_writable(state)
    _commit(state, key, value)
    console.print(f"[green]Saved[/green] {escape(key)} to {state.config_meta.path}")


@app.command("init")
def init(ctx: typer.Context) -> None:
    """Fill in the settings interactively, saving after each answer."""
    state: AppState = ctx.obj
    _ensure_writable(state)

    for key, label in _FORM_FIELDS:
        current = _current_value(state.config, key)
        is_secret = key == "mail.password"
        while True:
            if is_secret:
                answer = Prompt.ask(
                    f"{label} (leave empty to keep)", password=True, default="", show_default=False
                )
                if not answer:
                    break
            else:
                answer = Prompt.ask(label, default=current)
                if answer == current:
                    break
            try:
                _commit(state, key, answer)
            except ConfigError as exc:
                console.print(f"[red]{escape(str(exc))}[/red]")
                continue
            break

    console.print(f"[green]Settings saved to[/green] {state.config_meta.path}")
