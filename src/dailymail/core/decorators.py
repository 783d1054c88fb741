from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import typer
from rich.markup import escape

from dailymail.core.config import ConfigError
from dailymail.core.console import console, get_logger
from dailymail.core.result import DailyMailError

F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)


def handle_exceptions(func: F) -> F:
    """Turn settings and delivery errors raised by a command into a red line and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except DailyMailError as exc:
            if exc.context:
                logger.debug("%s failed with context %s", func.__name__, exc.context)
            message = exc.message
        except (ConfigError, PermissionError) as exc:
            message = str(exc)
        console.print(f"[red]{escape(message)}[/red]")
        raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


__all__ = ["handle_exceptions"]
