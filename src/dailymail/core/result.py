"""
Result types and error hierarchy for dailymail.

This module provides:
1. Result[T, E] type for explicit error handling
2. Domain-specific exception hierarchy

Usage:
    from dailymail.core.result import Ok, Err, Result, NoteNotFoundError

    def locate(name: str) -> Result[Note, NoteNotFoundError]:
        if name not in notes:
            return Err(NoteNotFoundError(f"No note named {name}"))
        return Ok(notes[name])

    match locate("2024-03-05"):
        case Ok(note):
            ...
        case Err(err):
            print(err.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error


Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class DailyMailError(Exception):
    """Base exception for all dailymail errors.

    All custom exceptions should inherit from this class to enable
    consistent error handling across the codebase.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigurationError(DailyMailError):
    """Raised when settings are present but unusable.

    Examples:
    - Mail host is not configured
    - Mail port is out of range
    """


class NoteNotFoundError(DailyMailError):
    """Raised when the daily note for a date does not exist in the vault."""


class NoteReadError(DailyMailError):
    """Raised when a daily note exists but cannot be read as UTF-8 text."""


class SectionNotFoundError(DailyMailError):
    """Raised when a note has no heading matching the section marker."""


class TransportError(DailyMailError):
    """Raised when the mail transport fails to deliver a message.

    Examples:
    - Authentication rejected
    - Connection refused or timed out
    - Recipient or data rejected by the server
    """


__all__ = [
    "Ok",
    "Err",
    "Result",
    "DailyMailError",
    "ConfigurationError",
    "NoteNotFoundError",
    "NoteReadError",
    "SectionNotFoundError",
    "TransportError",
]
