"""Core building blocks for dailymail.

This package contains:
    - config: Application configuration management
    - console: Rich console output and logging
    - notes_impl: Vault access and daily note lookup
    - report: Work section extraction, recipients and subject
    - mailer: SMTP transport
    - dispatch: The daily report workflow
    - scheduler: Daily timer trigger
    - result: Error handling patterns
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
