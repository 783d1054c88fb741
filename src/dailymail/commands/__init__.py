"""CLI command modules for dailymail.

This package contains the user-facing commands:
    - mail: Send the daily report now, or run the daily scheduler
    - settings: Show and edit the persisted settings
"""

from __future__ import annotations

from . import mail, settings

__all__ = ["mail", "settings"]
