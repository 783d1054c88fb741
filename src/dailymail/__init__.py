"""dailymail - email the Work section of today's daily note as a status report.

This package provides the core functionality for the `dailymail` command-line
tool: locating the daily note, extracting its Work section, and sending it
over SMTP on demand or on a daily schedule.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
