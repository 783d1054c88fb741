"""Turning a daily note into report parts.

Pure string helpers used by the dispatcher:
    - extract_section(): body of the Work section
    - parse_recipients(): comma-delimited address list
    - format_subject(): date placeholder substitution
"""

from __future__ import annotations

import datetime as dt

from dailymail.core.result import Err, Ok, Result, SectionNotFoundError

WORK_MARKER = "## Work"
SUBJECT_PLACEHOLDER = "${YYYYMMDD}"


def extract_section(text: str, marker: str = WORK_MARKER) -> Result[str, SectionNotFoundError]:
    """Return everything after the first `marker`, stripped.

    Later occurrences of the marker and any other headings stay in the body
    verbatim. A present but blank section yields `Ok("")`.
    """
    _, found, body = text.partition(marker)
    if not found:
        return Err(SectionNotFoundError(f"No '{marker}' heading found", context={"marker": marker}))
    return Ok(body.strip())


def parse_recipients(raw: str) -> list[str]:
    """Split on commas and strip each address. An empty string gives `[""]`."""
    return [item.strip() for item in raw.split(",")]


def present_recipients(addresses: list[str]) -> list[str]:
    return [address for address in addresses if address]


def format_subject(template: str, day: dt.date) -> str:
    return template.replace(SUBJECT_PLACEHOLDER, day.strftime("%Y%m%d"))
