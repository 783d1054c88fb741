from __future__ import annotations

import datetime as dt

import pytest

from dailymail.core.report import (
    WORK_MARKER,
    extract_section,
    format_subject,
    parse_recipients,
    present_recipients,
)
from dailymail.core.result import Err, Ok, SectionNotFoundError


class TestExtractSection:
    def test_returns_trimmed_body_after_marker(self) -> None:
        result = extract_section("intro\n## Work\n  did things  \n")
        assert result == Ok("did things")

    def test_drops_everything_before_marker(self) -> None:
        text = "# 2024-03-05\n## Personal\ngym\n## Work\n- shipped release\n- reviewed PRs\n"
        assert extract_section(text).unwrap() == "- shipped release\n- reviewed PRs"

    def test_only_first_marker_counts(self) -> None:
        text = "## Work\nfirst\n## Work\nsecond\n## Notes\nthird"
        assert extract_section(text).unwrap() == "first\n## Work\nsecond\n## Notes\nthird"

    def test_blank_section_is_empty_string(self) -> None:
        assert extract_section("intro\n## Work\n   \n\t\n") == Ok("")

    def test_missing_marker_is_distinct_error(self) -> None:
        result = extract_section("intro\n## Personal\ngym\n")
        assert isinstance(result, Err)
        assert isinstance(result.error, SectionNotFoundError)
        assert result.error.context == {"marker": WORK_MARKER}

    def test_custom_marker(self) -> None:
        assert extract_section("x\n## Today\nwrote docs", "## Today").unwrap() == "wrote docs"


class TestRecipients:
    def test_splits_and_trims(self) -> None:
        assert parse_recipients(" a@example.com ,b@example.com,  c@example.com") == [
            "a@example.com",
            "b@example.com",
            "c@example.com",
        ]

    def test_empty_string_gives_single_empty_entry(self) -> None:
        assert parse_recipients("") == [""]

    def test_keeps_order_and_duplicates(self) -> None:
        assert parse_recipients("b@x.io, a@x.io, b@x.io") == ["b@x.io", "a@x.io", "b@x.io"]

    def test_present_recipients_drops_empties(self) -> None:
        assert present_recipients(parse_recipients("")) == []
        assert present_recipients(parse_recipients("a@x.io, ,b@x.io,")) == ["a@x.io", "b@x.io"]


class TestFormatSubject:
    def test_replaces_placeholder(self) -> None:
        assert format_subject("Report ${YYYYMMDD}", dt.date(2024, 3, 5)) == "Report 20240305"

    def test_replaces_every_occurrence(self) -> None:
        subject = format_subject("${YYYYMMDD} / ${YYYYMMDD}", dt.date(2023, 12, 31))
        assert subject == "20231231 / 20231231"

    @pytest.mark.parametrize("template", ["Weekly status", "Report ${YYYY}", "Report {YYYYMMDD}"])
    def test_other_templates_are_verbatim(self, template: str) -> None:
        assert format_subject(template, dt.date(2024, 3, 5)) == template
