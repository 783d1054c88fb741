from __future__ import annotations

import datetime
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from dailymail.core import notes_impl
from dailymail.core.notes_impl import Note, NoteStore, find_daily_note
from dailymail.core.result import NoteNotFoundError, NoteReadError


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_get_today_path_format() -> None:
    """Verify the filename format matches YYYY-MM-DD.md."""
    fake_root = Path("/tmp/notes")

    with patch("dailymail.core.notes_impl.dt") as mock_dt:
        mock_dt.date.today.return_value = datetime.date(2025, 11, 24)

        result = notes_impl.get_today_path(fake_root)

    assert result == Path("/tmp/notes/2025-11-24.md")


def test_daily_note_name_zero_pads() -> None:
    assert notes_impl.daily_note_name(datetime.date(2024, 3, 5)) == "2024-03-05"


class TestFindDailyNote:
    notes = [
        Note(name="2024-03-04", path=Path("2024-03-04.md")),
        Note(name="2024-03-05 draft", path=Path("2024-03-05 draft.md")),
        Note(name="2024-03-05", path=Path("journal/2024-03-05.md")),
    ]

    def test_exact_match(self) -> None:
        note = find_daily_note(self.notes, datetime.date(2024, 3, 5)).unwrap()
        assert note.path == Path("journal/2024-03-05.md")

    def test_no_fallback_to_other_days(self) -> None:
        result = find_daily_note(self.notes, datetime.date(2024, 3, 6))
        assert result.is_err()
        assert isinstance(result.error, NoteNotFoundError)
        assert result.error.context == {"date": "2024-03-06"}

    def test_empty_store(self) -> None:
        assert find_daily_note([], datetime.date(2024, 3, 5)).is_err()


class TestNoteStore:
    def test_list_notes_is_recursive_and_markdown_only(self, vault: Path) -> None:
        _write(vault / "2024-03-05.md", "a")
        _write(vault / "2024" / "03" / "2024-03-06.md", "b")
        _write(vault / "image.png", "c")

        names = sorted(note.name for note in NoteStore(vault).list_notes())

        assert names == ["2024-03-05", "2024-03-06"]

    def test_missing_vault_lists_nothing(self, tmp_path: Path) -> None:
        assert NoteStore(tmp_path / "nope").list_notes() == []

    @pytest.mark.asyncio
    async def test_read_reuses_cache_while_unmodified(self, vault: Path) -> None:
        path = _write(vault / "2024-03-05.md", "## Work\nfirst")
        store = NoteStore(vault)
        note = Note(name=path.stem, path=path)
        stat = path.stat()

        assert await store.read(note) == "## Work\nfirst"

        path.write_text("## Work\nsecnd", encoding="utf-8")
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns))
        assert await store.read(note) == "## Work\nfirst"

        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
        assert await store.read(note) == "## Work\nsecnd"

    @pytest.mark.asyncio
    async def test_read_rejects_invalid_utf8(self, vault: Path) -> None:
        path = vault / "2024-03-05.md"
        path.write_bytes(b"## Work\ncaf\xe9")

        with pytest.raises(NoteReadError, match="2024-03-05.md"):
            await NoteStore(vault).read(Note(name=path.stem, path=path))

    @pytest.mark.asyncio
    async def test_read_of_deleted_note_raises_read_error(self, vault: Path) -> None:
        path = _write(vault / "2024-03-05.md", "## Work\nx")
        store = NoteStore(vault)
        note = store.list_notes()[0]
        path.unlink()

        with pytest.raises(NoteReadError):
            await store.read(note)
