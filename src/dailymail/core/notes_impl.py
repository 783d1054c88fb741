from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path

from dailymail.core.result import Err, NoteNotFoundError, NoteReadError, Ok, Result

NOTE_SUFFIX = ".md"


@dataclass(frozen=True)
class Note:
    name: str
    path: Path


def daily_note_name(day: dt.date) -> str:
    return day.strftime("%Y-%m-%d")


def get_today_path(notes_dir: Path, day: dt.date | None = None) -> Path:
    """Where the daily note for `day` (default today) is expected at the vault root."""
    today = day or dt.date.today()
    return notes_dir / f"{daily_note_name(today)}{NOTE_SUFFIX}"


def find_daily_note(notes: list[Note], day: dt.date) -> Result[Note, NoteNotFoundError]:
    """Return the note whose base name is exactly the date, e.g. `2024-03-05`."""
    wanted = daily_note_name(day)
    for note in notes:
        if note.name == wanted:
            return Ok(note)
    return Err(NoteNotFoundError(f"No daily note named {wanted}", context={"date": wanted}))


@dataclass
class NoteStore:
    """Markdown notes under a vault directory.

    Reads are cached per file and reused while the file's mtime is unchanged.
    """

    vault_dir: Path
    _cache: dict[Path, tuple[int, str]] = field(default_factory=dict, init=False, repr=False)

    def list_notes(self) -> list[Note]:
        if not self.vault_dir.is_dir():
            return []
        paths = sorted(p for p in self.vault_dir.rglob(f"*{NOTE_SUFFIX}") if p.is_file())
        return [Note(name=p.stem, path=p) for p in paths]

    async def read(self, note: Note) -> str:
        """Return the note text. Raises NoteReadError for missing or non-UTF-8 files."""

        def _read() -> str:
            mtime = note.path.stat().st_mtime_ns
            cached = self._cache.get(note.path)
            if cached and cached[0] == mtime:
                return cached[1]
            content = note.path.read_text(encoding="utf-8")
            self._cache[note.path] = (mtime, content)
            return content

        try:
            return await asyncio.to_thread(_read)
        except (OSError, UnicodeDecodeError) as exc:
            raise NoteReadError(
                f"Cannot read {note.path.name}: {exc}", context={"path": str(note.path)}
            ) from exc
