"""Daily report dispatch.

One dispatch locates the daily note, extracts its Work section, builds a
SendRequest from the mail settings and hands it to a freshly constructed
transport. Every outcome is shown to the user as a notice.

Key components:
    - Dispatcher: runs a dispatch, guarding against concurrent sends for a day
    - SendLedger: days already reported, persisted as JSON
    - DispatchOutcome / DispatchStatus: what happened
"""

from __future__ import annotations

import datetime as dt
import json
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from dailymail.core.config import AppConfig, MailSettings
from dailymail.core.console import get_logger, notify as show_notice
from dailymail.core.mailer import MailTransport, SendRequest, SmtpTransport
from dailymail.core.notes_impl import NoteStore, find_daily_note
from dailymail.core.report import (
    extract_section,
    format_subject,
    parse_recipients,
    present_recipients,
)
from dailymail.core.result import ConfigurationError, Err, NoteReadError, Ok, TransportError

logger = get_logger(__name__)

NO_DAILY_FILE_NOTICE = "no daily file!"
EMPTY_CONTENT_NOTICE = "send error! content is empty!"
NO_SECTION_NOTICE = "send error! no Work section found!"
UNREADABLE_NOTICE = "send error! daily file is unreadable!"
NO_RECIPIENTS_NOTICE = "send error! no recipients configured!"
DRY_RUN_NOTICE = "dry run: report not sent"

LEDGER_KEEP_DAYS = 62

Notifier = Callable[[str], None]
TransportFactory = Callable[[MailSettings], MailTransport]


class DispatchStatus(str, Enum):
    SENT = "sent"
    DRY_RUN = "dry_run"
    NO_DAILY_NOTE = "no_daily_note"
    NOTE_UNREADABLE = "note_unreadable"
    NO_WORK_SECTION = "no_work_section"
    EMPTY_CONTENT = "empty_content"
    NO_RECIPIENTS = "no_recipients"
    SEND_FAILED = "send_failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchOutcome:
    status: DispatchStatus
    message: str
    request: SendRequest | None = None

    @property
    def ok(self) -> bool:
        return self.status in (DispatchStatus.SENT, DispatchStatus.DRY_RUN)


class SendLedger:
    """Record of the days a report went out.

    With no path the ledger only lives in memory.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._sent: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable send ledger %s: %s", self.path, exc)
            return {}
        sent = data.get("sent") if isinstance(data, dict) else None
        return sent if isinstance(sent, dict) else {}

    def was_sent(self, day: dt.date) -> bool:
        return day.isoformat() in self._sent

    def record(self, day: dt.date, response: str) -> None:
        self._sent[day.isoformat()] = {
            "at": dt.datetime.now().isoformat(timespec="seconds"),
            "response": response,
        }
        for key in sorted(self._sent)[:-LEDGER_KEEP_DAYS]:
            del self._sent[key]
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({"sent": self._sent}, indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            logger.error("Could not update send ledger %s: %s", self.path, exc)


class Dispatcher:
    """Runs daily report dispatches for one configuration."""

    def __init__(
        self,
        config: AppConfig,
        store: NoteStore,
        *,
        notify: Notifier = show_notice,
        transport_factory: TransportFactory = SmtpTransport.from_settings,
        ledger: SendLedger | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self._notify = notify
        self.transport_factory = transport_factory
        self.ledger = ledger or SendLedger()
        self._in_flight: set[dt.date] = set()

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> Dispatcher:
        store = NoteStore(config.user.notes_dir.expanduser())
        ledger = SendLedger(config.user.state_file.expanduser())
        return cls(config, store, ledger=ledger, **kwargs)

    def _finish(
        self, status: DispatchStatus, message: str, request: SendRequest | None = None
    ) -> DispatchOutcome:
        self._notify(message)
        return DispatchOutcome(status=status, message=message, request=request)

    def build_request(self, body: str, day: dt.date) -> SendRequest:
        mail = self.config.mail
        return SendRequest(
            sender=mail.from_address,
            to=present_recipients(parse_recipients(mail.to)),
            cc=present_recipients(parse_recipients(mail.cc)),
            bcc=present_recipients(parse_recipients(mail.bcc)),
            subject=format_subject(mail.subject_format, day),
            text=body,
        )

    async def dispatch(
        self,
        day: dt.date | None = None,
        *,
        trigger: str = "manual",
        dry_run: bool = False,
    ) -> DispatchOutcome:
        """Send the Work section of the daily note for `day` (default today)."""
        day = day or dt.date.today()
        if day in self._in_flight:
            logger.warning("Dispatch for %s already in flight; %s trigger skipped", day, trigger)
            return self._finish(DispatchStatus.SKIPPED, f"report for {day} is already being sent")

        self._in_flight.add(day)
        try:
            logger.info("Dispatching report for %s (trigger=%s)", day, trigger)
            return await self._dispatch(day, dry_run)
        finally:
            self._in_flight.discard(day)

    async def _dispatch(self, day: dt.date, dry_run: bool) -> DispatchOutcome:
        match find_daily_note(self.store.list_notes(), day):
            case Err(err):
                logger.info("%s in %s", err.message, self.store.vault_dir)
                return self._finish(DispatchStatus.NO_DAILY_NOTE, NO_DAILY_FILE_NOTICE)
            case Ok(note):
                pass

        try:
            text = await self.store.read(note)
        except NoteReadError as exc:
            logger.warning("%s", exc)
            return self._finish(DispatchStatus.NOTE_UNREADABLE, UNREADABLE_NOTICE)

        match extract_section(text, self.config.user.work_marker):
            case Err(err):
                logger.info("%s: %s", note.path, err.message)
                return self._finish(DispatchStatus.NO_WORK_SECTION, NO_SECTION_NOTICE)
            case Ok(body):
                pass

        if len(body) == 0:
            return self._finish(DispatchStatus.EMPTY_CONTENT, EMPTY_CONTENT_NOTICE)

        request = self.build_request(body, day)
        if not request.to:
            return self._finish(DispatchStatus.NO_RECIPIENTS, NO_RECIPIENTS_NOTICE)

        if dry_run:
            return self._finish(DispatchStatus.DRY_RUN, DRY_RUN_NOTICE, request)

        try:
            transport = self.transport_factory(self.config.mail)
            response = await transport.send(request)
        except (ConfigurationError, TransportError) as exc:
            logger.warning("Sending report for %s failed: %s", day, exc)
            return self._finish(DispatchStatus.SEND_FAILED, exc.message, request)

        self.ledger.record(day, response)
        return self._finish(DispatchStatus.SENT, response, request)
