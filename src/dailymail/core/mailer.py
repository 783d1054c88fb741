"""SMTP mail transport.

Provides:
    - SendRequest: one outgoing report (sender, recipients, subject, text)
    - build_message(): plain-text MIME message for a request
    - MailTransport: the protocol the dispatcher sends through
    - SmtpTransport: smtplib-backed transport, run off the event loop
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Protocol

from dailymail.core.config import MailSettings
from dailymail.core.console import get_logger
from dailymail.core.report import present_recipients
from dailymail.core.result import ConfigurationError, TransportError

logger = get_logger(__name__)


@dataclass(frozen=True)
class SendRequest:
    sender: str
    to: list[str]
    cc: list[str]
    bcc: list[str]
    subject: str
    text: str

    def envelope_recipients(self) -> list[str]:
        return present_recipients([*self.to, *self.cc, *self.bcc])


def build_message(request: SendRequest) -> EmailMessage:
    """Build the message headers and body. Bcc recipients only go on the envelope."""
    message = EmailMessage()
    message["From"] = request.sender
    message["To"] = ", ".join(present_recipients(request.to))
    cc = present_recipients(request.cc)
    if cc:
        message["Cc"] = ", ".join(cc)
    message["Subject"] = request.subject
    message["Date"] = formatdate(localtime=True)
    domain = request.sender.rpartition("@")[2] or None
    message["Message-ID"] = make_msgid(domain=domain)
    # Non-ASCII bodies go out quoted-printable; the session never negotiates 8BITMIME.
    message.set_content(request.text, cte=None if request.text.isascii() else "quoted-printable")
    return message


class MailTransport(Protocol):
    async def send(self, request: SendRequest) -> str:
        """Deliver `request` and return the server's final response line."""
        ...


def _describe(exc: Exception) -> str:
    if isinstance(exc, smtplib.SMTPResponseException):
        detail = exc.smtp_error
        if isinstance(detail, bytes):
            detail = detail.decode("utf-8", errors="replace")
        return f"{exc.smtp_code} {detail}".strip()
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        return "All recipients were refused: " + ", ".join(sorted(exc.recipients))
    return str(exc) or exc.__class__.__name__


class SmtpTransport:
    """One SMTP session per send. Not pooled or reused across dispatches."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        secure: bool,
        user: str,
        secret: str,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.user = user
        self._secret = secret
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: MailSettings) -> SmtpTransport:
        if not settings.host:
            raise ConfigurationError("Mail host is not configured")
        if not 0 < settings.port < 65536:
            raise ConfigurationError(
                f"Mail port {settings.port} is out of range", context={"host": settings.host}
            )
        return cls(
            settings.host,
            settings.port,
            secure=settings.secure,
            user=settings.from_address,
            secret=settings.password.get_secret_value(),
            timeout=settings.timeout,
        )

    def _open(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def _send_blocking(self, request: SendRequest) -> str:
        recipients = request.envelope_recipients()
        if not recipients:
            raise TransportError("No recipients defined")

        message = build_message(request)
        payload = message.as_bytes(policy=message.policy.clone(linesep="\r\n"))

        # The exchange is run step by step because send_message() discards the
        # final DATA response, which is reported back to the user.
        with self._open() as smtp:
            smtp.ehlo()
            if not self.secure and smtp.has_extn("starttls"):
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            if self._secret:
                smtp.login(self.user, self._secret)

            code, resp = smtp.mail(request.sender)
            if code != 250:
                raise smtplib.SMTPSenderRefused(code, resp, request.sender)

            refused: dict[str, tuple[int, bytes]] = {}
            for rcpt in recipients:
                code, resp = smtp.rcpt(rcpt)
                if code not in (250, 251):
                    refused[rcpt] = (code, resp)
            if len(refused) == len(recipients):
                smtp.rset()
                raise smtplib.SMTPRecipientsRefused(refused)
            if refused:
                logger.warning("Server refused %d recipient(s): %s", len(refused), sorted(refused))

            code, resp = smtp.data(payload)
            if code != 250:
                raise smtplib.SMTPDataError(code, resp)

        return f"{code} {resp.decode('utf-8', errors='replace')}".strip()

    async def send(self, request: SendRequest) -> str:
        logger.debug("Connecting to %s:%s (secure=%s)", self.host, self.port, self.secure)
        try:
            return await asyncio.to_thread(self._send_blocking, request)
        except TransportError:
            raise
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(
                _describe(exc), context={"host": self.host, "port": self.port}
            ) from exc
