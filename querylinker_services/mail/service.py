"""
E-mail dispatch.

The transport is created on first send under a lock and reused afterwards.
send_email never raises: every failure, including transport creation, is
reported as EmailResult(success=False, error=...).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from querylinker_core.config import Settings
from querylinker_services.mail.templates import html_to_text
from querylinker_services.mail.transports import (
    ConsoleTransport,
    EmailMessage,
    EtherealTransport,
    MailTransport,
    SmtpTransport,
)

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    provider: str
    message_id: str | None = None
    error: str | None = None
    delivery_time_ms: int = 0
    preview_url: str | None = None


@dataclass
class EmailStatus:
    provider: str
    configured: bool
    from_email: str
    recommendations: list[str] = field(default_factory=list)


def transport_factory_from_settings(settings: Settings) -> Callable[[], MailTransport]:
    provider = settings.EMAIL_PROVIDER

    def factory() -> MailTransport:
        if provider == "smtp":
            if not settings.SMTP_HOST:
                raise ValueError("EMAIL_PROVIDER=smtp requires SMTP_HOST")
            return SmtpTransport(
                settings.SMTP_HOST, settings.SMTP_PORT, settings.SMTP_USER, settings.SMTP_PASSWORD,
                settings.FROM_EMAIL, settings.FROM_NAME,
                use_tls=settings.SMTP_USE_TLS, timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        if provider == "test":
            return EtherealTransport.create_account(
                settings.FROM_EMAIL, settings.FROM_NAME, timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        return ConsoleTransport(settings.FROM_EMAIL)

    return factory


class EmailService:
    def __init__(self, transport_factory: Callable[[], MailTransport], provider: str = "console",
                 from_email: str = "noreply@querylinker.com"):
        self._factory = transport_factory
        self.provider = provider
        self.from_email = from_email
        self._transport: MailTransport | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(transport_factory_from_settings(settings), settings.EMAIL_PROVIDER, settings.FROM_EMAIL)

    def _get_transport(self) -> MailTransport:
        with self._lock:
            if self._transport is None:
                self._transport = self._factory()
                logger.info("E-mail transport initialised: %s", self.provider)
            return self._transport

    def send_email(self, recipient: str, subject: str, html_body: str, text_body: str | None = None) -> EmailResult:
        t0 = time.perf_counter()
        message = EmailMessage(
            recipient=recipient,
            subject=subject,
            html_body=html_body,
            text_body=text_body if text_body is not None else html_to_text(html_body),
        )
        try:
            receipt = self._get_transport().send(message)
        except Exception as e:
            logger.error("Failed to send e-mail to %s via %s: %s", recipient, self.provider, e)
            return EmailResult(
                success=False,
                provider=self.provider,
                error=str(e) or type(e).__name__,
                delivery_time_ms=int((time.perf_counter() - t0) * 1000),
            )
        elapsed = int((time.perf_counter() - t0) * 1000)
        logger.info("E-mail sent to %s via %s in %dms (id=%s)", recipient, self.provider, elapsed, receipt.message_id)
        return EmailResult(
            success=True,
            provider=self.provider,
            message_id=receipt.message_id,
            delivery_time_ms=elapsed,
            preview_url=receipt.preview_url,
        )

    def status(self, settings: Settings) -> EmailStatus:
        recs: list[str] = []
        if self.provider == "smtp":
            configured = bool(settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD)
            if not configured:
                recs.append("Set SMTP_HOST, SMTP_USER and SMTP_PASSWORD for real delivery")
        elif self.provider == "test":
            configured = True
            recs.append("Ethereal test mailbox: messages are not delivered, use the preview URL")
            recs.append("Set EMAIL_PROVIDER=smtp with SMTP credentials for production")
        else:
            configured = True
            recs.append("Console transport: messages are only written to the log")
            recs.append("Set EMAIL_PROVIDER=test or smtp to send real messages")
        return EmailStatus(self.provider, configured, self.from_email, recs)
