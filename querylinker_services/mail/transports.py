"""
Mail transports.

Each transport delivers one EmailMessage and returns a SendReceipt. They raise
on failure; EmailService turns failures into EmailResult values.
"""

from __future__ import annotations

import logging
import re
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid

import requests

logger = logging.getLogger(__name__)

ETHEREAL_API_URL = "https://api.nodemailer.com/user"
ETHEREAL_WEB_URL = "https://ethereal.email"
_MSGID_RE = re.compile(r"MSGID=([^\s\]]+)")


@dataclass(frozen=True)
class EmailMessage:
    recipient: str
    subject: str
    html_body: str
    text_body: str


@dataclass(frozen=True)
class SendReceipt:
    message_id: str
    preview_url: str | None = None


def build_mime(message: EmailMessage, from_email: str, from_name: str) -> MimeMessage:
    mime = MimeMessage()
    mime["From"] = formataddr((from_name, from_email))
    mime["To"] = message.recipient
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain=from_email.split("@")[-1] or None)
    mime.set_content(message.text_body)
    mime.add_alternative(message.html_body, subtype="html")
    return mime


class MailTransport:
    name: str = ""

    def send(self, message: EmailMessage) -> SendReceipt:
        raise NotImplementedError


class SmtpTransport(MailTransport):
    name = "smtp"

    def __init__(self, host: str, port: int, username: str | None, password: str | None,
                 from_email: str, from_name: str, use_tls: bool = True, timeout: float = 15.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout = timeout

    def _deliver(self, mime: MimeMessage, recipient: str) -> tuple[int, bytes]:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            if self.use_tls:
                smtp.starttls()
                smtp.ehlo()
            if self.username:
                smtp.login(self.username, self.password or "")
            code, resp = smtp.mail(self.from_email)
            if code != 250:
                raise smtplib.SMTPSenderRefused(code, resp, self.from_email)
            code, resp = smtp.rcpt(recipient)
            if code not in (250, 251):
                raise smtplib.SMTPRecipientsRefused({recipient: (code, resp)})
            code, resp = smtp.data(mime.as_bytes())
            if code != 250:
                raise smtplib.SMTPDataError(code, resp)
            return code, resp

    def send(self, message: EmailMessage) -> SendReceipt:
        mime = build_mime(message, self.from_email, self.from_name)
        self._deliver(mime, message.recipient)
        return SendReceipt(message_id=mime["Message-ID"])


class EtherealTransport(SmtpTransport):
    """Disposable Ethereal mailbox: nothing is delivered, every message gets a preview URL."""

    name = "test"

    @classmethod
    def create_account(cls, from_email: str, from_name: str, timeout: float = 15.0,
                       http: requests.Session | None = None) -> "EtherealTransport":
        http = http or requests.Session()
        r = http.post(ETHEREAL_API_URL, json={"requestor": "querylinker", "version": "1.0.0"}, timeout=timeout)
        r.raise_for_status()
        account = r.json()
        if account.get("status") != "success":
            raise RuntimeError(f"Ethereal account creation failed: {account.get('error') or account}")
        smtp_cfg = account.get("smtp") or {}
        logger.info("Created Ethereal test account %s", account["user"])
        return cls(
            host=smtp_cfg.get("host", "smtp.ethereal.email"),
            port=int(smtp_cfg.get("port", 587)),
            username=account["user"],
            password=account["pass"],
            from_email=from_email,
            from_name=from_name,
            use_tls=not smtp_cfg.get("secure", False),
            timeout=timeout,
        )

    def send(self, message: EmailMessage) -> SendReceipt:
        mime = build_mime(message, self.from_email, self.from_name)
        _code, resp = self._deliver(mime, message.recipient)
        m = _MSGID_RE.search(resp.decode("utf-8", "replace"))
        preview = f"{ETHEREAL_WEB_URL}/message/{m.group(1)}" if m else None
        if preview:
            logger.info("Ethereal preview for %s: %s", message.recipient, preview)
        return SendReceipt(message_id=mime["Message-ID"], preview_url=preview)


class ConsoleTransport(MailTransport):
    """Logs the message instead of sending it."""

    name = "console"

    def __init__(self, from_email: str):
        self.from_email = from_email
        self._counter = 0

    def send(self, message: EmailMessage) -> SendReceipt:
        self._counter += 1
        logger.info(
            "[console mail] from=%s to=%s subject=%r\n%s",
            self.from_email, message.recipient, message.subject, message.text_body,
        )
        return SendReceipt(message_id=f"console-{self._counter}")
