"""Tests for e-mail templates, transports and the dispatch service."""

import html
import re
import smtplib
import threading
from types import SimpleNamespace

import pytest

from querylinker_core.config import Settings
from querylinker_services.auth.tokens import new_reset_token
from querylinker_services.mail.service import EmailService
from querylinker_services.mail.templates import generate_password_reset_email, generate_test_email, html_to_text
from querylinker_services.mail.transports import ConsoleTransport, EmailMessage, EtherealTransport, MailTransport

from tests.utils.fakes import RecordingTransport


class FailingTransport(MailTransport):
    name = "smtp"

    def send(self, message):
        raise smtplib.SMTPRecipientsRefused({message.recipient: (550, b"relay denied")})


def test_password_reset_email_contains_link():
    content = generate_password_reset_email("Alice", "https://x/y", "a@b.com")

    assert "https://x/y" in content["html"]
    assert 'href="https://x/y"' in content["html"]
    assert "https://x/y" in content["text"]
    assert not re.search(r"<[^>]+>", content["text"])


def test_password_reset_email_query_string_link():
    """A link with & is entity-escaped in the HTML and decodes back to the exact link."""
    link = "https://x/reset?token=a&next=/home"
    content = generate_password_reset_email("Alice", link, "a@b.com")

    hrefs = re.findall(r'href="([^"]+)"', content["html"])
    assert [html.unescape(h) for h in hrefs] == [link]
    assert "token=a&amp;next=/home" in content["html"]
    assert link in content["text"]


def test_password_reset_email_app_link_is_literal():
    link = f"http://localhost:8080/reset-password?token={new_reset_token()}"
    content = generate_password_reset_email("Alice", link, "a@b.com")

    assert link in content["html"]
    assert link in content["text"]


def test_password_reset_email_security_notice():
    content = generate_password_reset_email("Alice", "https://x/y", "a@b.com")
    text = content["text"]

    assert "Hi Alice," in text
    assert "This link will expire in 15 minutes" in text
    assert "Never share this link with anyone" in text
    assert "support@querylinker.com" in text


def test_html_to_text():
    body = "<p>Line one<br>Line two</p><p>Tom &amp; Jerry &lt;3&nbsp;!</p>"
    assert html_to_text(body) == "Line one\nLine two\n\nTom & Jerry <3 !"


def test_send_email_failure_returns_result():
    service = EmailService(lambda: FailingTransport(), provider="smtp")
    result = service.send_email("user@example.com", "Hi", "<p>Hello</p>")

    assert result.success is False
    assert result.error
    assert result.provider == "smtp"
    assert result.message_id is None


def test_send_email_transport_init_failure_returns_result():
    def broken_factory():
        raise ValueError("EMAIL_PROVIDER=smtp requires SMTP_HOST")

    service = EmailService(broken_factory, provider="smtp")
    result = service.send_email("user@example.com", "Hi", "<p>Hello</p>")

    assert result.success is False
    assert "SMTP_HOST" in result.error


def test_send_email_derives_text_body():
    outbox = []
    service = EmailService(lambda: RecordingTransport(outbox))
    result = service.send_email("user@example.com", "Hi", "<h1>Title</h1><p>Body &amp; more</p>")

    assert result.success is True
    assert result.message_id == "test-1"
    assert outbox[0].text_body == "TitleBody & more"


def test_transport_created_once_across_threads():
    outbox = []
    created = []

    def factory():
        created.append(1)
        return RecordingTransport(outbox)

    service = EmailService(factory)
    threads = [
        threading.Thread(target=service.send_email, args=(f"u{i}@example.com", "Hi", "<p>x</p>"))
        for i in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(created) == 1
    assert len(outbox) == 8


def test_console_transport():
    result = EmailService(lambda: ConsoleTransport("noreply@querylinker.com")).send_email(
        "user@example.com", "Hi", "<p>Hello</p>",
    )
    assert result.success is True
    assert result.message_id == "console-1"


class FakeHttp:
    def __init__(self, payload):
        self.payload = payload
        self.posts = []

    def post(self, url, json, timeout):
        self.posts.append((url, json))
        return SimpleNamespace(raise_for_status=lambda: None, json=lambda: self.payload)


def test_ethereal_account_and_preview_url(monkeypatch):
    http = FakeHttp({
        "status": "success",
        "user": "abc@ethereal.email",
        "pass": "secret",
        "smtp": {"host": "smtp.ethereal.email", "port": 587, "secure": False},
    })
    transport = EtherealTransport.create_account("noreply@querylinker.com", "QueryLinker", http=http)

    assert http.posts[0][0] == "https://api.nodemailer.com/user"
    assert transport.host == "smtp.ethereal.email"
    assert transport.username == "abc@ethereal.email"
    assert transport.use_tls is True

    monkeypatch.setattr(
        transport, "_deliver",
        lambda mime, recipient: (250, b"Accepted [STATUS=new MSGID=YYYY.ZZZZ]"),
    )
    receipt = transport.send(EmailMessage("user@example.com", "Hi", "<p>x</p>", "x"))

    assert receipt.preview_url == "https://ethereal.email/message/YYYY.ZZZZ"
    assert receipt.message_id.startswith("<")


def test_ethereal_account_failure():
    http = FakeHttp({"status": "error", "error": "rate limited"})
    with pytest.raises(RuntimeError):
        EtherealTransport.create_account("noreply@querylinker.com", "QueryLinker", http=http)


def test_status_reports_missing_smtp_credentials():
    settings = Settings(_env_file=None, EMAIL_PROVIDER="smtp", SMTP_HOST="smtp.example.com")
    service = EmailService.from_settings(settings)
    status = service.status(settings)

    assert status.provider == "smtp"
    assert status.configured is False
    assert status.recommendations


def test_test_email_template():
    content = generate_test_email("user@example.com", "console")
    assert "user@example.com" in content["text"]
    assert "Provider: console" in content["text"]
