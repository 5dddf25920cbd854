"""
E-mail delivery: transports, the dispatch service and message templates.
"""

from querylinker_services.mail.service import EmailResult, EmailService, EmailStatus
from querylinker_services.mail.templates import generate_password_reset_email, generate_test_email, html_to_text
from querylinker_services.mail.transports import (
    ConsoleTransport,
    EmailMessage,
    EtherealTransport,
    MailTransport,
    SmtpTransport,
)

__all__ = [
    "EmailResult",
    "EmailService",
    "EmailStatus",
    "EmailMessage",
    "MailTransport",
    "SmtpTransport",
    "EtherealTransport",
    "ConsoleTransport",
    "generate_password_reset_email",
    "generate_test_email",
    "html_to_text",
]
