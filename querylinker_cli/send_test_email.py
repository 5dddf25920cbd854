#!/usr/bin/env python3
"""
Send a test e-mail (or a sample password-reset e-mail) through the configured transport.

Example:
    EMAIL_PROVIDER=test python -m querylinker_cli.send_test_email you@example.com
    python -m querylinker_cli.send_test_email you@example.com --reset-template
"""

from __future__ import annotations

import argparse

from querylinker_core.config import settings
from querylinker_core.logging_utils import setup_logging
from querylinker_services.mail.service import EmailService
from querylinker_services.mail.templates import generate_password_reset_email, generate_test_email


def main() -> None:
    parser = argparse.ArgumentParser(description="Check e-mail delivery with the configured EMAIL_PROVIDER.")
    parser.add_argument("recipient")
    parser.add_argument("--reset-template", action="store_true", help="Send the password-reset template instead.")
    args = parser.parse_args()

    setup_logging()
    service = EmailService.from_settings(settings)
    if args.reset_template:
        link = f"{settings.BASE_URL.rstrip('/')}/reset-password?token=example-token"
        content = generate_password_reset_email("there", link, args.recipient)
        subject = "Reset your QueryLinker password"
    else:
        content = generate_test_email(args.recipient, service.provider)
        subject = "QueryLinker test e-mail"

    result = service.send_email(args.recipient, subject, content["html"], content["text"])
    print(f"provider:   {result.provider}")
    print(f"sent:       {result.success}")
    print(f"time:       {result.delivery_time_ms}ms")
    if result.message_id:
        print(f"message id: {result.message_id}")
    if result.preview_url:
        print(f"preview:    {result.preview_url}")
    if result.error:
        print(f"error:      {result.error}")
    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
