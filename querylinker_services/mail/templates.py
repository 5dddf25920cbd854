"""
E-mail templates. Plain string interpolation, no template engine.
"""

from __future__ import annotations

import html
import re
from datetime import datetime

SUPPORT_EMAIL = "support@querylinker.com"

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_P_END_RE = re.compile(r"</p\s*>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<(style|script|head)[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_RUN_RE = re.compile(r"\n[ \t]*(\n[ \t]*)+")


def html_to_text(body: str) -> str:
    text = _STYLE_RE.sub("", body)
    text = _BR_RE.sub("\n", text)
    text = _P_END_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text).replace("\u00A0", " ")
    lines = [line.strip() for line in text.splitlines()]
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()


def _layout(title: str, inner: str) -> str:
    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{html.escape(title)}</title>
<style>
body {{ font-family: Arial, sans-serif; color: #1f2937; background: #f3f4f6; }}
.container {{ max-width: 600px; margin: 0 auto; background: #ffffff; padding: 32px; }}
.button {{ display: inline-block; padding: 12px 24px; background: #2563eb; color: #ffffff; text-decoration: none; border-radius: 6px; }}
.notice {{ background: #fef3c7; padding: 16px; border-radius: 6px; }}
.footer {{ color: #6b7280; font-size: 12px; margin-top: 32px; }}
</style>
</head>
<body>
<div class="container">
<h1>QueryLinker</h1>
{inner}
<div class="footer">
<p>Need help? Contact us at {SUPPORT_EMAIL}</p>
<p>&copy; {year} QueryLinker. All rights reserved.</p>
</div>
</div>
</body>
</html>"""


def generate_password_reset_email(name: str, reset_link: str, recipient_email: str) -> dict[str, str]:
    """
    Returns {"html", "text"}; the reset link appears in both.

    The HTML carries the link entity-escaped (a query string's & becomes &amp;),
    which browsers decode back to the exact link; tokens from new_reset_token()
    are URL-safe, so the app's own links appear byte for byte. The text part
    always carries the raw link.
    """
    safe_name = html.escape(name or "there")
    safe_link = html.escape(reset_link, quote=True)
    inner = f"""<h2>Reset your password</h2>
<p>Hi {safe_name},</p>
<p>We received a request to reset the password for your QueryLinker account ({html.escape(recipient_email)}).</p>
<p><a class="button" href="{safe_link}">Reset Password</a></p>
<p>If the button doesn't work, copy and paste this link into your browser:</p>
<p>{safe_link}</p>
<div class="notice">
<p><strong>Security notice:</strong></p>
<p>This link will expire in 15 minutes.<br>
If you didn't request this reset, please ignore this email.<br>
Never share this link with anyone.</p>
</div>"""
    body = _layout("Reset your QueryLinker password", inner)
    return {"html": body, "text": html_to_text(body)}


def generate_test_email(recipient: str, provider: str) -> dict[str, str]:
    sent_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    inner = f"""<h2>Test e-mail</h2>
<p>This is a test message for {html.escape(recipient)}.</p>
<p>Provider: {html.escape(provider)}<br>
Sent at: {sent_at}</p>
<p>If you can read this, e-mail delivery is working.</p>"""
    body = _layout("QueryLinker test e-mail", inner)
    return {"html": body, "text": html_to_text(body)}
