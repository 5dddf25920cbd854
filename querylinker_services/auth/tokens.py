"""
Session JWTs and password-reset tokens.

Reset tokens are random URL-safe strings; only their sha256 digest is stored.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from querylinker_core.errors import AuthenticationFailed

ALGORITHM = "HS256"


def create_session_token(user_id: int, email: str, secret: str, days: int) -> tuple[str, datetime]:
    expires_at = datetime.now(timezone.utc) + timedelta(days=days)
    # jti keeps tokens of the same user and second distinct, so each maps to one session row
    payload = {"sub": str(user_id), "email": email, "exp": expires_at, "jti": secrets.token_hex(8)}
    token = jwt.encode(payload, secret, algorithm=ALGORITHM)
    return token, expires_at.replace(tzinfo=None)


def decode_session_token(token: str, secret: str) -> dict:
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as e:
        raise AuthenticationFailed("Invalid or expired session token") from e


def new_reset_token() -> str:
    return secrets.token_urlsafe(32)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
