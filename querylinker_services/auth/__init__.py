"""
Authentication helpers: Google sign-in, password hashing and tokens.
"""

from querylinker_services.auth.google_oauth import GoogleOAuthAdapter, OAuthIdentity
from querylinker_services.auth.passwords import hash_password, verify_password
from querylinker_services.auth.tokens import (
    create_session_token,
    decode_session_token,
    hash_reset_token,
    new_reset_token,
)

__all__ = [
    "GoogleOAuthAdapter",
    "OAuthIdentity",
    "hash_password",
    "verify_password",
    "create_session_token",
    "decode_session_token",
    "hash_reset_token",
    "new_reset_token",
]
