"""
Google sign-in.

Wraps google-auth-oauthlib (consent URL, code exchange) and google-auth (ID
token verification). Signature, expiry and audience checks are left entirely
to those libraries; this module extracts profile fields and refuses to run
without client credentials.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import google.auth.transport.requests
from google.oauth2 import id_token
from google_auth_oauthlib.flow import Flow

from querylinker_core.config import Settings
from querylinker_core.errors import AuthenticationFailed, ConfigurationMissing

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]


@dataclass(frozen=True)
class OAuthIdentity:
    subject_id: str
    email: str
    name: str
    picture_url: str | None
    email_verified: bool


TokenVerifier = Callable[[str, str], dict[str, Any]]


def _verify_with_google(token: str, audience: str) -> dict[str, Any]:
    return id_token.verify_oauth2_token(token, google.auth.transport.requests.Request(), audience)


def identity_from_payload(payload: dict[str, Any] | None) -> OAuthIdentity:
    if not payload or not payload.get("sub") or not payload.get("email"):
        raise ValueError("Invalid Google token payload")
    email = payload["email"]
    return OAuthIdentity(
        subject_id=str(payload["sub"]),
        email=email,
        name=payload.get("name") or email.split("@")[0],
        picture_url=payload.get("picture"),
        email_verified=bool(payload.get("email_verified", False)),
    )


class GoogleOAuthAdapter:
    def __init__(self, client_id: str | None, client_secret: str | None, redirect_uri: str,
                 enabled: bool = True, flow_factory: Callable[[], Flow] | None = None,
                 token_verifier: TokenVerifier | None = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.enabled = enabled
        self._flow_factory = flow_factory or self._make_flow
        self._verify = token_verifier or _verify_with_google

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleOAuthAdapter":
        if settings.OAUTH_PROVIDER == "google" and not (settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET):
            logger.warning("OAUTH_PROVIDER=google but GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET are not set")
        return cls(
            settings.GOOGLE_CLIENT_ID,
            settings.GOOGLE_CLIENT_SECRET,
            settings.GOOGLE_REDIRECT_URI,
            enabled=settings.OAUTH_PROVIDER == "google",
        )

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.client_id and self.client_secret)

    def _require_config(self) -> None:
        if not self.enabled:
            raise ConfigurationMissing("Google OAuth is disabled (OAUTH_PROVIDER=disabled)")
        if not (self.client_id and self.client_secret):
            raise ConfigurationMissing("Google OAuth not configured: GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required")

    def _make_flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        # the callback arrives on a different request, so no PKCE verifier to carry over
        return Flow.from_client_config(
            client_config, scopes=SCOPES, redirect_uri=self.redirect_uri, autogenerate_code_verifier=False,
        )

    def generate_auth_url(self) -> str:
        self._require_config()
        auth_url, _state = self._flow_factory().authorization_url(
            access_type="offline",
            prompt="select_account",
            include_granted_scopes="true",
        )
        return auth_url

    def exchange_code_for_identity(self, code: str) -> OAuthIdentity:
        self._require_config()
        try:
            flow = self._flow_factory()
            token = flow.fetch_token(code=code)
            raw_id_token = token.get("id_token")
            if not raw_id_token:
                raise ValueError("Token response did not include an id_token")
            return identity_from_payload(self._verify(raw_id_token, self.client_id))
        except Exception as e:
            logger.error("Google OAuth code exchange failed: %s", e)
            raise AuthenticationFailed("Failed to authenticate with Google") from e

    def verify_identity_token(self, token: str) -> OAuthIdentity:
        self._require_config()
        try:
            return identity_from_payload(self._verify(token, self.client_id))
        except Exception as e:
            logger.error("Google ID token verification failed: %s", e)
            raise AuthenticationFailed("Failed to verify Google ID token") from e
