"""
Composition root.

Services are built once per process from settings. Endpoints receive them via
Depends(...), so tests swap them with app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from querylinker_core.config import settings
from querylinker_core.db import SessionLocal
from querylinker_core.errors import AuthenticationFailed
from querylinker_core.models import User, UserSession
from querylinker_api import crud
from querylinker_services.auth.google_oauth import GoogleOAuthAdapter
from querylinker_services.auth.tokens import decode_session_token
from querylinker_services.embeddings.embedder import Embedder, build_embedder
from querylinker_services.mail.service import EmailService
from querylinker_services.search.connectors import build_connectors
from querylinker_services.search.orchestrator import SearchOrchestrator, build_adapters
from querylinker_services.search.sync import SolutionSyncService

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@lru_cache
def get_embedder() -> Embedder:
    return build_embedder(settings)


@lru_cache
def get_orchestrator() -> SearchOrchestrator:
    embedder = get_embedder()
    return SearchOrchestrator(build_adapters(settings, SessionLocal, embedder), embedder)


@lru_cache
def get_sync_service() -> SolutionSyncService:
    return SolutionSyncService(build_connectors(settings), SessionLocal, get_embedder())


@lru_cache
def get_email_service() -> EmailService:
    return EmailService.from_settings(settings)


@lru_cache
def get_oauth_adapter() -> GoogleOAuthAdapter:
    return GoogleOAuthAdapter.from_settings(settings)


def get_bearer_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str | None:
    return credentials.credentials if credentials else None


def get_current_session(token: str | None = Depends(get_bearer_token), db: Session = Depends(get_db)) -> UserSession:
    """The signed-in session: a valid JWT that still has its session row (logout deletes it)."""
    if not token:
        raise AuthenticationFailed("Authentication required")
    decode_session_token(token, settings.JWT_SECRET)
    row = crud.get_active_session(db, token)
    if row is None or not row.user.is_active:
        raise AuthenticationFailed("Session expired or revoked")
    return row


def get_current_user(current: UserSession = Depends(get_current_session)) -> User:
    return current.user


def get_optional_user(token: str | None = Depends(get_bearer_token), db: Session = Depends(get_db)) -> User | None:
    if not token:
        return None
    return get_current_session(token, db).user
