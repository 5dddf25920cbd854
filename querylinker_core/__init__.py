"""
QueryLinker Core - Shared config, database models, schemas and error kinds.

This package contains:
- Configuration settings (pydantic-settings)
- Database models (SQLAlchemy)
- Database connection and session management
- Pydantic schemas for the API
- Error kinds raised by the services
"""

from querylinker_core.config import settings
from querylinker_core.db import Base, engine, SessionLocal
from querylinker_core.errors import (
    QueryLinkerError,
    ConfigurationMissing,
    AuthenticationFailed,
    EmbeddingProviderError,
    InvalidSearchRequest,
)
from querylinker_core.models import User, UserSession, PasswordResetToken, Solution, SolutionChunk

__all__ = [
    "settings",
    "Base",
    "engine",
    "SessionLocal",
    "QueryLinkerError",
    "ConfigurationMissing",
    "AuthenticationFailed",
    "EmbeddingProviderError",
    "InvalidSearchRequest",
    "User",
    "UserSession",
    "PasswordResetToken",
    "Solution",
    "SolutionChunk",
]
