from datetime import timedelta

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from querylinker_core.config import settings
from querylinker_core.errors import AccountConflict
from querylinker_core.models import IncidentLink, PasswordResetToken, User, UserSession, utcnow
from querylinker_services.auth.google_oauth import OAuthIdentity
from querylinker_services.auth.tokens import create_session_token, hash_reset_token, new_reset_token


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.scalar(select(User).where(User.email == email.strip().lower()))


def create_user(session: Session, *, email: str, full_name: str, password_hash: str = "",
                avatar_url: str | None = None, google_sub: str | None = None,
                email_verified: bool = False) -> User:
    user = User(
        email=email.strip().lower(),
        full_name=full_name,
        password_hash=password_hash,
        avatar_url=avatar_url,
        google_sub=google_sub,
        email_verified=email_verified,
        role="user",
        is_active=True,
        preferences={},
    )
    session.add(user)
    session.flush()
    return user


def upsert_oauth_user(session: Session, identity: OAuthIdentity) -> tuple[User, bool]:
    """
    Find the user for a verified Google identity, creating it on first login.

    An existing account with the same e-mail is linked only when Google has
    verified that address and the account is not tied to another Google subject.

    Returns:
        (user, is_new_user)

    Raises:
        AccountConflict: the e-mail belongs to an account this identity may not claim.
    """
    user = session.scalar(select(User).where(User.google_sub == identity.subject_id))
    if user is None:
        user = get_user_by_email(session, identity.email)
        if user is not None:
            if not identity.email_verified:
                raise AccountConflict(
                    "An account with this email already exists. Sign in with your password to link Google."
                )
            if user.google_sub and user.google_sub != identity.subject_id:
                raise AccountConflict("This email is already linked to a different Google account.")
    if user is None:
        user = create_user(
            session,
            email=identity.email,
            full_name=identity.name,
            avatar_url=identity.picture_url,
            google_sub=identity.subject_id,
            email_verified=identity.email_verified,
        )
        return user, True

    # existing password account signing in with Google for the first time gets linked
    if not user.google_sub:
        user.google_sub = identity.subject_id
    if identity.picture_url and not user.avatar_url:
        user.avatar_url = identity.picture_url
    user.email_verified = user.email_verified or identity.email_verified
    session.flush()
    return user, False


def start_session(session: Session, user: User, *, remember_me: bool = False,
                  device_info: str | None = None, ip_address: str | None = None) -> str:
    days = settings.JWT_REMEMBER_ME_DAYS if remember_me else settings.JWT_EXPIRES_DAYS
    token, expires_at = create_session_token(user.id, user.email, settings.JWT_SECRET, days)
    session.add(UserSession(
        user_id=user.id, token=token, expires_at=expires_at,
        device_info=device_info, ip_address=ip_address,
    ))
    user.last_login = utcnow()
    session.flush()
    return token


def delete_sessions(session: Session, user_id: int) -> None:
    session.execute(delete(UserSession).where(UserSession.user_id == user_id))


def create_reset_token(session: Session, user: User) -> str:
    """Replace any previous reset tokens of the user; returns the raw token to e-mail."""
    session.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))
    raw = new_reset_token()
    session.add(PasswordResetToken(
        user_id=user.id,
        token_hash=hash_reset_token(raw),
        expires_at=utcnow() + timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES),
        used=False,
    ))
    session.flush()
    return raw


def consume_reset_token(session: Session, raw_token: str) -> User | None:
    """Mark a valid (unused, unexpired) token as used and return its user."""
    row = session.scalar(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == hash_reset_token(raw_token),
            PasswordResetToken.used.is_(False),
            PasswordResetToken.expires_at > utcnow(),
        )
    )
    if row is None:
        return None
    row.used = True
    row.used_at = utcnow()
    session.flush()
    return row.user


def get_active_session(session: Session, token: str) -> UserSession | None:
    """The stored session for a token, if it was not revoked and has not expired."""
    return session.scalar(
        select(UserSession).where(UserSession.token == token, UserSession.expires_at > utcnow())
    )


def delete_session_token(session: Session, token: str) -> int:
    return session.execute(delete(UserSession).where(UserSession.token == token)).rowcount


def link_to_incident(session: Session, *, incident_number: str, suggestion_id: str, system: str,
                     title: str, link: str | None, user_id: int | None) -> tuple[IncidentLink, bool]:
    """
    Record that a suggestion was linked to an incident.

    Returns:
        (link, created); linking the same suggestion twice returns the first link.
    """
    existing = session.scalar(
        select(IncidentLink).where(
            IncidentLink.incident_number == incident_number,
            IncidentLink.system == system,
            IncidentLink.suggestion_id == suggestion_id,
        )
    )
    if existing is not None:
        return existing, False
    row = IncidentLink(
        incident_number=incident_number, suggestion_id=suggestion_id, system=system,
        title=title, link=link, user_id=user_id,
    )
    session.add(row)
    session.flush()
    return row, True


def list_incident_links(session: Session, incident_number: str) -> list[IncidentLink]:
    return list(session.scalars(
        select(IncidentLink)
        .where(IncidentLink.incident_number == incident_number)
        .order_by(IncidentLink.created_at, IncidentLink.id)
    ))
