import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from querylinker_core.config import settings
from querylinker_core.models import User, UserSession
from querylinker_core.schemas import (
    AuthResponse,
    AuthUrlResponse,
    ForgotPasswordRequest,
    GoogleCallbackRequest,
    GoogleCredentialRequest,
    LoginRequest,
    MessageResponse,
    ProfileOut,
    ProfileResponse,
    ProfileUpdateRequest,
    ResetPasswordRequest,
    SignupRequest,
    UserOut,
)
from querylinker_api import crud
from querylinker_api.dependencies import (
    get_bearer_token,
    get_current_session,
    get_current_user,
    get_db,
    get_email_service,
    get_oauth_adapter,
)
from querylinker_services.auth.google_oauth import GoogleOAuthAdapter, OAuthIdentity
from querylinker_services.auth.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from querylinker_services.mail.service import EmailService
from querylinker_services.mail.templates import generate_password_reset_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, you will receive a password reset link."


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        avatar_url=user.avatar_url,
        preferences=user.preferences or {},
    )


def _client_info(request: Request) -> dict:
    return {
        "device_info": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(400, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


@router.post("/signup", response_model=AuthResponse)
def signup(payload: SignupRequest, request: Request, db: Session = Depends(get_db)):
    if not payload.email.strip() or not payload.full_name.strip():
        raise HTTPException(400, "Full name and email are required")
    _check_password(payload.password)
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(409, "An account with this email already exists")

    user = crud.create_user(
        db, email=payload.email, full_name=payload.full_name.strip(),
        password_hash=hash_password(payload.password),
    )
    token = crud.start_session(db, user, **_client_info(request))
    logger.info("New account created for %s", user.email)
    return AuthResponse(success=True, message="Account created successfully", token=token,
                        user=_user_out(user), is_new_user=True)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(401, "Invalid email or password")
    if not user.is_active:
        raise HTTPException(403, "Account is disabled")

    token = crud.start_session(db, user, remember_me=payload.remember_me, **_client_info(request))
    return AuthResponse(success=True, message="Login successful", token=token, user=_user_out(user))


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db),
                    email_service: EmailService = Depends(get_email_service)):
    # same answer whether or not the account exists
    user = crud.get_user_by_email(db, payload.email)
    if user is None or not user.is_active:
        return MessageResponse(success=True, message=FORGOT_PASSWORD_MESSAGE)

    raw_token = crud.create_reset_token(db, user)
    reset_link = f"{settings.BASE_URL.rstrip('/')}/reset-password?token={raw_token}"
    content = generate_password_reset_email(user.full_name, reset_link, user.email)
    result = email_service.send_email(user.email, "Reset your QueryLinker password", content["html"], content["text"])
    if not result.success:
        logger.warning("Password reset e-mail to %s was not delivered: %s", user.email, result.error)
    return MessageResponse(success=True, message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    if not payload.token:
        raise HTTPException(400, "Reset token is required")
    _check_password(payload.new_password)

    user = crud.consume_reset_token(db, payload.token)
    if user is None:
        raise HTTPException(400, "Invalid or expired reset token")
    user.password_hash = hash_password(payload.new_password)
    crud.delete_sessions(db, user.id)
    logger.info("Password reset for %s", user.email)
    return MessageResponse(success=True, message="Password has been reset successfully. Please log in.")


@router.get("/google/url", response_model=AuthUrlResponse)
def google_auth_url(oauth: GoogleOAuthAdapter = Depends(get_oauth_adapter)):
    return AuthUrlResponse(success=True, auth_url=oauth.generate_auth_url())


def _google_login(db: Session, identity: OAuthIdentity, request: Request) -> AuthResponse:
    user, is_new = crud.upsert_oauth_user(db, identity)
    if not user.is_active:
        raise HTTPException(403, "Account is disabled")
    token = crud.start_session(db, user, **_client_info(request))
    return AuthResponse(
        success=True,
        message=f"Welcome {'to' if is_new else 'back to'} QueryLinker!",
        token=token,
        user=_user_out(user),
        is_new_user=is_new,
    )


@router.post("/google/callback", response_model=AuthResponse)
def google_callback(payload: GoogleCallbackRequest, request: Request, db: Session = Depends(get_db),
                    oauth: GoogleOAuthAdapter = Depends(get_oauth_adapter)):
    if not payload.code:
        raise HTTPException(400, "Authorization code is required")
    identity = oauth.exchange_code_for_identity(payload.code)
    return _google_login(db, identity, request)


@router.post("/google", response_model=AuthResponse)
def google_credential(payload: GoogleCredentialRequest, request: Request, db: Session = Depends(get_db),
                      oauth: GoogleOAuthAdapter = Depends(get_oauth_adapter)):
    if not payload.credential:
        raise HTTPException(400, "Google credential is required")
    identity = oauth.verify_identity_token(payload.credential)
    return _google_login(db, identity, request)


@router.post("/logout", response_model=MessageResponse)
def logout(token: str | None = Depends(get_bearer_token), db: Session = Depends(get_db)):
    # idempotent: an unknown or missing token still logs the client out
    if token:
        crud.delete_session_token(db, token)
    return MessageResponse(success=True, message="Logged out successfully")


def _profile_out(user: User) -> ProfileOut:
    return ProfileOut(
        **_user_out(user).model_dump(),
        email_verified=user.email_verified,
        created_at=user.created_at,
        last_login=user.last_login,
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return ProfileResponse(success=True, user=_profile_out(user))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(payload: ProfileUpdateRequest, current: UserSession = Depends(get_current_session),
                   db: Session = Depends(get_db)):
    user = current.user
    if payload.full_name is not None:
        if not payload.full_name.strip():
            raise HTTPException(400, "Full name cannot be empty")
        user.full_name = payload.full_name.strip()
    if payload.avatar_url is not None:
        user.avatar_url = payload.avatar_url or None
    if payload.preferences is not None:
        user.preferences = {**(user.preferences or {}), **payload.preferences}
    db.flush()
    return ProfileResponse(success=True, user=_profile_out(user))
