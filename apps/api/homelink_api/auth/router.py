"""Authentication endpoints: register, login, refresh, logout, and identity."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.auth.schemas import (
    AuthTokenPairResponse,
    AuthUserResponse,
    LoginRequest,
    LogoutRequest,
    LogoutResponse,
    RefreshRequest,
    RegisterRequest,
)
from homelink_api.auth.security import (
    authenticate_user,
    build_auth_session,
    create_access_token,
    generate_refresh_token,
    hash_password,
    hash_refresh_token,
    is_session_active,
    normalize_email,
    utc_now_naive,
)
from homelink_api.config import settings
from homelink_api.db.database import get_db
from homelink_api.errors import AuthenticationError, ConflictError, ValidationError
from homelink_api.logging_service import get_logger, log_with_context
from homelink_api.models.identity_models import AuthSession, User


router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


def _client_ip(request: Request) -> str | None:
    if not request.client:
        return None
    return request.client.host


def _user_payload(user: User) -> AuthUserResponse:
    return AuthUserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        status=user.status,
        last_login_at=user.last_login_at,
    )


def _issue_token_pair(
    db: Session,
    user: User,
    request: Request,
    *,
    previous: AuthSession | None = None,
) -> AuthTokenPairResponse:
    access_token, expires_in = create_access_token(user=user, settings=settings)
    refresh_token = generate_refresh_token()
    db.add(
        build_auth_session(
            user_id=user.id,
            refresh_token=refresh_token,
            settings=settings,
            user_agent=request.headers.get("user-agent")
            or (previous.user_agent if previous else None),
            ip_address=_client_ip(request) or (previous.ip_address if previous else None),
        )
    )
    db.commit()
    return AuthTokenPairResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
    )


@router.post("/register", response_model=AuthUserResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
):
    username = payload.username.strip()
    email = normalize_email(payload.email)
    if not username:
        raise ValidationError("Username cannot be empty")
    if "@" not in email:
        raise ValidationError("Invalid email format")

    existing = db.scalar(
        select(User).where(or_(User.username == username, User.email == email))
    )
    if existing is not None:
        field = "Username" if existing.username == username else "Email"
        raise ConflictError(f"{field} already in use")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    log_with_context(logger, "INFO", "User registered", user_id=user.id)
    return _user_payload(user)


@router.post("/login", response_model=AuthTokenPairResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    user = authenticate_user(db, payload.login, payload.password)
    if not user:
        raise AuthenticationError("Invalid credentials")

    user.last_login_at = utc_now_naive()
    return _issue_token_pair(db, user, request)


@router.post("/refresh", response_model=AuthTokenPairResponse)
def refresh(
    payload: RefreshRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    current_session = db.scalar(
        select(AuthSession).where(
            AuthSession.refresh_token_hash == hash_refresh_token(payload.refresh_token)
        )
    )
    if not current_session:
        raise AuthenticationError("Invalid refresh token")

    now = utc_now_naive()
    if not is_session_active(current_session, now):
        raise AuthenticationError("Refresh token expired")
    if current_session.user.status != "active":
        raise AuthenticationError("User is disabled")

    current_session.revoked_at = now
    return _issue_token_pair(db, current_session.user, request, previous=current_session)


@router.post("/logout", response_model=LogoutResponse)
def logout(
    payload: LogoutRequest,
    db: Session = Depends(get_db),
):
    session = db.scalar(
        select(AuthSession).where(
            AuthSession.refresh_token_hash == hash_refresh_token(payload.refresh_token)
        )
    )
    if session and session.revoked_at is None:
        session.revoked_at = utc_now_naive()
        db.commit()

    return LogoutResponse(success=True)


@router.get("/me", response_model=AuthUserResponse)
def me(
    current_user: CurrentUserContext = Depends(get_current_user_context),
):
    return _user_payload(current_user.user)
