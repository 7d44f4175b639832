"""Password hashing, HS256 access tokens and refresh-session helpers."""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import json
import secrets
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from homelink_api.config import Settings
from homelink_api.models.identity_models import AuthSession, User


PBKDF2_PREFIX = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 390000
ACCESS_TOKEN_TYPE = "access"


class TokenExpiredError(Exception):
    """Raised when an access token is past its `exp` claim."""


class TokenInvalidError(Exception):
    """Raised when an access token is malformed or its signature does not match."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Current UTC time as stored in the naive DateTime columns."""
    return _utc_now().replace(tzinfo=None)


def _b64url_encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("utf-8").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()


def hash_password(plain_password: str) -> str:
    """Hash as pbkdf2_sha256$<iterations>$<salt_b64>$<hash_b64>."""
    salt = secrets.token_bytes(16)
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        plain_password.encode("utf-8"),
        salt,
        PBKDF2_ITERATIONS,
    )
    salt_b64 = base64.urlsafe_b64encode(salt).decode("utf-8")
    hash_b64 = base64.urlsafe_b64encode(derived).decode("utf-8")
    return f"{PBKDF2_PREFIX}${PBKDF2_ITERATIONS}${salt_b64}${hash_b64}"


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False

    parts = password_hash.split("$")
    if len(parts) != 4 or parts[0] != PBKDF2_PREFIX:
        return False

    _, raw_iterations, salt_b64, expected_b64 = parts
    try:
        iterations = int(raw_iterations)
        salt = _b64url_decode(salt_b64)
        expected = _b64url_decode(expected_b64)
    except (ValueError, binascii.Error):
        return False

    computed = hashlib.pbkdf2_hmac(
        "sha256",
        plain_password.encode("utf-8"),
        salt,
        iterations,
    )
    return hmac.compare_digest(computed, expected)


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(64)


def hash_refresh_token(refresh_token: str) -> str:
    return hashlib.sha256(refresh_token.encode("utf-8")).hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def authenticate_user(db: Session, login: str, password: str) -> User | None:
    """Look the user up by username or email and check the password."""
    identifier = login.strip()
    if not identifier:
        return None
    user = db.scalar(
        select(User).where(
            or_(User.username == identifier, User.email == normalize_email(identifier))
        )
    )
    if user is None or user.status != "active":
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(*, user: User, settings: Settings) -> tuple[str, int]:
    """Return a signed HS256 token and its lifetime in seconds."""
    if settings.auth_jwt_algorithm != "HS256":
        raise ValueError("Only HS256 is supported")

    issued_at = _utc_now()
    expires_delta = timedelta(minutes=settings.auth_access_token_minutes)
    payload: dict[str, Any] = {
        "sub": user.id,
        "username": user.username,
        "role": user.role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_delta).timestamp()),
    }
    header = {"alg": settings.auth_jwt_algorithm, "typ": "JWT"}

    segments = [
        _b64url_encode(json.dumps(part, separators=(",", ":"), sort_keys=True).encode("utf-8"))
        for part in (header, payload)
    ]
    signing_input = ".".join(segments).encode("utf-8")
    signature = _b64url_encode(_sign(signing_input, settings.auth_jwt_secret))
    return f"{segments[0]}.{segments[1]}.{signature}", int(expires_delta.total_seconds())


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    if settings.auth_jwt_algorithm != "HS256":
        raise TokenInvalidError("Unsupported JWT algorithm")

    parts = token.split(".")
    if len(parts) != 3:
        raise TokenInvalidError("Malformed JWT")

    header_segment, payload_segment, signature_segment = parts
    signing_input = f"{header_segment}.{payload_segment}".encode("utf-8")
    try:
        actual_signature = _b64url_decode(signature_segment)
    except (ValueError, binascii.Error) as exc:
        raise TokenInvalidError("Malformed JWT signature") from exc
    if not hmac.compare_digest(_sign(signing_input, settings.auth_jwt_secret), actual_signature):
        raise TokenInvalidError("Invalid JWT signature")

    try:
        header = json.loads(_b64url_decode(header_segment).decode("utf-8"))
        payload = json.loads(_b64url_decode(payload_segment).decode("utf-8"))
    except (ValueError, binascii.Error, UnicodeDecodeError) as exc:
        raise TokenInvalidError("Invalid JWT payload") from exc

    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise TokenInvalidError("Invalid JWT payload")
    if header.get("alg") != settings.auth_jwt_algorithm:
        raise TokenInvalidError("Invalid JWT algorithm")

    try:
        exp = int(payload.get("exp", 0))
    except (TypeError, ValueError) as exc:
        raise TokenInvalidError("Invalid JWT expiry") from exc
    if exp <= int(_utc_now().timestamp()):
        raise TokenExpiredError("JWT expired")

    return payload


def build_auth_session(
    *,
    user_id: str,
    refresh_token: str,
    settings: Settings,
    user_agent: str | None,
    ip_address: str | None,
) -> AuthSession:
    return AuthSession(
        user_id=user_id,
        refresh_token_hash=hash_refresh_token(refresh_token),
        user_agent=user_agent,
        ip_address=ip_address,
        expires_at=utc_now_naive() + timedelta(days=settings.auth_refresh_token_days),
    )


def is_session_active(session: AuthSession, now: datetime | None = None) -> bool:
    current = now or utc_now_naive()
    return session.revoked_at is None and session.expires_at > current
