"""FastAPI auth dependencies for HTTP routes and relay sockets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from homelink_api.auth.security import (
    ACCESS_TOKEN_TYPE,
    TokenExpiredError,
    TokenInvalidError,
    decode_access_token,
)
from homelink_api.config import settings
from homelink_api.db.database import get_db
from homelink_api.errors import AuthenticationError
from homelink_api.models.identity_models import User


@dataclass(slots=True)
class CurrentUserContext:
    user: User

    @property
    def user_id(self) -> str:
        return self.user.id


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header")
    return token.strip()


def user_from_access_token(token: str, db: Session) -> User:
    """Resolve an access token to an active user or raise AuthenticationError."""
    try:
        payload = decode_access_token(token, settings)
    except TokenExpiredError as exc:
        raise AuthenticationError("Access token expired") from exc
    except TokenInvalidError as exc:
        raise AuthenticationError("Invalid access token") from exc

    user_id = str(payload.get("sub") or "").strip()
    if not user_id or payload.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationError("Invalid access token payload")

    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    if user.status != "active":
        raise AuthenticationError("User is disabled")
    return user


def get_current_user_context(
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
    db: Session = Depends(get_db),
) -> CurrentUserContext:
    token = extract_bearer_token(authorization)
    return CurrentUserContext(user=user_from_access_token(token, db))
