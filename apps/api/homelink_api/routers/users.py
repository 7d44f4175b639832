"""User profile endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.auth.security import normalize_email
from homelink_api.db.database import get_db
from homelink_api.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from homelink_api.models.identity_models import User
from homelink_api.models.schemas import MessageResponse, UserResponse, UserUpdateRequest


router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_user_context)],
)


def _get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, str(user_id))
    if user is None:
        raise NotFoundError("User not found")
    return user


def _require_self(current_user: CurrentUserContext, user: User) -> None:
    if current_user.user_id != user.id:
        raise AuthorizationError("Users can only modify their own account")


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return list(db.scalars(select(User).order_by(User.username.asc())))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: uuid.UUID, db: Session = Depends(get_db)):
    return _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db),
):
    user = _get_user_or_404(db, user_id)
    _require_self(current_user, user)

    if payload.email is not None:
        email = normalize_email(payload.email)
        if "@" not in email:
            raise ValidationError("Invalid email format")
        existing = db.scalar(select(User).where(User.email == email))
        if existing and existing.id != user.id:
            raise ConflictError("Email already in use")
        user.email = email

    for field in ("first_name", "last_name", "phone_number"):
        if field in payload.model_fields_set:
            value = getattr(payload, field)
            if value is not None:
                value = value.strip() or None
            setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db),
):
    user = _get_user_or_404(db, user_id)
    _require_self(current_user, user)
    db.delete(user)
    db.commit()
    return MessageResponse(message="User deleted")
