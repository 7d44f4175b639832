"""Home CRUD endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from homelink_api.access.dependencies import get_access_resolver
from homelink_api.access.resolver import AccessResolver, HomeRole
from homelink_api.access.time_windows import is_valid_timezone
from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.db.database import get_db
from homelink_api.errors import ValidationError
from homelink_api.logging_service import get_logger, log_with_context
from homelink_api.models.identity_models import Home
from homelink_api.models.schemas import (
    HomeCreateRequest,
    HomeResponse,
    HomeUpdateRequest,
    MessageResponse,
)


router = APIRouter(prefix="/homes", tags=["homes"])
logger = get_logger(__name__)


def _home_payload(home: Home, role: HomeRole) -> HomeResponse:
    return HomeResponse(
        id=home.id,
        name=home.name,
        owner_id=home.owner_id,
        timezone=home.timezone,
        created_at=home.created_at,
        role=role.value,
    )


def _clean_timezone(value: str) -> str:
    cleaned = value.strip() or "UTC"
    if not is_valid_timezone(cleaned):
        raise ValidationError(f"Unknown timezone '{cleaned}'")
    return cleaned


@router.get("", response_model=list[HomeResponse])
def list_homes(
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    return [
        _home_payload(home, role)
        for home, role in resolver.accessible_homes(current_user.user_id)
    ]


@router.post("", response_model=HomeResponse, status_code=status.HTTP_201_CREATED)
def create_home(
    payload: HomeCreateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db),
):
    name = payload.name.strip()
    if not name:
        raise ValidationError("Home name cannot be empty")

    home = Home(
        name=name,
        owner_id=current_user.user_id,
        timezone=_clean_timezone(payload.timezone),
    )
    db.add(home)
    db.commit()
    db.refresh(home)

    log_with_context(logger, "INFO", "Home created", home_id=home.id, user_id=current_user.user_id)
    return _home_payload(home, HomeRole.ADMIN)


@router.get("/{home_id}", response_model=HomeResponse)
def get_home(
    home_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.MEMBER)
    return _home_payload(home, resolver.role_in_home(home, current_user.user_id))


@router.put("/{home_id}", response_model=HomeResponse)
def update_home(
    home_id: uuid.UUID,
    payload: HomeUpdateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.ADMIN)

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("Home name cannot be empty")
        home.name = name
    if payload.timezone is not None:
        home.timezone = _clean_timezone(payload.timezone)

    db.commit()
    db.refresh(home)
    return _home_payload(home, HomeRole.ADMIN)


@router.delete("/{home_id}", response_model=MessageResponse)
def delete_home(
    home_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.ADMIN)
    db.delete(home)
    db.commit()

    log_with_context(logger, "INFO", "Home deleted", home_id=str(home_id), user_id=current_user.user_id)
    return MessageResponse(message="Home deleted")
