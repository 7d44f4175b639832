"""Time-windowed room access permissions."""

from __future__ import annotations

from datetime import time
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from homelink_api.access.dependencies import get_access_resolver, get_schema_capabilities
from homelink_api.access.resolver import AccessResolver, HomeRole
from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.db.capabilities import ACCESS_PERMISSIONS, SchemaCapabilities
from homelink_api.db.database import get_db
from homelink_api.errors import AuthorizationError, NotFoundError, ValidationError
from homelink_api.models.home_models import AccessPermission
from homelink_api.models.identity_models import User
from homelink_api.models.schemas import (
    AccessPermissionRequest,
    AccessPermissionResponse,
    MessageResponse,
    VisibleRoomResponse,
)


router = APIRouter(prefix="/access-permissions", tags=["access-permissions"])


def _to_seconds(value: time) -> time:
    return value.replace(microsecond=0, tzinfo=None)


def _get_permission_or_404(db: Session, permission_id: uuid.UUID) -> AccessPermission:
    permission = db.get(AccessPermission, str(permission_id))
    if permission is None:
        raise NotFoundError("Access permission not found")
    return permission


def _apply_payload(db: Session, permission: AccessPermission, payload: AccessPermissionRequest) -> None:
    user_id = str(payload.user_id)
    if db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    room_name = payload.room_name.strip()
    if not room_name:
        raise ValidationError("Room name cannot be empty")

    permission.home_id = str(payload.home_id)
    permission.user_id = user_id
    permission.room_name = room_name
    permission.day_of_week = payload.day_of_week
    permission.start_time = _to_seconds(payload.start_time)
    permission.end_time = _to_seconds(payload.end_time)


@router.get("/filter", response_model=list[VisibleRoomResponse])
def filter_visible_rooms(
    home_id: uuid.UUID = Query(...),
    user_id: Optional[uuid.UUID] = Query(default=None),
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Rooms the user may see right now; defaults to the caller."""
    target_user_id = str(user_id) if user_id else current_user.user_id
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.MEMBER)
    if target_user_id != current_user.user_id:
        if resolver.role_in_home(home, current_user.user_id) is not HomeRole.ADMIN:
            raise AuthorizationError("Only the home owner can inspect other users' access")
    return [
        VisibleRoomResponse(room_name=name)
        for name in sorted(resolver.visible_rooms(home.id, target_user_id))
    ]


@router.get("", response_model=list[AccessPermissionResponse])
def list_permissions(
    home_id: uuid.UUID = Query(...),
    user_id: Optional[uuid.UUID] = Query(default=None),
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    """Admins list every window in the home; members only their own."""
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.MEMBER)
    is_admin = resolver.role_in_home(home, current_user.user_id) is HomeRole.ADMIN

    target_user_id = str(user_id) if user_id else None
    if not is_admin:
        if target_user_id not in (None, current_user.user_id):
            raise AuthorizationError("Only the home owner can inspect other users' access")
        target_user_id = current_user.user_id
    if not capabilities.readable(ACCESS_PERMISSIONS, home.id):
        return []

    stmt = select(AccessPermission).where(AccessPermission.home_id == home.id)
    if target_user_id:
        stmt = stmt.where(AccessPermission.user_id == target_user_id)
    stmt = stmt.order_by(AccessPermission.day_of_week.asc(), AccessPermission.start_time.asc())
    return list(db.scalars(stmt))


@router.post("", response_model=AccessPermissionResponse, status_code=status.HTTP_201_CREATED)
def create_permission(
    payload: AccessPermissionRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    db: Session = Depends(get_db),
):
    resolver.require_home_role(str(payload.home_id), current_user.user_id, HomeRole.ADMIN)
    capabilities.require(ACCESS_PERMISSIONS, db.get_bind())

    permission = AccessPermission()
    _apply_payload(db, permission, payload)
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return permission


@router.put("/{permission_id}", response_model=AccessPermissionResponse)
def update_permission(
    permission_id: uuid.UUID,
    payload: AccessPermissionRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    permission = _get_permission_or_404(db, permission_id)
    resolver.require_home_role(permission.home_id, current_user.user_id, HomeRole.ADMIN)
    if str(payload.home_id) != permission.home_id:
        resolver.require_home_role(str(payload.home_id), current_user.user_id, HomeRole.ADMIN)

    _apply_payload(db, permission, payload)
    db.commit()
    db.refresh(permission)
    return permission


@router.delete("/{permission_id}", response_model=MessageResponse)
def delete_permission(
    permission_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    permission = _get_permission_or_404(db, permission_id)
    resolver.require_home_role(permission.home_id, current_user.user_id, HomeRole.ADMIN)
    db.delete(permission)
    db.commit()
    return MessageResponse(message="Access permission deleted")
