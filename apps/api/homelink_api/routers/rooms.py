"""Room CRUD endpoints gated by home role and access windows."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from homelink_api.access.dependencies import get_access_resolver
from homelink_api.access.resolver import AccessResolver, HomeRole
from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.db.database import get_db
from homelink_api.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from homelink_api.models.home_models import Room
from homelink_api.models.schemas import (
    MessageResponse,
    RoomCreateRequest,
    RoomResponse,
    RoomUpdateRequest,
)


router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_room_or_404(db: Session, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise NotFoundError("Room not found")
    return room


def require_room_visible(resolver: AccessResolver, room: Room, user_id: str) -> None:
    """Raise unless the user may currently see the room."""
    resolver.require_home_role(room.home_id, user_id, HomeRole.MEMBER)
    if not resolver.can_view_room(room, user_id):
        raise AuthorizationError("Room is not accessible at this time")


def _ensure_unique_name(db: Session, home_id: str, name: str, exclude_id: str | None = None) -> None:
    stmt = select(Room.id).where(Room.home_id == home_id, Room.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Room.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError(f"Room '{name}' already exists in this home")


def _commit_room(db: Session, name: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Room '{name}' already exists in this home") from exc


@router.get("", response_model=list[RoomResponse])
def list_rooms(
    home_id: uuid.UUID = Query(...),
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    """Admins see every room; members see the rooms open to them right now."""
    home = resolver.require_home_role(str(home_id), current_user.user_id, HomeRole.MEMBER)
    stmt = select(Room).where(Room.home_id == home.id).order_by(Room.name.asc())
    if resolver.role_in_home(home, current_user.user_id) is not HomeRole.ADMIN:
        visible = resolver.visible_rooms(home.id, current_user.user_id)
        if not visible:
            return []
        stmt = stmt.where(Room.name.in_(sorted(visible)))
    return list(db.scalars(stmt))


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    room = get_room_or_404(db, str(room_id))
    require_room_visible(resolver, room, current_user.user_id)
    return room


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    home = resolver.require_home_role(str(payload.home_id), current_user.user_id, HomeRole.ADMIN)
    name = payload.name.strip()
    if not name:
        raise ValidationError("Room name cannot be empty")
    _ensure_unique_name(db, home.id, name)

    room = Room(home_id=home.id, name=name, circuit_id=payload.circuit_id)
    db.add(room)
    _commit_room(db, name)
    db.refresh(room)
    return room


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: uuid.UUID,
    payload: RoomUpdateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    room = get_room_or_404(db, str(room_id))
    resolver.require_home_role(room.home_id, current_user.user_id, HomeRole.ADMIN)

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("Room name cannot be empty")
        _ensure_unique_name(db, room.home_id, name, exclude_id=room.id)
        room.name = name
    if "circuit_id" in payload.model_fields_set:
        room.circuit_id = payload.circuit_id

    _commit_room(db, room.name)
    db.refresh(room)
    return room


@router.delete("/{room_id}", response_model=MessageResponse)
def delete_room(
    room_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    room = get_room_or_404(db, str(room_id))
    resolver.require_home_role(room.home_id, current_user.user_id, HomeRole.ADMIN)
    db.delete(room)
    db.commit()
    return MessageResponse(message="Room deleted")
