"""Device CRUD and power-state endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from homelink_api.access.dependencies import get_access_resolver
from homelink_api.access.resolver import AccessResolver, HomeRole
from homelink_api.auth.dependencies import CurrentUserContext, get_current_user_context
from homelink_api.db.database import get_db
from homelink_api.errors import NotFoundError
from homelink_api.models.home_models import Device
from homelink_api.models.schemas import (
    DeviceCreateRequest,
    DeviceResponse,
    DeviceStatusRequest,
    DeviceUpdateRequest,
    MessageResponse,
)
from homelink_api.routers.rooms import get_room_or_404, require_room_visible


router = APIRouter(prefix="/devices", tags=["devices"])


def _get_device_or_404(db: Session, device_id: uuid.UUID) -> Device:
    device = db.get(Device, str(device_id))
    if device is None:
        raise NotFoundError("Device not found")
    return device


@router.get("", response_model=list[DeviceResponse])
def list_devices(
    room_id: uuid.UUID = Query(...),
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    room = get_room_or_404(db, str(room_id))
    require_room_visible(resolver, room, current_user.user_id)
    return list(
        db.scalars(select(Device).where(Device.room_id == room.id).order_by(Device.name.asc()))
    )


@router.get("/{device_id}", response_model=DeviceResponse)
def get_device(
    device_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    device = _get_device_or_404(db, device_id)
    require_room_visible(resolver, device.room, current_user.user_id)
    return device


@router.post("", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
def create_device(
    payload: DeviceCreateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    room = get_room_or_404(db, str(payload.room_id))
    resolver.require_home_role(room.home_id, current_user.user_id, HomeRole.ADMIN)

    device = Device(
        room_id=room.id,
        name=payload.name.strip(),
        type=payload.type.strip(),
        status=payload.status.strip(),
    )
    db.add(device)
    db.commit()
    db.refresh(device)
    return device


@router.put("/{device_id}", response_model=DeviceResponse)
def update_device(
    device_id: uuid.UUID,
    payload: DeviceUpdateRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    device = _get_device_or_404(db, device_id)
    resolver.require_home_role(device.room.home_id, current_user.user_id, HomeRole.ADMIN)

    for field in ("name", "type", "status"):
        value = getattr(payload, field)
        if value is not None:
            setattr(device, field, value.strip())

    db.commit()
    db.refresh(device)
    return device


@router.patch("/{device_id}/status", response_model=DeviceResponse)
def update_device_status(
    device_id: uuid.UUID,
    payload: DeviceStatusRequest,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    device = _get_device_or_404(db, device_id)
    require_room_visible(resolver, device.room, current_user.user_id)

    device.status = payload.status.strip()
    db.commit()
    db.refresh(device)
    return device


@router.delete("/{device_id}", response_model=MessageResponse)
def delete_device(
    device_id: uuid.UUID,
    current_user: CurrentUserContext = Depends(get_current_user_context),
    resolver: AccessResolver = Depends(get_access_resolver),
    db: Session = Depends(get_db),
):
    device = _get_device_or_404(db, device_id)
    resolver.require_home_role(device.room.home_id, current_user.user_id, HomeRole.ADMIN)
    db.delete(device)
    db.commit()
    return MessageResponse(message="Device deleted")
