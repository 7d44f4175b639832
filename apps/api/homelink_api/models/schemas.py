"""Pydantic models for API."""

from datetime import datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: str
    broker_state: str = "disabled"
    relay_connections: int = 0
    missing_relations: list[str] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    """Public user profile (never includes the password hash)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: str
    created_at: datetime


class UserUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=320)
    phone_number: Optional[str] = Field(default=None, max_length=32)


class HomeCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    timezone: str = Field(default="UTC", max_length=64)


class HomeUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    timezone: Optional[str] = Field(default=None, max_length=64)


class HomeResponse(BaseModel):
    """Home with the caller's resolved role."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    owner_id: str
    timezone: str
    created_at: datetime
    role: Optional[str] = None


class RoomCreateRequest(BaseModel):
    home_id: UUID
    name: str = Field(min_length=1, max_length=255)
    circuit_id: Optional[str] = Field(default=None, max_length=64)


class RoomUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    circuit_id: Optional[str] = Field(default=None, max_length=64)


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    home_id: str
    name: str
    circuit_id: Optional[str] = None
    created_at: datetime


class DeviceCreateRequest(BaseModel):
    room_id: UUID
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=50)
    status: str = Field(default="off", min_length=1, max_length=50)


class DeviceUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)


class DeviceStatusRequest(BaseModel):
    """Power-state change requested by any user who can see the room."""
    status: str = Field(min_length=1, max_length=50)


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_id: str
    name: str
    type: str
    status: str
    created_at: datetime


class HomeMemberCreateRequest(BaseModel):
    home_id: UUID
    user_id: UUID
    role: str = Field(default="member", min_length=1, max_length=32)


class HomeMemberUpdateRequest(BaseModel):
    role: str = Field(min_length=1, max_length=32)


class HomeMemberResponse(BaseModel):
    home_id: str
    user_id: str
    role: str
    username: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime


class HomeInviteCreateRequest(BaseModel):
    home_id: UUID
    email: str = Field(min_length=3, max_length=320)
    role: str = Field(default="member", min_length=1, max_length=32)


class HomeInviteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    home_id: str
    email: str
    role: str
    status: str
    invited_by: Optional[str] = None
    created_at: datetime
    responded_at: Optional[datetime] = None


class HomeInviteAcceptResponse(BaseModel):
    invite: HomeInviteResponse
    membership_created: bool


class AccessPermissionRequest(BaseModel):
    """Weekly window during which `user_id` may see `room_name`."""
    home_id: UUID
    user_id: UUID
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: time
    end_time: time
    room_name: str = Field(min_length=1, max_length=255)


class AccessPermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    home_id: str
    user_id: str
    day_of_week: int
    start_time: time
    end_time: time
    room_name: str


class VisibleRoomResponse(BaseModel):
    room_name: str
