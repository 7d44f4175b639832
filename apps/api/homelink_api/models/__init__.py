"""ORM models exported for metadata registration and shared imports."""

from homelink_api.models.identity_models import AuthSession, Home, HomeInvite, HomeMembership, User
from homelink_api.models.home_models import AccessPermission, Device, Room

__all__ = [
    "User",
    "Home",
    "HomeMembership",
    "HomeInvite",
    "AuthSession",
    "Room",
    "Device",
    "AccessPermission",
]
