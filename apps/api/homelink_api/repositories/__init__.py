"""Typed repository layer for database access."""

from homelink_api.repositories.membership_repository import (
    HomeInviteRepository,
    HomeMembershipRepository,
)

__all__ = [
    "HomeInviteRepository",
    "HomeMembershipRepository",
]
