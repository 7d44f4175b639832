"""Home role resolution and time-windowed room visibility.

Every route handler gates reads and writes through `AccessResolver`. The
resolver consults the startup `SchemaCapabilities` flags so that a database
missing the optional membership, invite or permission tables degrades to a
narrower answer instead of failing the request.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from homelink_api.access.time_windows import active_room_names, day_of_week, home_local_time
from homelink_api.db.capabilities import (
    ACCESS_PERMISSIONS,
    HOME_INVITES,
    HOME_MEMBERS,
    SchemaCapabilities,
)
from homelink_api.errors import AuthorizationError, NotFoundError
from homelink_api.logging_service import get_logger, log_with_context
from homelink_api.models.home_models import AccessPermission, Room
from homelink_api.models.identity_models import Home, HomeInvite, HomeMembership, User


logger = get_logger(__name__)


class HomeRole(str, Enum):
    NONE = "none"
    MEMBER = "member"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def satisfies(self, minimum: "HomeRole") -> bool:
        return self.rank >= minimum.rank


_ROLE_RANK = {HomeRole.NONE: 0, HomeRole.MEMBER: 1, HomeRole.ADMIN: 2}


class AccessResolver:
    """Answers "what may this user do in this home right now"."""

    def __init__(self, db: Session, capabilities: SchemaCapabilities):
        self.db = db
        self.capabilities = capabilities

    def get_home(self, home_id: str) -> Home:
        home = self.db.get(Home, home_id)
        if home is None:
            raise NotFoundError("Home not found")
        return home

    def resolve_home_access(self, home_id: str, user_id: str) -> HomeRole:
        return self.role_in_home(self.get_home(home_id), user_id)

    def role_in_home(self, home: Home, user_id: str) -> HomeRole:
        if home.owner_id == user_id:
            return HomeRole.ADMIN

        if self.capabilities.has_home_members:
            membership_id = self.db.scalar(
                select(HomeMembership.id).where(
                    HomeMembership.home_id == home.id,
                    HomeMembership.user_id == user_id,
                )
            )
            return HomeRole.MEMBER if membership_id else HomeRole.NONE

        self._degraded(HOME_MEMBERS, home.id, "falling back to accepted invites")
        if not self.capabilities.has_home_invites:
            self._degraded(HOME_INVITES, home.id, "non-owners resolve to no access")
            return HomeRole.NONE

        email = self.db.scalar(select(User.email).where(User.id == user_id))
        if not email:
            return HomeRole.NONE
        invite_id = self.db.scalar(
            select(HomeInvite.id)
            .where(
                HomeInvite.home_id == home.id,
                HomeInvite.status == "accepted",
                func.lower(HomeInvite.email) == email.strip().lower(),
            )
            .limit(1)
        )
        return HomeRole.MEMBER if invite_id else HomeRole.NONE

    def require_home_role(
        self,
        home_id: str,
        user_id: str,
        minimum: HomeRole = HomeRole.MEMBER,
    ) -> Home:
        """Return the home, or raise when the caller's role is below `minimum`."""
        home = self.get_home(home_id)
        role = self.role_in_home(home, user_id)
        if not role.satisfies(minimum):
            if minimum is HomeRole.ADMIN:
                raise AuthorizationError("Only the home owner can perform this action")
            raise AuthorizationError("Not a member of this home")
        return home

    def visible_rooms(
        self,
        home_id: str,
        user_id: str,
        now: datetime | None = None,
    ) -> set[str]:
        home = self.get_home(home_id)
        return self._visible_rooms(home, self.role_in_home(home, user_id), user_id, now)

    def can_view_room(self, room: Room, user_id: str, now: datetime | None = None) -> bool:
        home = self.get_home(room.home_id)
        role = self.role_in_home(home, user_id)
        if role is HomeRole.ADMIN:
            return True
        return room.name in self._visible_rooms(home, role, user_id, now)

    def accessible_homes(self, user_id: str) -> list[tuple[Home, HomeRole]]:
        """Homes the user owns or belongs to, owned homes first."""
        owned = list(
            self.db.scalars(
                select(Home).where(Home.owner_id == user_id).order_by(Home.created_at.asc())
            )
        )
        results = [(home, HomeRole.ADMIN) for home in owned]
        seen = {home.id for home in owned}

        member_home_ids: list[str] = []
        if self.capabilities.has_home_members:
            member_home_ids = list(
                self.db.scalars(
                    select(HomeMembership.home_id).where(HomeMembership.user_id == user_id)
                )
            )
        elif self.capabilities.has_home_invites:
            self._degraded(HOME_MEMBERS, None, "listing homes from accepted invites")
            email = self.db.scalar(select(User.email).where(User.id == user_id))
            if email:
                member_home_ids = list(
                    self.db.scalars(
                        select(HomeInvite.home_id).where(
                            HomeInvite.status == "accepted",
                            func.lower(HomeInvite.email) == email.strip().lower(),
                        )
                    )
                )
        else:
            self._degraded(HOME_MEMBERS, None, "listing owned homes only")

        pending_ids = [home_id for home_id in dict.fromkeys(member_home_ids) if home_id not in seen]
        if pending_ids:
            for home in self.db.scalars(
                select(Home).where(Home.id.in_(pending_ids)).order_by(Home.created_at.asc())
            ):
                results.append((home, HomeRole.MEMBER))
        return results

    def _visible_rooms(
        self,
        home: Home,
        role: HomeRole,
        user_id: str,
        now: datetime | None,
    ) -> set[str]:
        if role is HomeRole.ADMIN:
            return set(self.db.scalars(select(Room.name).where(Room.home_id == home.id).distinct()))
        if role is HomeRole.NONE:
            return set()

        if not self.capabilities.has_access_permissions:
            self._degraded(ACCESS_PERMISSIONS, home.id, "treating permission set as empty")
            return set()

        moment = home_local_time(now, home.timezone)
        permissions = self.db.scalars(
            select(AccessPermission).where(
                AccessPermission.home_id == home.id,
                AccessPermission.user_id == user_id,
                AccessPermission.day_of_week == day_of_week(moment),
            )
        )
        return active_room_names(permissions, moment)

    def _degraded(self, relation: str, home_id: str | None, consequence: str) -> None:
        log_with_context(
            logger,
            "WARNING",
            f"Relation '{relation}' unavailable; {consequence}",
            relation=relation,
            home_id=home_id,
        )
