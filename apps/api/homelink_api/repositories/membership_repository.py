"""Repositories for home membership and invite persistence."""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from homelink_api.models.identity_models import HomeInvite, HomeMembership, User


_UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class HomeMembershipRepository:
    """Repository for HomeMembership entities."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, home_id: str, user_id: str) -> HomeMembership | None:
        return self.db.scalar(
            select(HomeMembership).where(
                HomeMembership.home_id == home_id,
                HomeMembership.user_id == user_id,
            )
        )

    def list_for_home(self, home_id: str) -> list[tuple[HomeMembership, User]]:
        rows = self.db.execute(
            select(HomeMembership, User)
            .join(User, User.id == HomeMembership.user_id)
            .where(HomeMembership.home_id == home_id)
            .order_by(HomeMembership.created_at.asc())
        )
        return [(membership, user) for membership, user in rows]

    def create(self, *, home_id: str, user_id: str, role: str) -> HomeMembership:
        membership = HomeMembership(home_id=home_id, user_id=user_id, role=role)
        self.db.add(membership)
        self.db.flush()
        return membership

    def ensure_membership(self, *, home_id: str, user_id: str, role: str) -> bool:
        """Insert the membership unless one exists; True when a row was added.

        Concurrent callers cannot produce duplicates: the (home_id, user_id)
        unique constraint decides the winner. Does not commit.
        """
        insert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert is not None:
            now = _utc_now_naive()
            statement = (
                insert(HomeMembership)
                .values(
                    id=str(uuid.uuid4()),
                    home_id=home_id,
                    user_id=user_id,
                    role=role,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["home_id", "user_id"])
            )
            result = self.db.execute(statement)
            return bool(result.rowcount)

        if self.get(home_id, user_id) is not None:
            return False
        try:
            with self.db.begin_nested():
                self.db.add(HomeMembership(home_id=home_id, user_id=user_id, role=role))
        except IntegrityError:
            return False
        return True


class HomeInviteRepository:
    """Repository for HomeInvite entities."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, invite_id: str) -> HomeInvite | None:
        return self.db.get(HomeInvite, invite_id)

    def list_for_home(self, home_id: str) -> list[HomeInvite]:
        return list(
            self.db.scalars(
                select(HomeInvite)
                .where(HomeInvite.home_id == home_id)
                .order_by(HomeInvite.created_at.asc())
            )
        )

    def list_for_email(self, email: str) -> list[HomeInvite]:
        return list(
            self.db.scalars(
                select(HomeInvite)
                .where(func.lower(HomeInvite.email) == email.strip().lower())
                .order_by(HomeInvite.created_at.asc())
            )
        )

    def find_pending(self, home_id: str, email: str) -> HomeInvite | None:
        return self.db.scalar(
            select(HomeInvite).where(
                HomeInvite.home_id == home_id,
                HomeInvite.status == "pending",
                func.lower(HomeInvite.email) == email.strip().lower(),
            )
        )

    def mark_accepted(self, invite: HomeInvite) -> HomeInvite:
        if invite.status != "accepted":
            invite.status = "accepted"
            invite.responded_at = _utc_now_naive()
        return invite
