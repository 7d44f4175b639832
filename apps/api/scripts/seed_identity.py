#!/usr/bin/env python3
"""Seed a home with its owner, members, rooms and access windows for local development."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import time
import os
from pathlib import Path
import sys

SCRIPT_PATH = Path(__file__).resolve()
if (SCRIPT_PATH.parents[1] / "homelink_api").exists():
    # Running from apps/api/scripts/seed_identity.py
    API_DIR = SCRIPT_PATH.parents[1]
elif (SCRIPT_PATH.parents[1] / "apps" / "api" / "homelink_api").exists():
    # Running from repo-level scripts/seed_identity.py
    API_DIR = SCRIPT_PATH.parents[1] / "apps" / "api"
else:
    API_DIR = SCRIPT_PATH.parents[1]

if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

# Keep compatibility with Docker env naming.
if not os.environ.get("DATABASE_URL") and os.environ.get("HOMELINK_API_DATABASE_URL"):
    os.environ["DATABASE_URL"] = os.environ["HOMELINK_API_DATABASE_URL"]

from sqlalchemy import select  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from homelink_api.auth.security import hash_password, normalize_email  # noqa: E402
from homelink_api.db.database import SessionLocal, init_db  # noqa: E402
from homelink_api.models.home_models import AccessPermission, Room  # noqa: E402
from homelink_api.models.identity_models import (  # noqa: E402
    MEMBERSHIP_ROLES,
    Home,
    HomeMembership,
    User,
)
from homelink_api.repositories.membership_repository import HomeMembershipRepository  # noqa: E402


DEFAULT_PASSWORD = "homelink-dev"
DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


@dataclass
class UserSeedSpec:
    username: str
    email: str
    role: str
    password: str


@dataclass
class WindowSeedSpec:
    username: str
    room_name: str
    day_of_week: int
    start_time: time
    end_time: time


def _parse_user_spec(raw_spec: str, default_role: str) -> UserSeedSpec:
    # Format: username:email[:role[:password]]
    parts = [p.strip() for p in raw_spec.split(":")]
    if len(parts) < 2 or len(parts) > 4 or not parts[0] or not parts[1]:
        raise ValueError(
            f"Invalid user value '{raw_spec}'. Use username:email[:role[:password]]."
        )
    role = (parts[2] if len(parts) > 2 and parts[2] else default_role).lower()
    if role != "owner" and role not in MEMBERSHIP_ROLES:
        raise ValueError(
            f"Invalid role '{role}'. Allowed roles: {', '.join(MEMBERSHIP_ROLES)}."
        )
    password = parts[3] if len(parts) > 3 and parts[3] else DEFAULT_PASSWORD
    return UserSeedSpec(
        username=parts[0],
        email=normalize_email(parts[1]),
        role=role,
        password=password,
    )


def _parse_time(raw: str) -> time:
    pieces = [int(p) for p in raw.split(":")]
    while len(pieces) < 3:
        pieces.append(0)
    return time(*pieces[:3])


def _parse_window_spec(raw_spec: str) -> WindowSeedSpec:
    # Format: username@room@day@HH:MM-HH:MM (day is 0-6 or sun..sat)
    parts = [p.strip() for p in raw_spec.split("@")]
    if len(parts) != 4 or "-" not in parts[3]:
        raise ValueError(
            f"Invalid --window value '{raw_spec}'. Use username@room@day@HH:MM-HH:MM."
        )
    username, room_name, raw_day, raw_range = parts
    day_key = raw_day.lower()[:3]
    day = DAY_NAMES.index(day_key) if day_key in DAY_NAMES else int(raw_day)
    if not 0 <= day <= 6:
        raise ValueError(f"Invalid day '{raw_day}'. Use 0 (Sunday) .. 6 (Saturday).")
    raw_start, _, raw_end = raw_range.partition("-")
    return WindowSeedSpec(
        username=username,
        room_name=room_name,
        day_of_week=day,
        start_time=_parse_time(raw_start),
        end_time=_parse_time(raw_end),
    )


def _find_or_create_user(db: Session, spec: UserSeedSpec) -> tuple[User, bool]:
    user = db.scalar(select(User).where(User.username == spec.username))
    if user is not None:
        return user, False
    user = User(
        username=spec.username,
        email=spec.email,
        password_hash=hash_password(spec.password),
    )
    db.add(user)
    db.flush()
    return user, True


def _find_or_create_room(db: Session, home: Home, raw_spec: str) -> tuple[Room, bool]:
    # Format: name[:circuit_id]
    name, _, circuit_id = (p.strip() for p in raw_spec.partition(":"))
    room = db.scalar(select(Room).where(Room.home_id == home.id, Room.name == name))
    if room is not None:
        return room, False
    room = Room(home_id=home.id, name=name, circuit_id=circuit_id or None)
    db.add(room)
    db.flush()
    return room, True


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed a HomeLink home for local development.")
    parser.add_argument("--home-name", required=True, help="Home display name.")
    parser.add_argument("--timezone", default="UTC", help="Home timezone (default: UTC).")
    parser.add_argument(
        "--owner",
        required=True,
        help="Owner as username:email[:owner[:password]].",
    )
    parser.add_argument(
        "--member",
        action="append",
        help="Member as username:email[:role[:password]]. Repeat for multiple users.",
    )
    parser.add_argument(
        "--room",
        action="append",
        help="Room as name[:circuit_id]. Repeat for multiple rooms.",
    )
    parser.add_argument(
        "--window",
        action="append",
        help="Access window: username@room@day@HH:MM-HH:MM. Repeat as needed.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables from the ORM metadata before seeding (skips Alembic).",
    )
    return parser


def main() -> None:
    args = build_arg_parser().parse_args()

    owner_spec = _parse_user_spec(args.owner, "owner")
    member_specs = [_parse_user_spec(raw, "member") for raw in (args.member or [])]
    if any(spec.role == "owner" for spec in member_specs):
        raise ValueError("Use --owner for the home owner; members cannot have the owner role.")
    window_specs = [_parse_window_spec(raw) for raw in (args.window or [])]

    if args.create_tables:
        init_db()

    with SessionLocal() as db:
        owner, created = _find_or_create_user(db, owner_spec)
        print(f"{'Created' if created else 'Found'} owner: {owner.username} id={owner.id}")

        home = Home(name=args.home_name.strip(), owner_id=owner.id, timezone=args.timezone.strip())
        db.add(home)
        db.flush()
        print(f"Created home: {home.name} ({home.timezone}) id={home.id}")

        users_by_name = {owner.username: owner}
        memberships = HomeMembershipRepository(db)
        for spec in member_specs:
            user, created = _find_or_create_user(db, spec)
            users_by_name[user.username] = user
            added = memberships.ensure_membership(home_id=home.id, user_id=user.id, role=spec.role)
            print(
                f"{'Created' if created else 'Found'} user: {user.username} id={user.id} "
                f"membership={'added' if added else 'existing'} role={spec.role}"
            )

        for raw_room in args.room or []:
            room, created = _find_or_create_room(db, home, raw_room)
            print(f"{'Created' if created else 'Found'} room: {room.name} circuit={room.circuit_id}")

        for window in window_specs:
            user = users_by_name.get(window.username)
            if user is None:
                raise ValueError(f"--window references unknown user '{window.username}'")
            db.add(
                AccessPermission(
                    home_id=home.id,
                    user_id=user.id,
                    room_name=window.room_name,
                    day_of_week=window.day_of_week,
                    start_time=window.start_time,
                    end_time=window.end_time,
                )
            )
            print(
                f"Granted {user.username} access to {window.room_name} on "
                f"{DAY_NAMES[window.day_of_week]} {window.start_time}-{window.end_time}"
            )

        db.commit()

    print("Seeding complete.")


if __name__ == "__main__":
    main()
