"""Weekly time-window evaluation for room access permissions."""

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Iterable, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from homelink_api.logging_service import get_logger, log_with_context


logger = get_logger(__name__)


class WeeklyWindow(Protocol):
    room_name: str
    day_of_week: int
    start_time: time
    end_time: time


def day_of_week(moment: datetime) -> int:
    """Day index with 0 = Sunday ... 6 = Saturday."""
    return (moment.weekday() + 1) % 7


def window_contains(start: time, end: time, current: time) -> bool:
    """Inclusive containment; a window with start > end spans midnight."""
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def permission_is_active(permission: WeeklyWindow, moment: datetime) -> bool:
    if permission.day_of_week != day_of_week(moment):
        return False
    current = moment.time().replace(microsecond=0)
    return window_contains(
        _truncate(permission.start_time),
        _truncate(permission.end_time),
        current,
    )


def active_room_names(permissions: Iterable[WeeklyWindow], moment: datetime) -> set[str]:
    return {
        permission.room_name
        for permission in permissions
        if permission_is_active(permission, moment)
    }


def resolve_zone(timezone_name: str | None) -> ZoneInfo:
    name = (timezone_name or "").strip() or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log_with_context(
            logger,
            "WARNING",
            f"Unknown timezone '{name}'; evaluating access windows in UTC",
        )
        return ZoneInfo("UTC")


def is_valid_timezone(timezone_name: str) -> bool:
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def home_local_time(now: datetime | None, timezone_name: str | None) -> datetime:
    """Wall-clock time in the home's timezone.

    Naive datetimes are taken to already be home-local.
    """
    if now is None:
        return datetime.now(timezone.utc).astimezone(resolve_zone(timezone_name))
    if now.tzinfo is None or now.tzinfo.utcoffset(now) is None:
        return now
    return now.astimezone(resolve_zone(timezone_name))


def _truncate(value: time) -> time:
    return value.replace(microsecond=0, tzinfo=None)
