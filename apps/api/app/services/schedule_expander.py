from __future__ import annotations

import re
from datetime import datetime, timedelta, tzinfo
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.services.jobs import as_utc, utcnow

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class ScheduleValidationError(ValueError):
    pass


def resolve_timezone(name: str | None) -> tzinfo:
    try:
        return ZoneInfo((name or "UTC").strip() or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        raise ScheduleValidationError(f"Unknown timezone: {name!r}")


def parse_time_of_day(value: str) -> tuple[int, int]:
    m = _TIME_RE.match((value or "").strip())
    if not m:
        raise ScheduleValidationError(f"Invalid time {value!r}, expected HH:MM")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise ScheduleValidationError(f"Invalid time {value!r}, expected HH:MM")
    return hour, minute


def _check_day(day: int) -> int:
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
        raise ScheduleValidationError(f"Invalid weekday {day!r}, expected 0-6 (Sunday=0)")
    return day


def sunday_weekday(dt: datetime) -> int:
    return (dt.weekday() + 1) % 7


def next_occurrence(day: int, time_str: str, now: datetime) -> datetime:
    """
    Next instant strictly after `now` that falls on `day` (Sunday=0) at `time_str`,
    in the timezone of `now`. `now` must be timezone-aware.
    """
    _check_day(day)
    hour, minute = parse_time_of_day(time_str)

    delta = (day - sunday_weekday(now) + 7) % 7
    target_date = (now + timedelta(days=delta)).date()
    candidate = datetime(
        target_date.year,
        target_date.month,
        target_date.day,
        hour,
        minute,
        0,
        tzinfo=now.tzinfo,
    )
    if candidate <= now:
        candidate = candidate + timedelta(days=7)
    return candidate


def expand_bulk_schedule(
    days: Iterable[int],
    times: Iterable[str],
    base: dict[str, Any],
    *,
    now: datetime | None = None,
    tz: str | None = None,
) -> list[dict[str, Any]]:
    """
    One job request per (day, time) pair, each carrying the shared `base`
    metadata (drive_file_id, title, description, thumbnail, first_comment, ...)
    plus its own UTC `scheduled_time`.

    Duplicate pairs are kept on purpose.
    """
    days = list(days or [])
    times = list(times or [])
    if not days:
        raise ScheduleValidationError("Select at least one day")
    if not times:
        raise ScheduleValidationError("Add at least one time")
    if not (base or {}).get("drive_file_id"):
        raise ScheduleValidationError("drive_file_id is required")

    for d in days:
        _check_day(d)
    for t in times:
        parse_time_of_day(t)

    zone = resolve_timezone(tz)
    local_now = as_utc(now or utcnow()).astimezone(zone)

    out: list[dict[str, Any]] = []
    for day in days:
        for time_str in times:
            when = next_occurrence(day, time_str, local_now)
            req = dict(base)
            req["scheduled_time"] = as_utc(when)
            out.append(req)
    return out
