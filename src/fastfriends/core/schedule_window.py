"""Decide whether a game's trigger window is open at a given instant.

Days are Sunday-based for weekly games (0 = Sunday ... 6 = Saturday) and
day-of-month for monthly games (1-31). Times are compared as zero-padded
``HH:mm`` strings in the game's own timezone, so the scheduler must tick at
least once a minute: a once-a-day game that misses its exact minute does not
fire that day.
"""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastfriends.errors import ScheduleError
from fastfriends.models.game import GameSchedule


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ScheduleError(f"unknown timezone {name!r}") from exc


def _aware(now: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return now if now.tzinfo is not None else now.replace(tzinfo=UTC)


def local_clock(now: datetime, timezone: str) -> tuple[int, int, str]:
    """Return ``(day_number, date_number, "HH:mm")`` for *now* in *timezone*.

    ``day_number`` is Sunday-based (0-6), ``date_number`` is the day of month.
    All three come from a single conversion of the original instant.
    """
    local = _aware(now).astimezone(_zone(timezone))
    return local.isoweekday() % 7, local.day, local.strftime("%H:%M")


def is_target_day(schedule: GameSchedule, day_number: int, date_number: int) -> bool:
    if schedule.schedule_type == "weekly":
        return day_number in schedule.scheduled_days
    return date_number in schedule.scheduled_days


def is_due(schedule: GameSchedule, now: datetime) -> bool:
    """Return True if *schedule* should fire at *now*.

    Without a repeat frequency the local time must equal ``scheduled_time``
    exactly. With a frequency every tick from ``scheduled_time`` until
    midnight is a candidate; spacing between rounds is enforced by the
    session ledger, not here.

    Raises:
        ScheduleError: the schedule's timezone is unknown.
    """
    day_number, date_number, current_time = local_clock(now, schedule.timezone)

    if not is_target_day(schedule, day_number, date_number):
        return False

    if schedule.frequency_minutes is None:
        return current_time == schedule.scheduled_time
    return current_time >= schedule.scheduled_time


def session_date_key(now: datetime) -> str:
    """Calendar date (UTC, ``YYYY-MM-DD``) that keys the day's game session."""
    return _aware(now).astimezone(UTC).strftime("%Y-%m-%d")
