"""Tests for the trigger-window evaluator."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from fastfriends.core.schedule_window import is_due, local_clock, session_date_key
from fastfriends.errors import ScheduleError
from fastfriends.models.game import GameSchedule

# 2026-01-05 is a Monday.
MONDAY_0900 = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


def _weekly(days: list[int], time: str = "09:00", **kwargs: object) -> GameSchedule:
    return GameSchedule(schedule_type="weekly", scheduled_days=days, scheduled_time=time, **kwargs)


class TestLocalClock:
    def test_sunday_based_day_number(self) -> None:
        day, date, hhmm = local_clock(MONDAY_0900, "UTC")
        assert (day, date, hhmm) == (1, 5, "09:00")

    def test_sunday_is_zero(self) -> None:
        day, _, _ = local_clock(datetime(2026, 1, 4, 12, 0, tzinfo=UTC), "UTC")
        assert day == 0

    def test_naive_treated_as_utc(self) -> None:
        assert local_clock(datetime(2026, 1, 5, 9, 0), "UTC") == (1, 5, "09:00")

    def test_conversion_crosses_date_line(self) -> None:
        """Monday 09:00 UTC is already Monday evening in Tokyo, Sunday night in LA."""
        assert local_clock(MONDAY_0900, "Asia/Tokyo") == (1, 5, "18:00")
        assert local_clock(MONDAY_0900, "America/Los_Angeles") == (1, 5, "01:00")
        assert local_clock(datetime(2026, 1, 5, 3, 0, tzinfo=UTC), "America/Los_Angeles") == (
            0,
            4,
            "19:00",
        )


class TestExactWindow:
    def test_due_at_exact_minute(self) -> None:
        assert is_due(_weekly([1]), MONDAY_0900)

    def test_not_due_one_minute_later(self) -> None:
        assert not is_due(_weekly([1]), MONDAY_0900 + timedelta(minutes=1))

    def test_not_due_one_minute_early(self) -> None:
        assert not is_due(_weekly([1]), MONDAY_0900 - timedelta(minutes=1))

    def test_not_due_on_other_day(self) -> None:
        assert not is_due(_weekly([1]), MONDAY_0900 + timedelta(days=1))

    def test_seconds_ignored(self) -> None:
        assert is_due(_weekly([1]), MONDAY_0900 + timedelta(seconds=42))

    def test_only_listed_days_in_a_week(self) -> None:
        schedule = _weekly([1, 3, 5])
        due_days = [
            (MONDAY_0900 + timedelta(days=offset)).isoweekday() % 7
            for offset in range(7)
            if is_due(schedule, MONDAY_0900 + timedelta(days=offset))
        ]
        assert due_days == [1, 3, 5]

    def test_unpadded_time_matches(self) -> None:
        assert is_due(_weekly([1], time="9:00"), MONDAY_0900)


class TestTimezone:
    def test_local_time_used(self) -> None:
        schedule = _weekly([1], time="09:00", timezone="America/New_York")
        # 09:00 in New York in January is 14:00 UTC.
        assert is_due(schedule, datetime(2026, 1, 5, 14, 0, tzinfo=UTC))
        assert not is_due(schedule, MONDAY_0900)

    def test_local_day_used(self) -> None:
        # Monday 08:00 in Tokyo is Sunday 23:00 UTC.
        schedule = _weekly([1], time="08:00", timezone="Asia/Tokyo")
        assert is_due(schedule, datetime(2026, 1, 4, 23, 0, tzinfo=UTC))

    def test_unknown_timezone_raises(self) -> None:
        schedule = _weekly([1], timezone="Mars/Olympus_Mons")
        with pytest.raises(ScheduleError):
            is_due(schedule, MONDAY_0900)

    def test_missing_timezone_defaults_to_utc(self) -> None:
        schedule = _weekly([1], timezone=None)
        assert schedule.timezone == "UTC"
        assert is_due(schedule, MONDAY_0900)


class TestMonthly:
    def test_due_on_date(self) -> None:
        schedule = GameSchedule(schedule_type="monthly", scheduled_days=[5], scheduled_time="09:00")
        assert is_due(schedule, MONDAY_0900)

    def test_not_due_other_date(self) -> None:
        schedule = GameSchedule(
            schedule_type="monthly", scheduled_days=[15], scheduled_time="09:00"
        )
        assert not is_due(schedule, MONDAY_0900)


class TestFrequency:
    def test_due_all_day_after_start(self) -> None:
        schedule = _weekly([1], frequency_minutes=30)
        assert is_due(schedule, MONDAY_0900)
        assert is_due(schedule, MONDAY_0900 + timedelta(minutes=25))
        assert is_due(schedule, datetime(2026, 1, 5, 23, 59, tzinfo=UTC))

    def test_not_due_before_start(self) -> None:
        schedule = _weekly([1], frequency_minutes=30)
        assert not is_due(schedule, MONDAY_0900 - timedelta(minutes=1))

    def test_not_due_on_other_day(self) -> None:
        schedule = _weekly([1], frequency_minutes=30)
        assert not is_due(schedule, MONDAY_0900 + timedelta(days=1))


class TestScheduleValidation:
    def test_empty_days_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _weekly([])

    def test_weekly_day_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            _weekly([7])

    def test_monthly_day_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            GameSchedule(schedule_type="monthly", scheduled_days=[0], scheduled_time="09:00")

    def test_bad_time_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _weekly([1], time="25:00")

    def test_zero_frequency_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _weekly([1], frequency_minutes=0)


class TestSessionDateKey:
    def test_utc_date(self) -> None:
        assert session_date_key(MONDAY_0900) == "2026-01-05"

    def test_converts_to_utc(self) -> None:
        late_evening_la = datetime(2026, 1, 4, 20, 0, tzinfo=ZoneInfo("America/Los_Angeles"))
        assert session_date_key(late_evening_la) == "2026-01-05"
