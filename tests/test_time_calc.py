from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from alarms.timecalc import after_minutes, at_clock_time, clock_time, to_24_hour


def _now() -> datetime:
    return datetime(2025, 3, 10, 8, 0, 30, tzinfo=timezone.utc)


def test_after_minutes_adds_delta():
    assert after_minutes(_now(), 45) == _now() + timedelta(minutes=45)


def test_after_minutes_rejects_non_positive():
    assert after_minutes(_now(), 0) is None
    assert after_minutes(_now(), -5) is None
    assert after_minutes(_now(), True) is None


def test_after_minutes_counts_elapsed_time_across_dst():
    tz = ZoneInfo("America/New_York")
    now = datetime(2025, 3, 9, 1, 30, tzinfo=tz)  # clocks jump 02:00 -> 03:00
    result = after_minutes(now, 60)
    assert result.tzinfo is tz
    assert result.hour == 3
    assert result.minute == 30


def test_after_minutes_naive():
    now = datetime(2025, 1, 1, 23, 50)
    assert after_minutes(now, 20) == datetime(2025, 1, 2, 0, 10)


def test_to_24_hour_markers():
    morning = _now()
    afternoon = _now().replace(hour=15)
    assert to_24_hour(6, "pm", morning) == 18
    assert to_24_hour(12, "pm", morning) == 12
    assert to_24_hour(12, "am", morning) == 0
    assert to_24_hour(6, "am", afternoon) == 6
    assert to_24_hour(6, None, afternoon) == 18
    assert to_24_hour(6, None, morning) == 6
    assert to_24_hour(12, None, afternoon) == 12


def test_to_24_hour_out_of_range():
    assert to_24_hour(0, "am", _now()) is None
    assert to_24_hour(13, None, _now()) is None


def test_at_clock_time_rolls_strictly_past_to_tomorrow():
    # seconds are zeroed, so 08:00:00 is before 08:00:30
    assert at_clock_time(_now(), 8, 0) == datetime(2025, 3, 11, 8, 0, tzinfo=timezone.utc)
    assert at_clock_time(_now(), 8, 1) == datetime(2025, 3, 10, 8, 1, tzinfo=timezone.utc)


def test_at_clock_time_rejects_out_of_range():
    assert at_clock_time(_now(), 24, 0) is None
    assert at_clock_time(_now(), 7, 60) is None


def test_at_clock_time_month_rollover():
    now = datetime(2025, 1, 31, 22, 0, tzinfo=timezone.utc)
    assert at_clock_time(now, 6, 0) == datetime(2025, 2, 1, 6, 0, tzinfo=timezone.utc)


def test_clock_time_composes_meridiem():
    assert clock_time(_now(), 6, 30, "pm") == datetime(2025, 3, 10, 18, 30, tzinfo=timezone.utc)
    assert clock_time(_now(), 15, 0, "pm") is None


def test_after_minutes_beyond_datetime_range():
    assert after_minutes(_now(), 10**12) is None
    assert after_minutes(datetime(2025, 1, 1), 10**12) is None


def test_at_clock_time_rollover_past_year_9999():
    last_evening = datetime(9999, 12, 31, 23, 0, tzinfo=timezone.utc)
    assert at_clock_time(last_evening, 6, 0) is None
    assert at_clock_time(last_evening, 23, 30) == datetime(9999, 12, 31, 23, 30, tzinfo=timezone.utc)
