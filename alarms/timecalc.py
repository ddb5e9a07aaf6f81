from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def after_minutes(now: datetime, minutes: int) -> Optional[datetime]:
    """Return ``now + minutes``.

    None when the delta is not a positive integer or lands outside the datetime range.
    """

    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        return None
    try:
        if now.tzinfo is None:
            return now + timedelta(minutes=minutes)
        # Elapsed time: add in UTC so a DST shift does not change the delta.
        shifted = now.astimezone(timezone.utc) + timedelta(minutes=minutes)
        return shifted.astimezone(now.tzinfo)
    except OverflowError:
        return None


def to_24_hour(hour: int, meridiem: Optional[str], now: datetime) -> Optional[int]:
    """Resolve a 1-12 clock hour into 0-23.

    ``meridiem`` is "am", "pm" or None ("oclock" is treated as None). Without a
    marker the hour is pushed into the afternoon when it is already afternoon now.
    """

    if hour < 1 or hour > 12:
        return None
    if meridiem == "pm":
        return hour % 12 + 12
    if meridiem == "am":
        return hour % 12
    if hour < 12 and now.hour >= 12:
        return hour + 12
    return hour


def at_clock_time(now: datetime, hour: int, minute: int) -> Optional[datetime]:
    """Place ``hour:minute`` on today's calendar date, or tomorrow's if already past."""

    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        return None
    target = datetime.combine(
        now.date(), now.time().replace(hour=hour, minute=minute, second=0, microsecond=0), tzinfo=now.tzinfo
    )
    if target < now:
        try:
            target = datetime.combine(target.date() + timedelta(days=1), target.timetz())
        except OverflowError:
            return None
    return target


def clock_time(now: datetime, hour: int, minute: int, meridiem: Optional[str]) -> Optional[datetime]:
    hour24 = to_24_hour(hour, meridiem, now)
    if hour24 is None:
        return None
    return at_clock_time(now, hour24, minute)
