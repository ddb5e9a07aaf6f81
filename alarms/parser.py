from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Union

from .extractor import extract_reminder_message
from .timecalc import after_minutes, clock_time

logger = logging.getLogger(__name__)

DEFAULT_TASK_MESSAGE = "Complete your task"
DEFAULT_WAKE_MESSAGE = "Wake up"
FALLBACK_DELAY_MINUTES = 15

RELATIVE_PATTERN = re.compile(
    r"(?:in|for)\s+(\d+)\s+(minute|minutes|min|mins|hour|hours|hr|hrs)(?:\s+from\s+now)?"
)
AT_TIME_PATTERN = re.compile(r"at\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm|oclock)")
WAKE_PATTERN = re.compile(
    r"(?:wake\s+me\s+up|set\s+alarm|alarm)\s+(?:at|for)\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm)?"
)
# "7pm" counts as a pm token, "camera" does not.
MERIDIEM_TOKEN = re.compile(r"(?<![a-z])(am|pm)\b")


@dataclass(frozen=True)
class TimedReminder:
    trigger_time: datetime
    message: str
    rule: str = ""


@dataclass(frozen=True)
class Unparsed:
    message: str = ""
    raw_text: str = ""


ParseResult = Union[TimedReminder, Unparsed]
Rule = Callable[[str, datetime, str], Optional[TimedReminder]]


def interpret_utterance(text: str, now: Optional[datetime] = None) -> ParseResult:
    """Interpret one finalized transcript as a timed reminder.

    Rules run in a fixed order and the first one that produces a time wins.
    Out-of-range numbers make a rule skip rather than fail.
    """

    now = now or datetime.now().astimezone()
    lower = normalize_utterance(text)
    message = extract_reminder_message(lower)

    for rule in RULES:
        result = rule(lower, now, message)
        if result:
            logger.debug("Utterance %r matched rule %s -> %s", text, result.rule, result.trigger_time.isoformat())
            return result

    logger.info("Could not parse time or message from %r", text)
    return Unparsed(message=message, raw_text=text)


def normalize_utterance(text: str) -> str:
    return text.lower().strip().replace("o'clock", "oclock")


def _relative_delta(lower: str, now: datetime, message: str) -> Optional[TimedReminder]:
    match = RELATIVE_PATTERN.search(lower)
    if not match:
        return None
    value = int(match.group(1))
    unit = match.group(2)
    minutes = value * 60 if unit.startswith("h") else value
    fire_at = after_minutes(now, minutes)
    if not fire_at:
        return None
    return TimedReminder(fire_at, message or DEFAULT_TASK_MESSAGE, rule="relative")


def _at_clock_time(lower: str, now: datetime, message: str) -> Optional[TimedReminder]:
    match = AT_TIME_PATTERN.search(lower)
    if not match:
        return None
    hour, minute = _hour_minute(match)
    marker = match.group(3)
    meridiem = marker if marker in ("am", "pm") else None
    fire_at = clock_time(now, hour, minute, meridiem)
    if not fire_at:
        return None
    return TimedReminder(fire_at, message or DEFAULT_TASK_MESSAGE, rule="at_time")


def _wake_up(lower: str, now: datetime, message: str) -> Optional[TimedReminder]:
    match = WAKE_PATTERN.search(lower)
    if not match:
        return None
    hour, minute = _hour_minute(match)
    # Marker is looked up across the whole utterance, not just the match.
    tokens = set(MERIDIEM_TOKEN.findall(lower))
    # pm wins, except that 12 with an "am" anywhere is midnight.
    if "am" in tokens and (hour == 12 or "pm" not in tokens):
        meridiem = "am"
    elif "pm" in tokens:
        meridiem = "pm"
    else:
        meridiem = None
    fire_at = clock_time(now, hour, minute, meridiem)
    if not fire_at:
        return None
    return TimedReminder(fire_at, message or DEFAULT_WAKE_MESSAGE, rule="wake_up")


def _message_only(lower: str, now: datetime, message: str) -> Optional[TimedReminder]:
    if not message:
        return None
    fire_at = after_minutes(now, FALLBACK_DELAY_MINUTES)
    if not fire_at:
        return None
    return TimedReminder(fire_at, message, rule="message_only")


def _hour_minute(match: re.Match) -> tuple:
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    return hour, minute


RULES: List[Rule] = [_relative_delta, _at_clock_time, _wake_up, _message_only]
