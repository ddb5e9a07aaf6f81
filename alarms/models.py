from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional


class AlarmStatus(Enum):
    PAST = "past"
    ACTIVE = "active"
    UPCOMING = "upcoming"


@dataclass
class Alarm:
    id: str
    trigger_time: datetime
    enabled: bool = True
    message: str = ""
    repeat_daily: bool = False
    snooze_active: bool = False
    created_at: Optional[datetime] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trigger_time": self.trigger_time.isoformat(),
            "enabled": self.enabled,
            "message": self.message,
            "repeat_daily": self.repeat_daily,
            "snooze_active": self.snooze_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        trigger_raw = data.get("trigger_time") or data.get("time")
        if not trigger_raw:
            raise ValueError("Alarm payload missing trigger_time field")
        if not data.get("id"):
            raise ValueError("Alarm payload missing id field")
        created_raw = data.get("created_at")
        return cls(
            id=str(data["id"]),
            trigger_time=datetime.fromisoformat(trigger_raw),
            enabled=bool(data.get("enabled", True)),
            message=str(data.get("message") or ""),
            repeat_daily=bool(data.get("repeat_daily", False)),
            snooze_active=bool(data.get("snooze_active", False)),
            created_at=datetime.fromisoformat(created_raw) if created_raw else None,
        )


def classify(alarm: Alarm, reference: datetime) -> AlarmStatus:
    """Classify an alarm by time of day against ``reference``.

    Only hour and minute are compared, the calendar date is ignored. An alarm
    from yesterday whose time of day is still ahead reads as upcoming; status
    is re-derived on every tick and never stored.
    """

    alarm_minutes = alarm.trigger_time.hour * 60 + alarm.trigger_time.minute
    current_minutes = reference.hour * 60 + reference.minute
    if alarm_minutes < current_minutes:
        return AlarmStatus.PAST
    if alarm_minutes == current_minutes:
        return AlarmStatus.ACTIVE
    return AlarmStatus.UPCOMING


def categorize(alarms: Iterable[Alarm], reference: datetime) -> Dict[AlarmStatus, List[Alarm]]:
    """Group enabled alarms by status, keeping their order within each group."""

    groups: Dict[AlarmStatus, List[Alarm]] = {status: [] for status in AlarmStatus}
    for alarm in alarms:
        if not alarm.enabled:
            continue
        groups[classify(alarm, reference)].append(alarm)
    return groups
