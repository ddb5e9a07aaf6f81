from __future__ import annotations

import logging
import uuid
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Union

from .models import Alarm, AlarmStatus, categorize

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"trigger_time", "message", "enabled", "repeat_daily", "snooze_active"})


def new_alarm_id() -> str:
    return f"al_{uuid.uuid4().hex[:8]}"


class AlarmManager:
    """In-memory alarm collection kept sorted by trigger time.

    ``on_change`` receives a snapshot of the list after every mutation; it is
    where persistence and presentation hook in.
    """

    def __init__(
        self,
        alarms: Optional[Iterable[Alarm]] = None,
        on_change: Optional[Callable[[List[Alarm]], None]] = None,
    ):
        self.on_change = on_change
        self._lock = Lock()
        self._alarms: List[Alarm] = []
        self._used_ids: set = set()
        for alarm in alarms or []:
            if not alarm.id or alarm.id in self._used_ids:
                alarm.id = self._fresh_id()
            self._used_ids.add(alarm.id)
            self._alarms.append(alarm)
        self._sort()

    def create(
        self,
        alarm: Union[Alarm, datetime],
        message: str = "",
        enabled: bool = True,
        repeat_daily: bool = False,
    ) -> Alarm:
        if isinstance(alarm, datetime):
            alarm = Alarm(
                id="",
                trigger_time=alarm,
                enabled=enabled,
                message=message,
                repeat_daily=repeat_daily,
            )
        if alarm.created_at is None:
            alarm.created_at = datetime.now(alarm.trigger_time.tzinfo)
        with self._lock:
            if not alarm.id or alarm.id in self._used_ids:
                alarm.id = self._fresh_id()
            self._used_ids.add(alarm.id)
            self._alarms.append(alarm)
            self._sort()
            snapshot = list(self._alarms)
        logger.info("Alarm %s scheduled for %s (message=%r)", alarm.id, alarm.trigger_time.isoformat(), alarm.message)
        self._notify(snapshot)
        return alarm

    def update(self, alarm_id: str, **fields) -> Optional[Alarm]:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update alarm fields: {', '.join(sorted(unknown))}")
        with self._lock:
            alarm = self._find(alarm_id)
            if alarm is None:
                logger.info("Update skipped, alarm %s not found", alarm_id)
                return None
            time_changed = "trigger_time" in fields and fields["trigger_time"] != alarm.trigger_time
            for name, value in fields.items():
                setattr(alarm, name, value)
            if time_changed:
                self._sort()
            snapshot = list(self._alarms)
        logger.info("Alarm %s updated (%s)", alarm_id, ", ".join(sorted(fields)))
        self._notify(snapshot)
        return alarm

    def delete(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            alarm = self._find(alarm_id)
            if alarm is None:
                logger.info("Delete skipped, alarm %s not found", alarm_id)
                return None
            self._alarms = [a for a in self._alarms if a.id != alarm_id]
            snapshot = list(self._alarms)
        logger.info("Removed alarm %s", alarm_id)
        self._notify(snapshot)
        return alarm

    def delete_by_index(self, index: int) -> Optional[Alarm]:
        """Delete by 1-based position in the sorted list."""
        with self._lock:
            if index < 1 or index > len(self._alarms):
                return None
            alarm_id = self._alarms[index - 1].id
        return self.delete(alarm_id)

    def list(self) -> List[Alarm]:
        with self._lock:
            return list(self._alarms)

    def find_by_id(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            return self._find(alarm_id)

    def set_enabled(self, alarm_id: str, enabled: bool) -> Optional[Alarm]:
        return self.update(alarm_id, enabled=enabled)

    def set_repeat(self, alarm_id: str, repeat_daily: bool) -> Optional[Alarm]:
        return self.update(alarm_id, repeat_daily=repeat_daily)

    def categorize(self, reference: datetime) -> Dict[AlarmStatus, List[Alarm]]:
        return categorize(self.list(), reference)

    def __len__(self) -> int:
        with self._lock:
            return len(self._alarms)

    def _find(self, alarm_id: str) -> Optional[Alarm]:
        for alarm in self._alarms:
            if alarm.id == alarm_id:
                return alarm
        return None

    def _sort(self) -> None:
        self._alarms.sort(key=lambda a: a.trigger_time)

    def _fresh_id(self) -> str:
        alarm_id = new_alarm_id()
        while alarm_id in self._used_ids:
            alarm_id = new_alarm_id()
        return alarm_id

    def _notify(self, snapshot: List[Alarm]) -> None:
        if not self.on_change:
            return
        try:
            self.on_change(snapshot)
        except Exception:
            logger.error("on_change callback failed", exc_info=True)
