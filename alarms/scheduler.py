from __future__ import annotations

import logging
import time
from datetime import datetime
from threading import Event, Lock, Thread
from typing import Callable, Optional, Set, Tuple

from .manager import AlarmManager
from .models import Alarm
from .timecalc import after_minutes

logger = logging.getLogger(__name__)


class AlarmRuntimeState:
    def __init__(self) -> None:
        self.ringing_alarm: Optional[Alarm] = None
        self.last_trigger_ts: Optional[float] = None


class AlarmScheduler:
    """Background loop that rings alarms once their trigger time is reached.

    Alarms are never removed when they fire. Each (id, trigger_time) pair rings
    at most once, so editing an alarm's time forward arms it again.
    """

    def __init__(
        self,
        manager: AlarmManager,
        check_interval: float = 0.8,
        default_snooze_minutes: int = 5,
        on_alarm_triggered: Optional[Callable[[Alarm], None]] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self.manager = manager
        self.check_interval = max(0.2, check_interval)
        self.default_snooze_minutes = max(1, default_snooze_minutes)
        self.on_alarm_triggered = on_alarm_triggered
        self.now_fn = now_fn or (lambda: datetime.now().astimezone())

        self._fired: Set[Tuple[str, datetime]] = set()
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._runtime = AlarmRuntimeState()

    def start(self) -> None:
        now = self.now_fn()
        overdue = [a for a in self.manager.list() if a.trigger_time <= now]
        with self._lock:
            self._fired.update((a.id, a.trigger_time) for a in overdue)
        if overdue:
            logger.info("Skipping %s alarms that were already due at startup", len(overdue))
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-scheduler", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    def tick(self, now: Optional[datetime] = None) -> Optional[Alarm]:
        """Ring the earliest due alarm, if any. Returns the alarm that rang."""
        due = self._pop_due_alarm(now or self.now_fn())
        if due:
            self._trigger_alarm(due)
        return due

    def stop_ringing(self) -> Optional[Alarm]:
        with self._lock:
            current = self._runtime.ringing_alarm
            self._runtime.ringing_alarm = None
        if current:
            logger.info("Alarm %s stopped", current.id)
        return current

    def snooze(self, minutes: Optional[int] = None) -> Optional[Alarm]:
        minutes = minutes or self.default_snooze_minutes
        with self._lock:
            ringing = self._runtime.ringing_alarm
        if not ringing:
            return None
        self.stop_ringing()
        new_time = after_minutes(self.now_fn(), minutes)
        if new_time is None:
            return None
        snoozed = self.manager.update(ringing.id, trigger_time=new_time, snooze_active=True)
        if snoozed:
            logger.info("Alarm %s snoozed until %s", snoozed.id, new_time.isoformat())
        return snoozed

    @property
    def is_ringing(self) -> bool:
        with self._lock:
            return self._runtime.ringing_alarm is not None

    @property
    def ringing_alarm(self) -> Optional[Alarm]:
        with self._lock:
            return self._runtime.ringing_alarm

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            if self.tick():
                continue
            self._stop_event.wait(self.check_interval)

    def _pop_due_alarm(self, now: datetime) -> Optional[Alarm]:
        alarms = self.manager.list()
        with self._lock:
            # Forget fired keys for alarms that were deleted or moved.
            self._fired &= {(a.id, a.trigger_time) for a in alarms}
            for alarm in alarms:
                if alarm.trigger_time > now:
                    break
                key = (alarm.id, alarm.trigger_time)
                if not alarm.enabled or key in self._fired:
                    continue
                self._fired.add(key)
                return alarm
        return None

    def _trigger_alarm(self, alarm: Alarm) -> None:
        logger.info("Alarm %s triggered at %s (message=%r)", alarm.id, alarm.trigger_time.isoformat(), alarm.message)
        with self._lock:
            self._runtime.ringing_alarm = alarm
            self._runtime.last_trigger_ts = time.time()
        if alarm.snooze_active:
            self.manager.update(alarm.id, snooze_active=False)
        if self.on_alarm_triggered:
            try:
                self.on_alarm_triggered(alarm)
            except Exception:
                logger.error("on_alarm_triggered callback failed", exc_info=True)
