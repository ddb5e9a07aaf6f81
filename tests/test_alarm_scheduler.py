from datetime import datetime, timedelta, timezone

from alarms.manager import AlarmManager
from alarms.scheduler import AlarmScheduler


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _setup():
    clock = Clock(datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc))
    manager = AlarmManager()
    fired = []
    scheduler = AlarmScheduler(manager, on_alarm_triggered=fired.append, now_fn=clock, default_snooze_minutes=5)
    return clock, manager, scheduler, fired


def test_tick_fires_due_alarm_once_and_keeps_it():
    clock, manager, scheduler, fired = _setup()
    alarm = manager.create(clock.now + timedelta(minutes=1), message="Stretch")

    assert scheduler.tick() is None
    clock.now += timedelta(minutes=1)
    assert scheduler.tick() is alarm
    assert scheduler.tick() is None
    assert fired == [alarm]
    assert scheduler.is_ringing
    assert manager.find_by_id(alarm.id) is not None


def test_disabled_alarm_never_fires():
    clock, manager, scheduler, fired = _setup()
    manager.create(clock.now, message="Off", enabled=False)
    assert scheduler.tick() is None
    assert fired == []


def test_due_alarms_fire_in_order():
    clock, manager, scheduler, fired = _setup()
    late = manager.create(clock.now - timedelta(minutes=1))
    early = manager.create(clock.now - timedelta(minutes=2))
    scheduler.tick()
    scheduler.tick()
    assert fired == [early, late]


def test_snooze_moves_ringing_alarm_and_keeps_id():
    clock, manager, scheduler, fired = _setup()
    alarm = manager.create(clock.now, message="Wake up")
    scheduler.tick()

    snoozed = scheduler.snooze()

    assert snoozed.id == alarm.id
    assert snoozed.snooze_active is True
    assert snoozed.trigger_time == clock.now + timedelta(minutes=5)
    assert not scheduler.is_ringing

    clock.now += timedelta(minutes=5)
    assert scheduler.tick() is alarm
    assert manager.find_by_id(alarm.id).snooze_active is False


def test_snooze_without_ringing_alarm():
    _, _, scheduler, _ = _setup()
    assert scheduler.snooze(10) is None


def test_stop_ringing():
    clock, manager, scheduler, _ = _setup()
    alarm = manager.create(clock.now)
    scheduler.tick()
    assert scheduler.stop_ringing() is alarm
    assert scheduler.stop_ringing() is None


def test_editing_time_forward_rearms_alarm():
    clock, manager, scheduler, fired = _setup()
    alarm = manager.create(clock.now)
    scheduler.tick()
    manager.update(alarm.id, trigger_time=clock.now + timedelta(hours=1))
    clock.now += timedelta(hours=1)
    assert scheduler.tick() is alarm
    assert len(fired) == 2


def test_callback_errors_are_contained():
    clock = Clock(datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc))
    manager = AlarmManager()

    def boom(alarm):
        raise RuntimeError("speaker gone")

    scheduler = AlarmScheduler(manager, on_alarm_triggered=boom, now_fn=clock)
    alarm = manager.create(clock.now)
    assert scheduler.tick() is alarm


def test_start_skips_alarms_already_overdue():
    clock, manager, scheduler, fired = _setup()
    manager.create(clock.now - timedelta(hours=3))
    scheduler.check_interval = 60
    scheduler.start()
    try:
        assert scheduler.tick() is None
    finally:
        scheduler.shutdown()
    assert fired == []


def test_fired_keys_are_forgotten_for_deleted_and_moved_alarms():
    clock, manager, scheduler, fired = _setup()
    gone = manager.create(clock.now, message="Gone")
    moved = manager.create(clock.now, message="Moved")
    kept = manager.create(clock.now, message="Kept")
    while scheduler.tick():
        pass
    assert len(scheduler._fired) == 3

    manager.delete(gone.id)
    manager.update(moved.id, trigger_time=clock.now + timedelta(hours=2))
    assert scheduler.tick() is None

    assert scheduler._fired == {(kept.id, kept.trigger_time)}
    assert len(fired) == 3
