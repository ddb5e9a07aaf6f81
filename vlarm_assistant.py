import logging
import re
import signal
from datetime import datetime
from pathlib import Path
from threading import Event, Thread
from typing import Dict, Optional

from alarms.manager import AlarmManager
from alarms.models import Alarm, AlarmStatus
from alarms.scheduler import AlarmScheduler
from alarms.session import VoiceSession, format_alarm_time
from alarms.speech import build_speaker
from alarms.storage import JsonAlarmStore
from alarms.timecalc import at_clock_time
from config import Config, load_config, setup_logging
from gemini_transcriber import GeminiTranscriber, read_wav_pcm
from time_utils import format_tz_offset, now_in_tz, resolve_timezone

logger = logging.getLogger("vlarm")

PROMPT = (
    "Say something (or: list, stop, snooze [min], delete N, enable N, disable N, "
    "repeat N, edit N HH:MM [message], wav PATH, quit)> "
)
EDIT_PATTERN = re.compile(r"(\d+)\s+(\d{1,2}):(\d{2})(?:\s+(.+))?$")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


class StatusBoard:
    """Samples the clock periodically and logs when an alarm changes status."""

    def __init__(self, manager: AlarmManager, tzinfo, interval: float = 1.0):
        self.manager = manager
        self.tzinfo = tzinfo
        self.interval = max(0.1, interval)
        self._last: Dict[str, AlarmStatus] = {}
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="status-board", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    def sample(self, now: datetime) -> Dict[str, AlarmStatus]:
        current: Dict[str, AlarmStatus] = {}
        for status, alarms in self.manager.categorize(now).items():
            for alarm in alarms:
                current[alarm.id] = status
                if self._last.get(alarm.id) not in (None, status):
                    logger.info("Alarm %s is now %s", alarm.id, status.value)
        self._last = current
        return current

    def render(self, now: datetime) -> str:
        groups = self.manager.categorize(now)
        position = {alarm.id: idx for idx, alarm in enumerate(self.manager.list(), start=1)}
        lines = []
        for status in (AlarmStatus.ACTIVE, AlarmStatus.UPCOMING, AlarmStatus.PAST):
            if not groups[status]:
                continue
            lines.append(f"{status.value.title()}:")
            for alarm in groups[status]:
                lines.append(f"  {position[alarm.id]}) {_describe(alarm, now)}")
        disabled = [a for a in self.manager.list() if not a.enabled]
        if disabled:
            lines.append("Disabled:")
            for alarm in disabled:
                lines.append(f"  {position[alarm.id]}) {_describe(alarm, now)}")
        return "\n".join(lines) if lines else "No alarms yet."

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.sample(now_in_tz(self.tzinfo))
            self._stop_event.wait(self.interval)


def _describe(alarm: Alarm, now: datetime) -> str:
    flags = []
    if alarm.repeat_daily:
        flags.append("repeat")
    if alarm.snooze_active:
        flags.append("snoozed")
    suffix = f" [{', '.join(flags)}]" if flags else ""
    return f"{format_alarm_time(alarm.trigger_time, now)} - {alarm.message or 'Alarm'}{suffix}"


class AssistantRuntime:
    def __init__(self, config: Config):
        self.config = config
        self._tzinfo = resolve_timezone(config.timezone_name)
        self.store = JsonAlarmStore(config.alarms_path)
        self.alarm_manager = AlarmManager(self.store.load(), on_change=self.store)
        self.speaker = build_speaker(config)
        self.transcriber = (
            GeminiTranscriber(
                api_key=config.gemini_api_key,
                model_name=config.gemini_transcribe_model,
                input_sample_rate=config.input_sample_rate,
            )
            if config.transcription_enabled
            else None
        )
        self.session = VoiceSession(
            manager=self.alarm_manager,
            speaker=self.speaker,
            transcribe_fn=self.transcriber,
            now_fn=self._now,
        )
        self.scheduler = AlarmScheduler(
            manager=self.alarm_manager,
            check_interval=max(0.2, config.alarm_check_interval_ms / 1000.0),
            default_snooze_minutes=config.alarm_default_snooze_min,
            on_alarm_triggered=self.session.announce,
            now_fn=self._now,
        )
        self.board = StatusBoard(self.alarm_manager, self._tzinfo, config.status_tick_seconds)

    def _now(self) -> datetime:
        return now_in_tz(self._tzinfo)

    def start(self) -> None:
        logger.info("Timezone offset %s", format_tz_offset(self._tzinfo))
        self.scheduler.start()
        self.board.start()

    def shutdown(self) -> None:
        self.board.shutdown()
        self.scheduler.shutdown()
        self.session.stop_speaking()

    def handle_line(self, line: str) -> Optional[str]:
        text = line.strip()
        if not text:
            return None
        command, _, arg = text.partition(" ")
        command = command.lower()

        if command == "list":
            return self.board.render(self._now())
        if command == "stop":
            stopped = self.scheduler.stop_ringing()
            self.session.stop_speaking()
            return "Alarm stopped." if stopped else "Nothing is ringing."
        if command == "snooze":
            minutes = int(arg) if arg.strip().isdigit() else None
            snoozed = self.scheduler.snooze(minutes)
            if not snoozed:
                return "Nothing is ringing, nothing to snooze."
            self.session.stop_speaking()
            return f"Snoozed until {format_alarm_time(snoozed.trigger_time, self._now())}."
        if command == "delete" and arg.strip().isdigit():
            removed = self.alarm_manager.delete_by_index(int(arg))
            if not removed:
                return "Couldn't find that alarm."
            return f"Removed alarm for {format_alarm_time(removed.trigger_time, self._now())}."
        if command in ("enable", "disable") and arg.strip().isdigit():
            alarm = self._alarm_at(int(arg))
            if not alarm:
                return "Couldn't find that alarm."
            self.alarm_manager.set_enabled(alarm.id, command == "enable")
            return f"Alarm {int(arg)} {command}d."
        if command == "repeat" and arg.strip().isdigit():
            alarm = self._alarm_at(int(arg))
            if not alarm:
                return "Couldn't find that alarm."
            updated = self.alarm_manager.set_repeat(alarm.id, not alarm.repeat_daily)
            if not updated:
                return "Couldn't find that alarm."
            return f"Alarm {int(arg)} repeats daily." if updated.repeat_daily else f"Alarm {int(arg)} no longer repeats."
        if command == "edit":
            return self._handle_edit(arg)
        if command == "wav":
            return self._handle_wav(Path(arg.strip()))

        result = self.session.on_transcript(text, is_final=True)
        return result.response_text if result else None

    def _alarm_at(self, index: int) -> Optional[Alarm]:
        alarms = self.alarm_manager.list()
        if index < 1 or index > len(alarms):
            return None
        return alarms[index - 1]

    def _handle_edit(self, arg: str) -> str:
        """``edit N HH:MM [message]``: move alarm N to the next HH:MM, optionally renaming it."""
        match = EDIT_PATTERN.match(arg.strip())
        if not match:
            return "Usage: edit N HH:MM [message]"
        alarm = self._alarm_at(int(match.group(1)))
        if not alarm:
            return "Couldn't find that alarm."
        now = self._now()
        trigger_time = at_clock_time(now, int(match.group(2)), int(match.group(3)))
        if trigger_time is None:
            return "That isn't a valid time."
        fields = {"trigger_time": trigger_time, "snooze_active": False}
        if match.group(4):
            fields["message"] = match.group(4).strip()
        updated = self.alarm_manager.update(alarm.id, **fields)
        if not updated:
            return "Couldn't find that alarm."
        return f"Alarm moved to {format_alarm_time(updated.trigger_time, now)} - {updated.message or 'Alarm'}."

    def _handle_wav(self, path: Path) -> str:
        if not self.transcriber:
            return "Transcription is not configured, set GEMINI_API_KEY."
        try:
            pcm, rate = read_wav_pcm(path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read %s: %s", path, exc)
            return f"Couldn't read {path}."
        self.transcriber.input_sample_rate = rate
        result = self.session.handle_audio(pcm)
        return result.response_text if result and result.response_text else "Nothing recognised."


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info("Starting Vlarm assistant (storage=%s)", config.alarms_path)
    if not config.transcription_enabled:
        logger.warning("GEMINI_API_KEY not set, audio transcription disabled")

    runtime = AssistantRuntime(config)
    runtime.start()
    try:
        for line in iter(lambda: input(PROMPT), None):
            if line.strip().lower() in ("quit", "exit"):
                break
            response = runtime.handle_line(line)
            if response:
                print(response)
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted by user")
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
