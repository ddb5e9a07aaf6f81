from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Optional

from .manager import AlarmManager
from .models import Alarm
from .parser import TimedReminder, interpret_utterance

logger = logging.getLogger(__name__)

RETRY_PROMPT = (
    "Sorry, I didn't catch that. Could you repeat? "
    "For example, say 'Remind me in 20 minutes to finish my homework.'"
)
TRANSCRIPTION_RETRY = "Sorry, I couldn't hear you properly. Please try again."
DEFAULT_ALARM_ANNOUNCEMENT = "Alarm!"


class TranscriptionUnavailable(RuntimeError):
    """Raised by a transcriber when it cannot produce text for an utterance."""


@dataclass
class SessionResult:
    handled: bool
    response_text: Optional[str] = None
    alarm: Optional[Alarm] = None
    transcript: Optional[str] = None


class VoiceSession:
    """One owner for interpretation, alarm creation and the speech channel.

    At most one speak request is active at a time; a new request stops the
    previous one and its completion callback is dropped.
    """

    def __init__(
        self,
        manager: AlarmManager,
        speaker,
        transcribe_fn: Optional[Callable[[bytes], Optional[str]]] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self.manager = manager
        self.speaker = speaker
        self.transcribe_fn = transcribe_fn
        self.now_fn = now_fn or (lambda: datetime.now().astimezone())
        self.speaking = False
        self.current_message: Optional[str] = None
        self._partial: str = ""
        self._generation = 0
        self._lock = Lock()

    def on_transcript(self, text: str, is_final: bool) -> Optional[SessionResult]:
        if not is_final:
            self._partial = text
            return None
        self._partial = ""
        return self.handle_text(text)

    def force_stop(self) -> Optional[SessionResult]:
        """Interpret whatever partial transcript arrived before the caller stopped listening."""
        captured, self._partial = self._partial, ""
        if not captured.strip():
            return None
        return self.handle_text(captured)

    def handle_audio(self, audio_pcm: bytes) -> Optional[SessionResult]:
        if not self.transcribe_fn:
            return None
        try:
            transcript = self.transcribe_fn(audio_pcm)
        except TranscriptionUnavailable as exc:
            logger.error("Transcription failed: %s", exc)
            self.speak(TRANSCRIPTION_RETRY)
            return SessionResult(handled=False, response_text=TRANSCRIPTION_RETRY)
        if not transcript:
            return None
        logger.info("Transcript for intent routing: %s", transcript)
        return self.handle_text(transcript)

    def handle_text(self, text: str, on_spoken: Optional[Callable[[], None]] = None) -> SessionResult:
        now = self.now_fn()
        parsed = interpret_utterance(text, now=now)
        if not isinstance(parsed, TimedReminder):
            self.speak(RETRY_PROMPT, on_spoken)
            return SessionResult(handled=False, response_text=RETRY_PROMPT, transcript=text)

        alarm = self.manager.create(parsed.trigger_time, message=parsed.message)
        resp = f"Got it! I'll remind you to {parsed.message} at {format_clock(alarm.trigger_time)}."
        self.speak(resp, on_spoken)
        return SessionResult(handled=True, response_text=resp, alarm=alarm, transcript=text)

    def announce(self, alarm: Alarm) -> None:
        self.speak(alarm.message or DEFAULT_ALARM_ANNOUNCEMENT)

    def speak(self, message: str, on_complete: Optional[Callable[[], None]] = None) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            was_speaking = self.speaking
            self.speaking = True
            self.current_message = message
        if was_speaking:
            logger.debug("Superseding in-flight speech")
        self.speaker.stop()
        logger.info("Speaking: %s", message)

        def _done() -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self.speaking = False
                self.current_message = None
            if on_complete:
                on_complete()

        self.speaker.speak(message, _done)

    def stop_speaking(self) -> None:
        with self._lock:
            self._generation += 1
            self.speaking = False
            self.current_message = None
        self.speaker.stop()


def format_clock(dt: datetime) -> str:
    """12-hour time like "7:05 PM"."""
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def format_alarm_time(dt: datetime, now: datetime) -> str:
    day_prefix = ""
    if dt.date() == now.date():
        day_prefix = "today "
    elif dt.date() == now.date() + timedelta(days=1):
        day_prefix = "tomorrow "
    elif dt.date() == now.date() - timedelta(days=1):
        day_prefix = "yesterday "
    else:
        day_prefix = dt.strftime("%b %d ")
    return f"{day_prefix}{format_clock(dt)}"
