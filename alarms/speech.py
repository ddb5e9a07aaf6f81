from __future__ import annotations

import logging
import subprocess
from threading import Lock, Thread
from typing import Callable, Optional, Sequence

import pyttsx3
from elevenlabs.client import ElevenLabs
from elevenlabs.types import VoiceSettings

logger = logging.getLogger(__name__)

DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"  # Rachel
DEFAULT_MODEL_ID = "eleven_turbo_v2_5"
PLAYER_COMMAND = ("ffplay", "-autoexit", "-nodisp", "-loglevel", "quiet", "-")


class SynthesisUnavailable(RuntimeError):
    """Raised when a speech backend cannot produce audio for a request."""


def _complete(on_complete: Optional[Callable[[], None]]) -> None:
    if not on_complete:
        return
    try:
        on_complete()
    except Exception:
        logger.error("Speech completion callback failed", exc_info=True)


class LocalSpeaker:
    """Lightweight offline TTS wrapper around pyttsx3."""

    def __init__(self, rate: int = 185):
        self._lock = Lock()
        try:
            self._engine = pyttsx3.init()
        except Exception as exc:  # pragma: no cover - depends on OS speech drivers
            logger.warning("pyttsx3 unavailable, local speech disabled: %s", exc)
            self._engine = None
        if self._engine:
            try:
                self._engine.setProperty("rate", rate)
            except Exception:
                logger.debug("Failed to set pyttsx3 rate")

    @property
    def available(self) -> bool:
        return self._engine is not None

    def speak(self, text: str, on_complete: Optional[Callable[[], None]] = None) -> bool:
        if not self._engine:
            logger.warning("No local speech engine, dropping message: %s", text)
            _complete(on_complete)
            return False
        Thread(target=self._speak, args=(text, on_complete), name="local-speech", daemon=True).start()
        return True

    def stop(self) -> None:
        if not self._engine:
            return
        try:
            self._engine.stop()
        except Exception:
            logger.debug("pyttsx3 stop failed", exc_info=True)

    def _speak(self, text: str, on_complete: Optional[Callable[[], None]]) -> None:
        with self._lock:
            try:
                self._engine.say(text)
                self._engine.runAndWait()
            except Exception:  # pragma: no cover - engine runtime errors
                logger.error("pyttsx3 failed to speak text", exc_info=True)
        _complete(on_complete)


class ElevenLabsSpeaker:
    """Cloud TTS through ElevenLabs, falling back to a local speaker on failure."""

    def __init__(
        self,
        api_key: Optional[str],
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
        fallback: Optional[LocalSpeaker] = None,
        player_command: Sequence[str] = PLAYER_COMMAND,
        client=None,
    ):
        self.voice_id = voice_id or DEFAULT_VOICE_ID
        self.model_id = model_id or DEFAULT_MODEL_ID
        self.fallback = fallback
        self.player_command = list(player_command)
        self._client = client or (ElevenLabs(api_key=api_key) if api_key else None)
        self._process: Optional[subprocess.Popen] = None
        self._lock = Lock()
        # Bumped by speak() and stop(). Only the latest request may play.
        self._generation = 0
        logger.info(
            "ElevenLabs speaker ready (voice=%s, model=%s, configured=%s)",
            self.voice_id,
            self.model_id,
            self._client is not None,
        )

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.fallback and self.fallback.available)

    def speak(self, text: str, on_complete: Optional[Callable[[], None]] = None) -> bool:
        with self._lock:
            self._generation += 1
            token = self._generation
        Thread(target=self._run, args=(text, on_complete, token), name="cloud-speech", daemon=True).start()
        return True

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            process = self._process
            self._process = None
        if process and process.poll() is None:
            process.terminate()
        if self.fallback:
            self.fallback.stop()

    def _run(self, text: str, on_complete: Optional[Callable[[], None]], token: int) -> None:
        try:
            audio = self.synthesize(text)
            if self._superseded(token):
                logger.debug("Dropping synthesized audio for a cancelled request")
                return
            self._play(audio, token)
        except SynthesisUnavailable as exc:
            if self._superseded(token):
                return
            logger.warning("ElevenLabs speech unavailable (%s), falling back to local TTS", exc)
            if self.fallback:
                self.fallback.speak(text, on_complete)
                return
        if self._superseded(token):
            return
        _complete(on_complete)

    def _superseded(self, token: int) -> bool:
        with self._lock:
            return token != self._generation

    def synthesize(self, text: str) -> bytes:
        if not self._client:
            raise SynthesisUnavailable("ElevenLabs API key not configured")
        try:
            chunks = self._client.text_to_speech.convert(
                voice_id=self.voice_id,
                text=text,
                model_id=self.model_id,
                output_format="mp3_44100_128",
                voice_settings=VoiceSettings(
                    stability=0.5,
                    similarity_boost=0.75,
                    style=0.0,
                    use_speaker_boost=True,
                ),
            )
            audio = b"".join(chunks)
        except Exception as exc:
            raise SynthesisUnavailable(f"ElevenLabs request failed: {exc}") from exc
        if not audio:
            raise SynthesisUnavailable("No audio data received from ElevenLabs")
        return audio

    def _play(self, audio: bytes, token: Optional[int] = None) -> None:
        try:
            process = subprocess.Popen(
                self.player_command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise SynthesisUnavailable(f"Audio player {self.player_command[0]} not available: {exc}") from exc
        with self._lock:
            stale = token is not None and token != self._generation
            if not stale:
                self._process = process
        if stale:
            # stop() ran while the player was starting.
            process.kill()
            process.wait()
            return
        try:
            process.communicate(audio)
        except (BrokenPipeError, OSError):
            # Terminated by stop() while still writing.
            logger.debug("Playback interrupted")
        finally:
            with self._lock:
                if self._process is process:
                    self._process = None


def build_speaker(config) -> LocalSpeaker | ElevenLabsSpeaker:
    local = LocalSpeaker(rate=config.tts_rate)
    if config.elevenlabs_api_key:
        return ElevenLabsSpeaker(
            api_key=config.elevenlabs_api_key,
            voice_id=config.elevenlabs_voice_id,
            model_id=config.elevenlabs_model_id,
            fallback=local,
        )
    logger.info("ELEVENLABS_API_KEY not set, using local speech only")
    return local
