import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


@dataclass
class Config:
    debug: bool
    log_level: str
    timezone_name: Optional[str]
    alarms_path: Path
    alarm_check_interval_ms: int
    alarm_default_snooze_min: int
    status_tick_seconds: float
    gemini_api_key: str
    gemini_transcribe_model: str
    input_sample_rate: int
    elevenlabs_api_key: Optional[str]
    elevenlabs_voice_id: Optional[str]
    elevenlabs_model_id: Optional[str]
    tts_rate: int

    @property
    def transcription_enabled(self) -> bool:
        return bool(self.gemini_api_key)


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()
    timezone_name = os.getenv("TIMEZONE") or None
    alarms_path = Path(os.getenv("ALARM_STORAGE_PATH", "data/alarms.json"))
    alarm_check_interval_ms = _get_env_int("ALARM_CHECK_INTERVAL_MS", 800)
    alarm_default_snooze_min = _get_env_int("ALARM_DEFAULT_SNOOZE_MIN", 5)
    if alarm_default_snooze_min < 1:
        raise ValueError("ALARM_DEFAULT_SNOOZE_MIN must be at least 1")
    status_tick_seconds = _get_env_float("STATUS_TICK_MS", 1000.0) / 1000.0
    gemini_api_key = os.getenv("GEMINI_API_KEY") or ""
    gemini_transcribe_model = os.getenv("GEMINI_TRANSCRIBE_MODEL", "gemini-2.5-flash")
    input_sample_rate = _get_env_int("INPUT_SAMPLE_RATE", 16000)
    elevenlabs_api_key = os.getenv("ELEVENLABS_API_KEY") or None
    elevenlabs_voice_id = os.getenv("ELEVENLABS_VOICE_ID") or None
    elevenlabs_model_id = os.getenv("ELEVENLABS_MODEL_ID") or None
    tts_rate = _get_env_int("TTS_RATE", 185)

    return Config(
        debug=debug,
        log_level=log_level,
        timezone_name=timezone_name,
        alarms_path=alarms_path,
        alarm_check_interval_ms=alarm_check_interval_ms,
        alarm_default_snooze_min=alarm_default_snooze_min,
        status_tick_seconds=status_tick_seconds,
        gemini_api_key=gemini_api_key,
        gemini_transcribe_model=gemini_transcribe_model,
        input_sample_rate=input_sample_rate,
        elevenlabs_api_key=elevenlabs_api_key,
        elevenlabs_voice_id=elevenlabs_voice_id,
        elevenlabs_model_id=elevenlabs_model_id,
        tts_rate=tts_rate,
    )


def setup_logging(log_level: str = "INFO") -> None:
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    log_path = logs_dir / "vlarm.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
