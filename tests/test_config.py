import os
from pathlib import Path

import pytest

from config import load_config

ENV_KEYS = (
    "DEBUG",
    "LOG_LEVEL",
    "TIMEZONE",
    "ALARM_STORAGE_PATH",
    "ALARM_CHECK_INTERVAL_MS",
    "ALARM_DEFAULT_SNOOZE_MIN",
    "STATUS_TICK_MS",
    "GEMINI_API_KEY",
    "GEMINI_TRANSCRIBE_MODEL",
    "INPUT_SAMPLE_RATE",
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_VOICE_ID",
    "ELEVENLABS_MODEL_ID",
    "TTS_RATE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # load_dotenv writes straight into os.environ, so isolate it per test
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    monkeypatch.setattr(os, "environ", env)


def test_defaults(tmp_path):
    config = load_config(tmp_path / "missing.env")
    assert config.alarms_path == Path("data/alarms.json")
    assert config.alarm_default_snooze_min == 5
    assert config.status_tick_seconds == 1.0
    assert config.log_level == "INFO"
    assert not config.transcription_enabled
    assert config.elevenlabs_api_key is None


def test_reads_env_file(tmp_path):
    env = tmp_path / ".env"
    env.write_text(
        "GEMINI_API_KEY=abc\nALARM_DEFAULT_SNOOZE_MIN=9\nDEBUG=1\nTIMEZONE=Europe/Berlin\n",
        encoding="utf-8",
    )
    config = load_config(env)
    assert config.transcription_enabled
    assert config.alarm_default_snooze_min == 9
    assert config.debug
    assert config.log_level == "DEBUG"
    assert config.timezone_name == "Europe/Berlin"


def test_bad_integer_raises(monkeypatch, tmp_path):
    monkeypatch.setenv("ALARM_CHECK_INTERVAL_MS", "soon")
    with pytest.raises(ValueError, match="ALARM_CHECK_INTERVAL_MS"):
        load_config(tmp_path / "missing.env")


def test_snooze_must_be_positive(monkeypatch, tmp_path):
    monkeypatch.setenv("ALARM_DEFAULT_SNOOZE_MIN", "0")
    with pytest.raises(ValueError):
        load_config(tmp_path / "missing.env")
