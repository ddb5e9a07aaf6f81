import wave
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from alarms.session import TranscriptionUnavailable
from gemini_transcriber import GeminiTranscriber, pcm_to_wav, read_wav_pcm


def test_pcm_to_wav_round_trip(tmp_path):
    pcm = b"\x01\x00\x02\x00" * 100
    path = tmp_path / "clip.wav"
    path.write_bytes(pcm_to_wav(pcm, 16000))
    data, rate = read_wav_pcm(path)
    assert data == pcm
    assert rate == 16000


def test_read_wav_rejects_8_bit(tmp_path):
    path = tmp_path / "clip.wav"
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(1)
        wav.setframerate(8000)
        wav.writeframes(b"\x80" * 10)
    with pytest.raises(ValueError):
        read_wav_pcm(path)


def test_transcribe_returns_stripped_text():
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(text="  wake me up at 7 \n")
    transcriber = GeminiTranscriber(api_key="key", model_name="gemini-2.5-flash", client=client)
    assert transcriber(b"\x00\x00" * 10) == "wake me up at 7"
    assert client.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-flash"


def test_transcribe_failures_raise_transcription_unavailable():
    client = MagicMock()
    client.models.generate_content.side_effect = RuntimeError("quota")
    transcriber = GeminiTranscriber(api_key="key", model_name="m", client=client)
    with pytest.raises(TranscriptionUnavailable):
        transcriber.transcribe(b"\x00\x00")
    with pytest.raises(TranscriptionUnavailable):
        transcriber.transcribe(b"")

    client.models.generate_content.side_effect = None
    client.models.generate_content.return_value = SimpleNamespace(text="")
    with pytest.raises(TranscriptionUnavailable):
        transcriber.transcribe(b"\x00\x00")
