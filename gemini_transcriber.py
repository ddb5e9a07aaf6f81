import io
import logging
import wave
from typing import Optional

import google.genai as genai
from google.genai import types

from alarms.session import TranscriptionUnavailable

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = (
    "Transcribe the user's spoken request in English. "
    "Return only the transcript text without any commentary."
)


def pcm_to_wav(audio_pcm: bytes, sample_rate: int, channels: int = 1) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(audio_pcm)
    return buf.getvalue()


def read_wav_pcm(path) -> tuple:
    """Return (pcm_bytes, sample_rate) for a 16-bit WAV file."""
    with wave.open(str(path), "rb") as wav:
        if wav.getsampwidth() != 2:
            raise ValueError(f"{path} is not 16-bit PCM audio")
        return wav.readframes(wav.getnframes()), wav.getframerate()


class GeminiTranscriber:
    def __init__(
        self,
        api_key: str,
        model_name: str,
        input_sample_rate: int = 16000,
        prompt: str = TRANSCRIBE_PROMPT,
        client=None,
    ):
        self.client = client or genai.Client(api_key=api_key)
        self.model_name = model_name
        self.input_sample_rate = input_sample_rate
        self.prompt = prompt
        logger.info("Gemini transcriber ready (model=%s, rate=%s)", model_name, input_sample_rate)

    def transcribe(self, audio_pcm: bytes, sample_rate: Optional[int] = None) -> str:
        if not audio_pcm:
            raise TranscriptionUnavailable("No audio captured")
        wav_bytes = pcm_to_wav(audio_pcm, sample_rate or self.input_sample_rate)
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=[
                    self.prompt,
                    types.Part.from_bytes(data=wav_bytes, mime_type="audio/wav"),
                ],
            )
        except Exception as exc:
            raise TranscriptionUnavailable(f"Gemini transcription failed: {exc}") from exc
        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise TranscriptionUnavailable("Gemini returned an empty transcript")
        logger.debug("Gemini transcript: %s", text)
        return text

    __call__ = transcribe
