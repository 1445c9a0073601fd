"""CareLens — Text to Speech

Reads first-aid guidance aloud. OpenAI-compatible /audio/speech.
Audio is returned in memory; nothing is written to disk.
"""
import structlog
from openai import OpenAI

from carelens.core.config import SpeechConfig
from carelens.core.errors import ProviderError

logger = structlog.get_logger()

MAX_TTS_CHARS = 4000


def synthesize(client: OpenAI, config: SpeechConfig, text: str, voice: str | None = None) -> bytes:
    """Return MP3 bytes. Raises ProviderError on failure."""
    try:
        resp = client.audio.speech.create(
            model=config.model,
            voice=voice or config.voice,
            input=text[:MAX_TTS_CHARS],
        )
        audio = resp.content
    except Exception as e:
        logger.error("tts_fail", error=str(e))
        raise ProviderError("tts", str(e)) from e
    logger.info("tts_ok", chars=len(text), bytes=len(audio))
    return audio
