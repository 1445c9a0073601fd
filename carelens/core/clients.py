"""CareLens — API Clients

OpenAI-compatible clients for the vision, assistant and speech providers.
Plain httpx clients for the skin model endpoint and Overpass.
"""
import json
import httpx
from openai import OpenAI
from carelens.core.config import AppConfig
from carelens.core.errors import ConfigurationError


def get_vision_client(config: AppConfig) -> OpenAI | None:
    if not config.vision.enabled:
        return None
    return OpenAI(api_key=config.vision.api_key, base_url=config.vision.base_url)


def get_assistant_client(config: AppConfig) -> OpenAI | None:
    if not config.assistant.enabled:
        return None
    return OpenAI(api_key=config.assistant.api_key, base_url=config.assistant.base_url)


def get_speech_client(config: AppConfig) -> OpenAI:
    if not config.speech.enabled:
        raise ConfigurationError("Text-to-speech is not configured. Set TTS_API_KEY.")
    return OpenAI(api_key=config.speech.api_key, base_url=config.speech.base_url)


def get_http_client(timeout: float, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """httpx client; tests pass an httpx.MockTransport."""
    return httpx.Client(timeout=timeout, transport=transport)


def parse_json_reply(raw: str) -> dict:
    """Parse a chat reply that should be a JSON object, tolerating ``` fences.
    Raises json.JSONDecodeError / ValueError on anything else."""
    raw = (raw or "").strip()
    if "```" in raw:
        raw = raw.split("```")[1]
        if raw.startswith("json"):
            raw = raw[4:]
    result = json.loads(raw)
    if not isinstance(result, dict):
        raise ValueError("reply is not a JSON object")
    return result
