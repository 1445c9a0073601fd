"""Shared builders for the test suite: configs, images, fake OpenAI clients."""
import io
import json
from types import SimpleNamespace
from PIL import Image

from carelens.core.config import (
    AppConfig, AssistantConfig, GeoConfig, HeuristicConfig, ModelEndpointConfig, SpeechConfig, VisionChatConfig,
)

MODEL_URL = "https://models.test/skin-classifier"
OVERPASS_URL = "https://overpass.test/api/interpreter"


def make_config(model: bool = False, vision: bool = False, **overrides) -> AppConfig:
    """Config with every external provider off unless asked for."""
    values = dict(
        skin_model=ModelEndpointConfig(url=MODEL_URL if model else "", api_token="hf_test" if model else "",
                                       warmup_cap=15.0),
        vision=VisionChatConfig(api_key="vision-test" if vision else "", model="vision-test-model"),
        assistant=AssistantConfig(api_key="", model="assistant-test-model"),
        speech=SpeechConfig(api_key="", model="tts-test", voice="alloy"),
        geo=GeoConfig(overpass_url=OVERPASS_URL, default_radius=3000, max_radius=10000, emergency_number="101"),
        heuristic=HeuristicConfig(),
        min_confidence=0.2,
        max_upload_bytes=10 * 1024 * 1024,
    )
    values.update(overrides)
    return AppConfig(**values)


def png_bytes(color=(180, 160, 150), size=(64, 64)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def split_png_bytes(top, bottom, size=(64, 64)) -> bytes:
    """Top half one color, bottom half another."""
    img = Image.new("RGB", size, top)
    img.paste(Image.new("RGB", (size[0], size[1] // 2), bottom), (0, size[1] // 2))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FakeChatClient:
    """Stands in for openai.OpenAI: chat.completions.create returns canned replies."""

    def __init__(self, reply=None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = self.reply if isinstance(self.reply, str) else json.dumps(self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeSpeechClient:
    def __init__(self, audio: bytes = b"ID3-fake-mp3", error: Exception | None = None):
        self.audio_bytes = audio
        self.error = error
        self.calls = []
        self.audio = SimpleNamespace(speech=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.audio_bytes)
