"""CareLens — Configuration

All settings loaded from environment variables.
Skin model endpoint: primary image classifier (Hugging Face Inference API)
Vision chat: secondary OpenAI-compatible vision model
Assistant: OpenAI-compatible LLM for first-aid Q&A
Speech: OpenAI-compatible TTS
Geo: OpenStreetMap Overpass
"""
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()


class ModelEndpointConfig(BaseModel):
    url: str = os.getenv("SKIN_MODEL_URL", "")
    api_token: str = os.getenv("HF_API_TOKEN", "")
    model: str = os.getenv("SKIN_MODEL_NAME", "skin-disease-classifier")
    timeout: float = float(os.getenv("MODEL_TIMEOUT", "30"))
    warmup_cap: float = float(os.getenv("MODEL_WARMUP_CAP", "15"))

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.api_token)


class VisionChatConfig(BaseModel):
    api_key: str = os.getenv("VISION_API_KEY", "")
    base_url: str = os.getenv("VISION_BASE_URL", "https://api.openai.com/v1")
    model: str = os.getenv("VISION_MODEL", "gpt-4o-mini")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class AssistantConfig(BaseModel):
    api_key: str = os.getenv("LLM_API_KEY", "")
    base_url: str = os.getenv("LLM_BASE_URL", "https://api.openai.com/v1")
    model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class SpeechConfig(BaseModel):
    api_key: str = os.getenv("TTS_API_KEY", "")
    base_url: str = os.getenv("TTS_BASE_URL", "https://api.openai.com/v1")
    model: str = os.getenv("TTS_MODEL", "tts-1")
    voice: str = os.getenv("TTS_VOICE", "alloy")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class GeoConfig(BaseModel):
    overpass_url: str = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
    default_radius: int = int(os.getenv("HOSPITAL_DEFAULT_RADIUS", "3000"))
    max_radius: int = int(os.getenv("HOSPITAL_MAX_RADIUS", "10000"))
    timeout: float = float(os.getenv("OVERPASS_TIMEOUT", "25"))
    emergency_number: str = os.getenv("EMERGENCY_NUMBER", "101")


class HeuristicConfig(BaseModel):
    """Placeholder pixel-statistics thresholds. Tunable, not clinical."""
    sample_stride: int = int(os.getenv("HEURISTIC_SAMPLE_STRIDE", "4"))
    max_side: int = int(os.getenv("HEURISTIC_MAX_SIDE", "512"))
    max_pixels: int = int(os.getenv("HEURISTIC_MAX_PIXELS", str(25_000_000)))
    dark_brightness: float = 100.0
    light_brightness: float = 200.0
    red_dominance: float = 30.0
    melanoma_dark_ratio: float = float(os.getenv("HEURISTIC_MELANOMA_DARK", "0.3"))
    melanoma_variation: float = float(os.getenv("HEURISTIC_MELANOMA_VARIATION", "70"))
    cellulitis_redness: float = float(os.getenv("HEURISTIC_CELLULITIS_REDNESS", "0.35"))
    cellulitis_variation: float = float(os.getenv("HEURISTIC_CELLULITIS_VARIATION", "60"))
    acne_redness: float = float(os.getenv("HEURISTIC_ACNE_REDNESS", "0.25"))
    rosacea_redness: float = float(os.getenv("HEURISTIC_ROSACEA_REDNESS", "0.15"))
    rosacea_light_ratio: float = float(os.getenv("HEURISTIC_ROSACEA_LIGHT", "0.25"))
    psoriasis_light_ratio: float = float(os.getenv("HEURISTIC_PSORIASIS_LIGHT", "0.4"))
    psoriasis_variation: float = float(os.getenv("HEURISTIC_PSORIASIS_VARIATION", "40"))
    eczema_variation: float = float(os.getenv("HEURISTIC_ECZEMA_VARIATION", "50"))
    fungal_dark_ratio: float = float(os.getenv("HEURISTIC_FUNGAL_DARK", "0.2"))
    clear_variation: float = float(os.getenv("HEURISTIC_CLEAR_VARIATION", "20"))
    clear_redness: float = float(os.getenv("HEURISTIC_CLEAR_REDNESS", "0.05"))


class AppConfig(BaseModel):
    skin_model: ModelEndpointConfig = ModelEndpointConfig()
    vision: VisionChatConfig = VisionChatConfig()
    assistant: AssistantConfig = AssistantConfig()
    speech: SpeechConfig = SpeechConfig()
    geo: GeoConfig = GeoConfig()
    heuristic: HeuristicConfig = HeuristicConfig()
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8080"))
    min_confidence: float = float(os.getenv("MIN_CONFIDENCE", "0.2"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    log_level: str = os.getenv("LOG_LEVEL", "info")


def get_config() -> AppConfig:
    return AppConfig()
