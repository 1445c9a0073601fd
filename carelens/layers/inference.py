"""CareLens — Skin Inference Chain

Providers tried in order, first usable answer wins:
  1. Skin model endpoint (Hugging Face Inference API) — 503 = warming up,
     wait (capped) and retry once; any other non-2xx is final
  2. Vision chat model (OpenAI-compatible) — only if a key is configured
  3. Local heuristic — pixel statistics, no network
  4. Random safe label — flagged lowConfidence, cannot fail

Every provider exposes attempt(image_bytes) -> ClassificationResult and
raises ProviderError / DecodeError on failure. Image bytes are never stored.
"""
import base64
import random
import time
from typing import Callable
import httpx
import structlog
from openai import OpenAI

from carelens.core.clients import get_http_client, get_vision_client, parse_json_reply
from carelens.core.config import AppConfig, HeuristicConfig, ModelEndpointConfig, VisionChatConfig
from carelens.core.errors import DecodeError, ProviderError
from carelens.layers import vision
from carelens.layers.classifier import CONDITION_CODES, ClassificationResult, Provenance, classify
from carelens.layers.recommendations import GENERIC_TIPS, display_name, recommend, should_consult_doctor, bucket_for

logger = structlog.get_logger()

SAFE_LABELS: tuple[str, ...] = ("normal", "acne", "eczema")

LABEL_KEYWORDS = (
    ("melanoma", "melanoma_suspect"),
    ("carcinoma", "melanoma_suspect"),
    ("cellulitis", "cellulitis"),
    ("rosacea", "rosacea"),
    ("acne", "acne"),
    ("psoriasis", "psoriasis"),
    ("eczema", "eczema"),
    ("dermatitis", "eczema"),
    ("fungal", "fungal_infection"),
    ("tinea", "fungal_infection"),
    ("ringworm", "fungal_infection"),
    ("healthy", "normal"),
    ("normal", "normal"),
)


def normalize_label(raw: str) -> str:
    """Map free-text model labels onto condition codes; keep unknown text as-is."""
    text = str(raw or "").strip()
    lowered = text.lower().replace("-", "_").replace(" ", "_")
    if lowered in CONDITION_CODES:
        return lowered
    for keyword, code in LABEL_KEYWORDS:
        if keyword in lowered:
            return code
    return text or "unknown"


def _mime_type(image_bytes: bytes) -> str:
    if image_bytes.startswith(b"\x89PNG"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


class Provider:
    name = "provider"

    def attempt(self, image_bytes: bytes) -> ClassificationResult:
        raise NotImplementedError


# ── 1. Skin model endpoint ────────────────────────────────────────────

class ModelEndpointProvider(Provider):
    """Hosted image classifier. Raw bytes in, [{label, score}, ...] out."""
    name = "huggingface"

    def __init__(self, config: ModelEndpointConfig, http: httpx.Client,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.http = http
        self.sleep = sleep

    def _post(self, image_bytes: bytes) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.config.api_token}",
            "Content-Type": _mime_type(image_bytes),
        }
        try:
            return self.http.post(self.config.url, content=image_bytes, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"transport error: {e}") from e

    def _warmup_delay(self, resp: httpx.Response) -> float:
        try:
            estimated = float(resp.json().get("estimated_time", self.config.warmup_cap))
        except (ValueError, TypeError, AttributeError):
            estimated = self.config.warmup_cap
        return max(0.0, min(estimated, self.config.warmup_cap))

    def attempt(self, image_bytes: bytes) -> ClassificationResult:
        resp = self._post(image_bytes)
        if resp.status_code == 503:
            wait = self._warmup_delay(resp)
            logger.info("model_warming_up", provider=self.name, wait=wait)
            self.sleep(wait)
            resp = self._post(image_bytes)
        if not resp.is_success:
            raise ProviderError(self.name, resp.text[:200], resp.status_code)

        try:
            predictions = resp.json()
        except ValueError as e:
            raise ProviderError(self.name, "invalid JSON", resp.status_code) from e
        if not isinstance(predictions, list):
            raise ProviderError(self.name, "unexpected response shape", resp.status_code)
        if predictions and isinstance(predictions[0], list):
            predictions = predictions[0]
        candidates = [p for p in predictions if isinstance(p, dict) and "label" in p]
        if not candidates:
            raise ProviderError(self.name, "no predictions", resp.status_code)

        best = max(candidates, key=lambda p: float(p.get("score", 0.0)))
        logger.info("provider_predictions", provider=self.name, count=len(candidates), top=best["label"])
        return ClassificationResult(
            label=normalize_label(best["label"]),
            confidence=best.get("score", 0.0),
            provenance=Provenance(provider=self.name, method="image_classification", model=self.config.model),
        )


# ── 2. Vision chat model ──────────────────────────────────────────────

VISION_PROMPT = """You are a dermatology image triage assistant. Look at the skin photo.
Return ONLY a JSON object:
{
  "condition": "one of: """ + ", ".join(CONDITION_CODES) + """ (or a short free-text name if none fit)",
  "confidence": 0.0 to 1.0
}
Be conservative. This is not a diagnosis."""


class VisionChatProvider(Provider):
    name = "vision_chat"

    def __init__(self, config: VisionChatConfig, client: OpenAI):
        self.config = config
        self.client = client

    def attempt(self, image_bytes: bytes) -> ClassificationResult:
        b64 = base64.b64encode(image_bytes).decode("utf-8")
        try:
            resp = self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": VISION_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": f"data:{_mime_type(image_bytes)};base64,{b64}"}},
                            {"type": "text", "text": "Classify this skin photo. Return JSON only."},
                        ],
                    },
                ],
                max_tokens=200,
                temperature=0.1,
            )
            result = parse_json_reply(resp.choices[0].message.content)
        except ValueError as e:
            raise ProviderError(self.name, f"unparsable reply: {e}") from e
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        if not result.get("condition"):
            raise ProviderError(self.name, "reply has no condition")
        logger.info("vision_chat_ok", condition=result.get("condition"), confidence=result.get("confidence"))
        return ClassificationResult(
            label=normalize_label(result["condition"]),
            confidence=result.get("confidence", 0.0),
            provenance=Provenance(provider=self.name, method="vision_llm", model=self.config.model),
        )


# ── 3. Local heuristic ────────────────────────────────────────────────

class HeuristicProvider(Provider):
    name = "local"

    def __init__(self, config: HeuristicConfig):
        self.config = config

    def attempt(self, image_bytes: bytes) -> ClassificationResult:
        features = vision.extract(image_bytes, self.config)
        return classify(features, self.config)


# ── 4. Random safe label ──────────────────────────────────────────────

class RandomFallbackProvider(Provider):
    """No real answer. Provenance says so."""
    name = "fallback"

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def attempt(self, image_bytes: bytes) -> ClassificationResult:
        label = self.rng.choice(SAFE_LABELS)
        confidence = round(self.rng.uniform(0.6, 0.8), 2)
        logger.warning("random_fallback_used", label=label, confidence=confidence)
        return ClassificationResult(
            label=label,
            confidence=confidence,
            provenance=Provenance(provider=self.name, method="random_fallback", model="none",
                                  is_heuristic=True, low_confidence=True),
        )


# ── Orchestrator ──────────────────────────────────────────────────────

def build_chain(config: AppConfig, http: httpx.Client | None = None, vision_client: OpenAI | None = None,
                sleep: Callable[[float], None] = time.sleep, rng: random.Random | None = None) -> list[Provider]:
    """Providers in priority order. Unconfigured external providers are left out."""
    chain: list[Provider] = []
    if config.skin_model.enabled:
        chain.append(ModelEndpointProvider(
            config.skin_model, http or get_http_client(config.skin_model.timeout), sleep=sleep))
    else:
        logger.info("provider_skipped", provider="huggingface", reason="not_configured")
    vision_client = vision_client or get_vision_client(config)
    if vision_client is not None:
        chain.append(VisionChatProvider(config.vision, vision_client))
    else:
        logger.info("provider_skipped", provider="vision_chat", reason="not_configured")
    chain.append(HeuristicProvider(config.heuristic))
    chain.append(RandomFallbackProvider(rng))
    return chain


class InferenceOrchestrator:
    """Runs the provider chain sequentially. analyze() never raises."""

    def __init__(self, config: AppConfig, strategies: list[Provider], rng: random.Random | None = None):
        self.config = config
        self.strategies = strategies
        self.last_resort = RandomFallbackProvider(rng)

    def analyze(self, image_bytes: bytes) -> ClassificationResult:
        for provider in self.strategies:
            try:
                result = provider.attempt(image_bytes)
            except DecodeError as e:
                logger.warning("image_decode_fail", provider=provider.name, error=str(e))
                continue
            except ProviderError as e:
                logger.warning("provider_fail", provider=provider.name, status=e.status_code, error=e.detail)
                continue
            except Exception as e:
                logger.error("provider_crash", provider=provider.name, error=str(e))
                continue
            if result.confidence < self.config.min_confidence:
                logger.info("provider_low_confidence", provider=provider.name, confidence=result.confidence)
                continue
            logger.info("provider_ok", provider=provider.name, label=result.label, confidence=result.confidence)
            return result
        return self.last_resort.attempt(image_bytes)


# ── Boundary payload ──────────────────────────────────────────────────

FALLBACK_PAYLOAD = {
    "condition": "analysis pending",
    "label": "unknown",
    "confidence": 0,
    "tips": list(GENERIC_TIPS),
    "severity": "unknown",
    "shouldConsultDoctor": True,
    "isHeuristic": False,
    "lowConfidence": True,
    "source": {"provider": "none", "method": "error", "model": ""},
}


def fallback_payload() -> dict:
    payload = dict(FALLBACK_PAYLOAD)
    payload["tips"] = list(GENERIC_TIPS)
    payload["source"] = dict(FALLBACK_PAYLOAD["source"])
    return payload


def to_payload(result: ClassificationResult) -> dict:
    """Shape consumed by the skin-check UI."""
    return {
        "condition": display_name(result.label),
        "label": result.label,
        "confidence": round(result.confidence, 4),
        "tips": recommend(result.label),
        "severity": bucket_for(result.label) or "unknown",
        "shouldConsultDoctor": should_consult_doctor(result.label) or result.provenance.low_confidence,
        "isHeuristic": result.provenance.is_heuristic,
        "lowConfidence": result.provenance.low_confidence,
        "source": result.provenance.to_dict(),
    }
