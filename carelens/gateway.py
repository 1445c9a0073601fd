"""CareLens — FastAPI Gateway

API endpoints:
  /api/skin/analyze        — Skin photo analysis (provider chain, never errors)
  /api/triage/questions    — First-aid triage questions
  /api/triage              — Severity verdict for an answer set
  /api/hospitals/nearby    — Hospitals/clinics around a point (Overpass)
  /api/first-aid/ask       — First-aid Q&A (LLM, keyword fallback)
  /api/first-aid/guides    — Step-by-step guide catalogue
  /api/tts                 — Read text aloud (MP3)
  /api/emergency           — Emergency number + map links (no dispatch)
  /health                  — Liveness + configured providers
"""
import math
import random
import time
from contextlib import asynccontextmanager
from typing import Callable
import httpx
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from openai import OpenAI
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
import structlog

from carelens.core.clients import get_assistant_client, get_http_client, get_speech_client
from carelens.core.config import AppConfig, get_config
from carelens.core.errors import ConfigurationError, ProviderError
from carelens.layers import emergency, facilities, first_aid, speech, triage
from carelens.layers.inference import InferenceOrchestrator, build_chain, fallback_payload, to_payload

logger = structlog.get_logger()

# Process-wide services — built once by configure()
_config: AppConfig = None
_orchestrator: InferenceOrchestrator = None
_model_http: httpx.Client = None
_geo_http: httpx.Client = None
_assistant: OpenAI | None = None
_speech: OpenAI | None = None


def shutdown():
    """Close the outbound HTTP clients built by configure()."""
    global _model_http, _geo_http
    for client in (_model_http, _geo_http):
        if client is not None:
            client.close()
    _model_http = _geo_http = None


def configure(
    config: AppConfig,
    transport: httpx.BaseTransport | None = None,
    vision_client: OpenAI | None = None,
    assistant_client: OpenAI | None = None,
    speech_client: OpenAI | None = None,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
):
    """Wire providers from explicit config. Tests pass fakes here."""
    global _config, _orchestrator, _model_http, _geo_http, _assistant, _speech
    shutdown()
    _config = config
    _model_http = get_http_client(config.skin_model.timeout, transport)
    chain = build_chain(config, http=_model_http, vision_client=vision_client,
                        sleep=sleep, rng=rng)
    _orchestrator = InferenceOrchestrator(config, chain, rng=rng)
    _geo_http = get_http_client(config.geo.timeout, transport)
    _assistant = assistant_client or get_assistant_client(config)
    _speech = speech_client
    logger.info("gateway_configured", providers=[p.name for p in chain], assistant=_assistant is not None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if _config is None:
        configure(get_config())
    logger.info("gateway_started", port=_config.port)
    yield
    shutdown()
    logger.info("gateway_stopped")


app = FastAPI(title="CareLens", description="Consumer health companion API", docs_url="/docs", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(ConfigurationError)
async def configuration_error(request: Request, exc: ConfigurationError):
    logger.warning("configuration_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"message": str(exc)})


@app.exception_handler(ProviderError)
async def provider_error(request: Request, exc: ProviderError):
    return JSONResponse(status_code=502, content={"message": f"{exc.provider} error", "details": exc.detail})


# ── Skin Analysis ─────────────────────────────────────────────────────

@app.post("/api/skin/analyze")
async def analyze_skin(image: UploadFile = File(...)):
    """Classify a skin photo. Always returns a result object; worst case the
    flagged low-confidence fallback or the 'analysis pending' payload."""
    raw = await image.read(_config.max_upload_bytes + 1)
    if len(raw) > _config.max_upload_bytes:
        raise HTTPException(413, f"File too large (max {_config.max_upload_bytes // (1024 * 1024)}MB)")
    if not raw:
        raise HTTPException(400, "Uploaded file is empty")

    try:
        # Provider calls and the warm-up wait block; keep them off the event loop.
        result = await run_in_threadpool(_orchestrator.analyze, raw)
        payload = to_payload(result)
    except Exception as e:
        logger.error("skin_analysis_fail", error=str(e))
        payload = fallback_payload()
    logger.info("skin_analysis_done", size=len(raw), label=payload["label"], provider=payload["source"]["provider"])
    return JSONResponse(payload)


# ── Triage ────────────────────────────────────────────────────────────

class TriageRequest(BaseModel):
    answers: dict[str, str | int | float | None] = {}


@app.get("/api/triage/questions")
def triage_questions():
    return {"questions": [q.to_dict() for q in triage.QUESTIONS]}


@app.post("/api/triage")
def evaluate_triage(body: TriageRequest):
    answers = {k: str(v) for k, v in body.answers.items() if v is not None and k in triage.QUESTION_IDS}
    verdict = triage.evaluate(answers)
    return verdict.to_dict()


# ── Hospitals ─────────────────────────────────────────────────────────

def _parse_coordinate(value: str | None) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@app.get("/api/hospitals/nearby")
def hospitals_nearby(lat: str | None = None, lng: str | None = None, radius: str | None = None):
    lat_f, lng_f = _parse_coordinate(lat), _parse_coordinate(lng)
    if lat_f is None or lng_f is None:
        return JSONResponse(status_code=400, content={"message": "lat and lng are required"})
    radius_m = facilities.clamp_radius(radius, _config.geo)
    items = facilities.nearby_facilities(_geo_http, _config.geo, lat_f, lng_f, radius_m)
    return {"hospitals": items, "radius": radius_m}


# ── First Aid ─────────────────────────────────────────────────────────

class FirstAidQuestion(BaseModel):
    question: str
    language: str = "en"


@app.post("/api/first-aid/ask")
def first_aid_ask(body: FirstAidQuestion):
    if not body.question.strip():
        raise HTTPException(400, "Question cannot be empty")
    return first_aid.first_aid_guidance(
        body.question, body.language, client=_assistant, model=_config.assistant.model,
    )


@app.get("/api/first-aid/guides")
def first_aid_guides(q: str = ""):
    return {"guides": first_aid.search_guides(q)}


# ── Text to Speech ────────────────────────────────────────────────────

class SpeechRequest(BaseModel):
    text: str
    voice: str | None = None


@app.post("/api/tts")
def text_to_speech(body: SpeechRequest):
    global _speech
    if not body.text.strip():
        raise HTTPException(400, "Text cannot be empty")
    if _speech is None:
        _speech = get_speech_client(_config)
    audio = speech.synthesize(_speech, _config.speech, body.text, body.voice)
    return Response(content=audio, media_type="audio/mpeg")


# ── Emergency ─────────────────────────────────────────────────────────

@app.get("/api/emergency")
def emergency_details(lat: str | None = None, lng: str | None = None):
    return emergency.emergency_info(_config.geo, _parse_coordinate(lat), _parse_coordinate(lng))


@app.get("/health")
def health():
    if _config is None:
        return {"status": "initializing"}
    return {
        "status": "healthy",
        "providers": [p.name for p in _orchestrator.strategies],
        "assistant": _assistant is not None,
        "tts": _config.speech.enabled or _speech is not None,
    }
