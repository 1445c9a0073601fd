"""CareLens — Heuristic Skin Classifier

Last-resort classifier used when no external model answers.
Static decision tree over ImageFeatures, first match wins.
Thresholds come from HeuristicConfig and are placeholders, not physics.
Unmatched features fall through to "normal" at 0.6.
"""
from dataclasses import dataclass, field
from typing import Callable
import structlog

from carelens.core.config import HeuristicConfig
from carelens.layers.vision import ImageFeatures

logger = structlog.get_logger()

MAX_CONFIDENCE = 0.95
DEFAULT_LABEL = "normal"
DEFAULT_CONFIDENCE = 0.6

CONDITION_CODES: tuple[str, ...] = (
    "normal",
    "acne",
    "rosacea",
    "eczema",
    "psoriasis",
    "fungal_infection",
    "cellulitis",
    "melanoma_suspect",
)


def clamp_confidence(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(MAX_CONFIDENCE, value))


@dataclass
class Provenance:
    provider: str
    method: str
    model: str = ""
    is_heuristic: bool = False
    low_confidence: bool = False

    def to_dict(self) -> dict:
        return {"provider": self.provider, "method": self.method, "model": self.model}


@dataclass
class ClassificationResult:
    label: str
    confidence: float
    provenance: Provenance
    features: dict = field(default_factory=dict)

    def __post_init__(self):
        self.confidence = clamp_confidence(self.confidence)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "confidence": round(self.confidence, 4),
            "source": self.provenance.to_dict(),
            "isHeuristic": self.provenance.is_heuristic,
            "lowConfidence": self.provenance.low_confidence,
        }


@dataclass(frozen=True)
class Branch:
    label: str
    confidence: float
    matches: Callable[[ImageFeatures, HeuristicConfig], bool]


# Order matters: the first matching branch wins.
BRANCHES: tuple[Branch, ...] = (
    Branch("melanoma_suspect", 0.7,
           lambda f, t: f.dark_ratio > t.melanoma_dark_ratio and f.color_variation > t.melanoma_variation),
    Branch("cellulitis", 0.66,
           lambda f, t: f.redness_ratio > t.cellulitis_redness and f.color_variation > t.cellulitis_variation),
    Branch("acne", 0.72,
           lambda f, t: f.redness_ratio > t.acne_redness),
    Branch("rosacea", 0.68,
           lambda f, t: f.redness_ratio > t.rosacea_redness and f.light_ratio > t.rosacea_light_ratio),
    Branch("psoriasis", 0.65,
           lambda f, t: f.light_ratio > t.psoriasis_light_ratio and f.color_variation > t.psoriasis_variation),
    Branch("eczema", 0.7,
           lambda f, t: f.color_variation > t.eczema_variation),
    Branch("fungal_infection", 0.65,
           lambda f, t: f.dark_ratio > t.fungal_dark_ratio),
    Branch("normal", 0.78,
           lambda f, t: f.color_variation < t.clear_variation and f.redness_ratio < t.clear_redness),
)


def classify(features: ImageFeatures, thresholds: HeuristicConfig | None = None) -> ClassificationResult:
    """Map features to a condition code. Pure, deterministic, never fails."""
    thresholds = thresholds or HeuristicConfig()
    label, confidence = DEFAULT_LABEL, DEFAULT_CONFIDENCE
    for branch in BRANCHES:
        if branch.matches(features, thresholds):
            label, confidence = branch.label, branch.confidence
            break

    logger.info("heuristic_classified", label=label, confidence=confidence)
    return ClassificationResult(
        label=label,
        confidence=confidence,
        provenance=Provenance(provider="local", method="heuristic", model="pixel-statistics", is_heuristic=True),
        features=features.to_dict(),
    )
