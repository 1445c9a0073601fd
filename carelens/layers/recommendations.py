"""CareLens — Recommendations

Static lookup: condition code -> display name + severity bucket, and
(label, bucket) -> ordered tips. Unknown labels get three generic disclaimers.
"""

SEVERITY_BUCKETS = ("none", "low", "moderate", "high", "critical")

CONDITIONS = {
    "normal": {"name": "Normal Skin Condition", "bucket": "none"},
    "acne": {"name": "Acne", "bucket": "low"},
    "rosacea": {"name": "Rosacea", "bucket": "low"},
    "eczema": {"name": "Eczema", "bucket": "moderate"},
    "psoriasis": {"name": "Psoriasis", "bucket": "moderate"},
    "fungal_infection": {"name": "Fungal Infection", "bucket": "moderate"},
    "cellulitis": {"name": "Possible Cellulitis", "bucket": "high"},
    "melanoma_suspect": {"name": "Suspicious Pigmented Lesion", "bucket": "critical"},
}

LABEL_TIPS = {
    "normal": [
        "Continue regular skin monitoring",
        "Use SPF 30+ sunscreen daily",
        "Maintain good hydration",
    ],
    "acne": [
        "Wash the area twice daily with a gentle cleanser",
        "Avoid picking or squeezing spots",
        "Use non-comedogenic skincare products",
    ],
    "rosacea": [
        "Avoid known triggers such as heat, spicy food and alcohol",
        "Use a gentle, fragrance-free moisturizer",
    ],
    "eczema": [
        "Moisturize at least twice a day with a fragrance-free emollient",
        "Avoid hot showers and harsh soaps",
        "Try not to scratch; keep nails short",
    ],
    "psoriasis": [
        "Keep the skin moisturized to reduce scaling",
        "Short daily sun exposure may help; avoid sunburn",
    ],
    "fungal_infection": [
        "Keep the area clean and dry",
        "An over-the-counter antifungal cream may help",
        "Do not share towels or clothing",
    ],
    "cellulitis": [
        "Mark the edge of the redness to track spreading",
        "Keep the area elevated and clean",
    ],
    "melanoma_suspect": [
        "Note any change in size, shape or color of the spot",
        "Avoid sun exposure on the area",
    ],
}

BUCKET_TIPS = {
    "none": ["Consider monthly self-examinations"],
    "low": ["See a pharmacist or doctor if it does not improve within two weeks"],
    "moderate": ["Book an appointment with a doctor or dermatologist if symptoms persist or worsen"],
    "high": [
        "See a doctor within 24 hours",
        "Seek urgent care if you develop fever or the redness spreads quickly",
    ],
    "critical": [
        "Book a dermatologist appointment as soon as possible",
        "Seek urgent care if the spot bleeds, grows rapidly or changes quickly",
    ],
}

GENERIC_TIPS = (
    "This analysis is not a medical diagnosis.",
    "Consult a healthcare professional for an accurate assessment.",
    "Seek emergency care if symptoms are severe or worsening.",
)


def bucket_for(label: str) -> str | None:
    info = CONDITIONS.get(label)
    return info["bucket"] if info else None


def display_name(label: str) -> str:
    info = CONDITIONS.get(label)
    return info["name"] if info else label


def recommend(label: str, severity_bucket: str | None = None) -> list[str]:
    """Ordered tips for a label. Pure; returns a new list every call."""
    if label not in CONDITIONS:
        return list(GENERIC_TIPS)
    bucket = severity_bucket if severity_bucket in SEVERITY_BUCKETS else CONDITIONS[label]["bucket"]
    return list(LABEL_TIPS.get(label, [])) + list(BUCKET_TIPS[bucket])


def should_consult_doctor(label: str) -> bool:
    return bucket_for(label) in ("moderate", "high", "critical") or label not in CONDITIONS
