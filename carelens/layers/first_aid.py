"""CareLens — First-Aid Assistant

Free-text first-aid questions.
  LLM (OpenAI-compatible) first, answering in the requested language.
  Keyword bank fallback when the LLM is not configured or fails.
Also serves the static step-by-step guide catalogue.
"""
import structlog
from openai import OpenAI

from carelens.core.clients import parse_json_reply

logger = structlog.get_logger()


FIRST_AID_PROMPT = """You are a calm first-aid assistant for the general public.
Answer the user's first-aid question with short, practical steps. Always advise
calling the local emergency number for life-threatening situations.
Reply in the language with code "{language}".
Return ONLY a JSON object:
{{
  "answer": "the first-aid guidance, at most 120 words",
  "follow_ups": ["short follow-up question the user may ask next"],
  "severity_score": 0 to 10 (10 = life-threatening)
}}"""


# Keyword bank: first entry whose keywords appear in the question wins.
FALLBACK_BANK = (
    {
        "keywords": ("cut", "bleed"),
        "answer": "For a deep cut: 1) Apply firm pressure with a clean cloth. 2) Rinse gently with clean water "
                  "once bleeding slows. 3) Apply a sterile dressing. 4) If bleeding is heavy, won't stop, or the "
                  "wound is deep/dirty, seek urgent care and consider calling 101.",
        "follow_ups": ["How do I know if a cut needs stitches?", "What are signs of wound infection?"],
        "severity_score": 5,
    },
    {
        "keywords": ("burn",),
        "answer": "For minor burns: Cool the area under cool (not cold) running water for 10-15 minutes. Do not "
                  "apply ice, oils, or butter. Cover loosely with a sterile, non-stick dressing. Seek medical care "
                  "for large or severe burns.",
        "follow_ups": ["When is a burn serious enough for the ER?", "Should I pop a burn blister?"],
        "severity_score": 4,
    },
    {
        "keywords": ("choke", "choking"),
        "answer": "For choking (adult): Ask \"Are you choking?\" If they can't speak or breathe, stand behind, "
                  "place a fist above the navel, grasp with the other hand, and give quick upward thrusts. Repeat "
                  "until object is expelled or they become unresponsive. Call 101 if breathing is not restored.",
        "follow_ups": ["What if the person becomes unconscious?", "How is choking different for infants?"],
        "severity_score": 9,
    },
    {
        "keywords": ("sprain", "ankle"),
        "answer": "For a sprain: Use R.I.C.E. (Rest, Ice 15-20 min on/off, Compression with an elastic bandage "
                  "not too tight, Elevation above heart). If severe pain, inability to bear weight, or deformity, "
                  "seek medical evaluation.",
        "follow_ups": ["How do I tell a sprain from a fracture?", "When can I walk on it again?"],
        "severity_score": 3,
    },
    {
        "keywords": ("chest pain",),
        "answer": "Chest pain can be serious. Have the person rest, avoid exertion. If pain is heavy, crushing, "
                  "radiates to arm/jaw, with sweating or nausea, call 101 immediately. Consider aspirin if not "
                  "allergic and advised by a clinician.",
        "follow_ups": ["What are warning signs of a heart attack?", "How do I perform CPR?"],
        "severity_score": 8,
    },
)

DEFAULT_ANSWER = {
    "answer": "I do not have a specific answer for that. Describe the injury (e.g., cut, burn, choking, sprain, "
              "chest pain) for tailored first aid steps. For severe symptoms, call 101.",
    "follow_ups": ["What should I do for a deep cut?", "How do I treat a minor burn?"],
    "severity_score": 2,
}


def _clamp_score(value) -> int:
    try:
        return max(0, min(10, int(round(float(value)))))
    except (TypeError, ValueError):
        return 0


def fallback_guidance(question: str) -> dict:
    q = question.strip().lower()
    entry = next((e for e in FALLBACK_BANK if any(k in q for k in e["keywords"])), DEFAULT_ANSWER)
    return {
        "answerText": entry["answer"],
        "followUps": list(entry["follow_ups"]),
        "severityScore": entry["severity_score"],
        "source": "local_rules",
    }


def llm_guidance(client: OpenAI, model: str, question: str, language: str = "en") -> dict:
    """Ask the LLM. Raises on transport or parse failure; caller falls back."""
    resp = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": FIRST_AID_PROMPT.format(language=language or "en")},
            {"role": "user", "content": question},
        ],
        max_tokens=500,
        temperature=0.2,
    )
    result = parse_json_reply(resp.choices[0].message.content)
    answer = str(result.get("answer", "")).strip()
    if not answer:
        raise ValueError("empty answer")
    follow_ups = result.get("follow_ups") or []
    if not isinstance(follow_ups, list):
        follow_ups = [str(follow_ups)]
    return {
        "answerText": answer,
        "followUps": [str(f) for f in follow_ups][:5],
        "severityScore": _clamp_score(result.get("severity_score", 0)),
        "source": "llm",
    }


def first_aid_guidance(question: str, language: str = "en", client: OpenAI | None = None, model: str = "") -> dict:
    """LLM answer when available, keyword bank otherwise. Never raises."""
    if client is not None:
        try:
            result = llm_guidance(client, model, question, language)
            logger.info("first_aid_llm_ok", language=language, severity=result["severityScore"])
            return result
        except Exception as e:
            logger.warning("first_aid_llm_fail", error=str(e))
    result = fallback_guidance(question)
    logger.info("first_aid_fallback", severity=result["severityScore"])
    return result


# ── Guide catalogue ───────────────────────────────────────────────────

GUIDES = (
    {
        "id": "cpr",
        "title": "CPR (Cardiopulmonary Resuscitation)",
        "description": "Life-saving technique for cardiac arrest",
        "severity": "high",
        "emergencyCall": True,
        "steps": [
            "Call 101 immediately",
            "Place person on firm, flat surface",
            "Tilt head back, lift chin",
            "Place heel of hand on center of chest",
            "Push hard and fast at least 2 inches deep",
            "Allow complete chest recoil between compressions",
            "Compress at rate of 100-120 per minute",
            "Continue until emergency services arrive",
        ],
    },
    {
        "id": "choking",
        "title": "Choking",
        "description": "When airway is blocked by foreign object",
        "severity": "high",
        "emergencyCall": True,
        "steps": [
            "Ask \"Are you choking?\" if they can speak",
            "Call 101 if they cannot speak or breathe",
            "Stand behind person, wrap arms around waist",
            "Make fist with one hand above navel",
            "Grasp fist with other hand",
            "Give quick upward thrusts",
            "Continue until object comes out",
            "If person becomes unconscious, start CPR",
        ],
    },
    {
        "id": "burn",
        "title": "Minor Burns",
        "description": "Treatment for first and second-degree burns",
        "severity": "medium",
        "emergencyCall": False,
        "steps": [
            "Remove from heat source immediately",
            "Cool burn with cool (not cold) water for 10-15 minutes",
            "Remove tight items before swelling starts",
            "Do not break blisters if they form",
            "Apply moisturizer or aloe vera gel",
            "Cover with sterile gauze loosely",
            "Take over-the-counter pain medication",
            "Seek medical care if burn is larger than 3 inches",
        ],
    },
    {
        "id": "cut",
        "title": "Cuts and Scrapes",
        "description": "Basic wound care for minor injuries",
        "severity": "low",
        "emergencyCall": False,
        "steps": [
            "Clean your hands with soap and water",
            "Stop the bleeding by applying pressure",
            "Clean the wound with clean water",
            "Apply antibiotic ointment if available",
            "Cover with sterile bandage or adhesive bandage",
            "Change dressing daily and keep wound clean",
            "Watch for signs of infection (redness, swelling, pus)",
            "Seek medical care if wound is deep or won't stop bleeding",
        ],
    },
)


def search_guides(term: str = "") -> list[dict]:
    term = (term or "").strip().lower()
    return [
        {**g, "steps": list(g["steps"])}
        for g in GUIDES
        if not term or term in g["title"].lower() or term in g["description"].lower()
    ]
