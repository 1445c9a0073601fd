"""CareLens — First-Aid Triage

Severity rule table + triage session.
  - Eight fixed questions (yes/no, number, choice)
  - Rules are declarative: predicate -> (level, note), evaluated in order
  - A rule can only raise the level, never lower it
  - Verdict is a pure function of the answers, recomputed on every change

Gating: nothing is evaluated until consciousness and breathing are answered.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
import structlog

logger = structlog.get_logger()


class Level(str, Enum):
    INFO = "info"
    URGENT = "urgent"
    CRITICAL = "critical"


_LEVEL_RANK = {Level.INFO: 0, Level.URGENT: 1, Level.CRITICAL: 2}


def max_level(a: Level, b: Level) -> Level:
    return a if _LEVEL_RANK[a] >= _LEVEL_RANK[b] else b


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    kind: str  # yesno | number | choice
    choices: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        data = {"id": self.id, "text": self.text, "type": self.kind}
        if self.choices:
            data["choices"] = list(self.choices)
        return data


QUESTIONS: tuple[Question, ...] = (
    Question("conscious", "Is the person conscious and responsive?", "yesno"),
    Question("breathing", "Is the person breathing normally?", "yesno"),
    Question("severeBleeding", "Is there severe bleeding?", "yesno"),
    Question("age", "Approximate age?", "number"),
    Question("chestPain", "Are they having chest pain or pressure?", "yesno"),
    Question("allergicReaction", "Signs of a severe allergic reaction (swelling, hives, trouble breathing)?", "yesno"),
    Question("headInjury", "Recent head injury with confusion, vomiting, or severe headache?", "yesno"),
    Question("seizure", "Currently having or recently had a seizure?", "yesno"),
)

QUESTION_IDS = frozenset(q.id for q in QUESTIONS)

PLACEHOLDER_NOTE = "Answer questions to get tailored guidance."
MONITOR_NOTE = "Monitor closely and follow first aid steps for the specific condition."


@dataclass
class SeverityVerdict:
    level: Level
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"level": self.level.value, "notes": list(self.notes)}


# ── Answer helpers ────────────────────────────────────────────────────

def _answer(answers: dict, key: str) -> str:
    value = answers.get(key)
    return str(value).strip().lower() if value is not None else ""


def _is(answers: dict, key: str, expected: str) -> bool:
    return _answer(answers, key) == expected


def parse_age(raw) -> int | None:
    """Leading integer of the answer, like a lenient parseInt. None if absent."""
    if raw is None:
        return None
    match = re.match(r"\s*([+-]?\d+)", str(raw))
    return int(match.group(1)) if match else None


# ── Rule Table ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[dict], bool]
    level: Level
    note: str


def _age_below(limit: int) -> Callable[[dict], bool]:
    def check(answers: dict) -> bool:
        age = parse_age(answers.get("age"))
        return age is not None and age < limit
    return check


def _age_above(limit: int) -> Callable[[dict], bool]:
    def check(answers: dict) -> bool:
        age = parse_age(answers.get("age"))
        return age is not None and age > limit
    return check


RULES: tuple[Rule, ...] = (
    Rule("unconscious", lambda a: _is(a, "conscious", "no"), Level.CRITICAL,
         "Unconscious: Start CPR if no breathing and no pulse."),
    Rule("not_breathing", lambda a: _is(a, "breathing", "no"), Level.CRITICAL,
         "Not breathing: Begin rescue breaths and CPR if trained."),
    Rule("severe_bleeding", lambda a: _is(a, "severeBleeding", "yes"), Level.CRITICAL,
         "Apply firm direct pressure with clean cloth; elevate if possible."),
    Rule("chest_pain", lambda a: _is(a, "chestPain", "yes"), Level.URGENT,
         "Chest pain: Have the person rest. Consider aspirin if not allergic and advised by a professional."),
    Rule("allergic_reaction", lambda a: _is(a, "allergicReaction", "yes"), Level.CRITICAL,
         "Severe allergy: Use epinephrine auto-injector if available. Monitor breathing."),
    Rule("head_injury", lambda a: _is(a, "headInjury", "yes"), Level.URGENT,
         "Head injury with red flags: Keep still, avoid food/drink, seek immediate medical evaluation."),
    Rule("seizure", lambda a: _is(a, "seizure", "yes"), Level.URGENT,
         "Seizure: Protect from injury, do not restrain or place anything in mouth, time the event."),
    Rule("infant", _age_below(1), Level.URGENT,
         "Infant involved: Special care required. Seek urgent help."),
    Rule("elderly", _age_above(75), Level.URGENT,
         "Elderly patient: Higher risk, seek urgent evaluation."),
)


def evaluate(answers: dict, rules: tuple[Rule, ...] = RULES) -> SeverityVerdict:
    """Map a (possibly partial) answer set to a severity verdict.
    Total over any input. Same answers always give the same verdict.
    """
    if not _answer(answers, "conscious") or not _answer(answers, "breathing"):
        return SeverityVerdict(Level.INFO, [PLACEHOLDER_NOTE])

    level = Level.INFO
    notes: list[str] = []
    for rule in rules:
        if rule.predicate(answers):
            level = max_level(level, rule.level)
            notes.append(rule.note)

    if notes:
        logger.debug("triage_rules_triggered", count=len(notes), level=level.value)
    else:
        notes.append(MONITOR_NOTE)
    return SeverityVerdict(level, notes)


# ── Triage Session ────────────────────────────────────────────────────

class TriageSession:
    """Client-side triage state: ordered questions, current step, answers.
    No terminal state; the user moves back and forth freely.
    """

    def __init__(self, questions: tuple[Question, ...] = QUESTIONS, auto_advance: bool = False):
        if not questions:
            raise ValueError("A triage session needs at least one question")
        self.questions = questions
        self.auto_advance = auto_advance
        self.step = 0
        self.answers: dict[str, str] = {}
        self._ids = {q.id: q for q in questions}

    @property
    def current(self) -> Question:
        return self.questions[self.step]

    @property
    def verdict(self) -> SeverityVerdict:
        return evaluate(self.answers)

    def answer(self, question_id: str, value: str) -> SeverityVerdict:
        question = self._ids.get(question_id)
        if question is None:
            raise ValueError(f"Unknown question: {question_id}")
        self.answers[question_id] = value
        # yes/no never auto-advances; number/choice only when configured
        if self.auto_advance and question.kind != "yesno" and question is self.current:
            self.next()
        return self.verdict

    def next(self) -> int:
        self.step = min(self.step + 1, len(self.questions) - 1)
        return self.step

    def back(self) -> int:
        self.step = max(self.step - 1, 0)
        return self.step

    def reset(self):
        self.answers = {}
        self.step = 0

    def snapshot(self) -> dict:
        verdict = self.verdict
        return {
            "step": self.step,
            "question": self.current.to_dict(),
            "answers": dict(self.answers),
            **verdict.to_dict(),
        }
