"""
Triage Tests
============
Severity rule table and the client-side triage session.

Run with: python -m pytest tests/test_triage.py -v
"""

import itertools
import unittest

from carelens.layers.triage import (
    MONITOR_NOTE,
    PLACEHOLDER_NOTE,
    QUESTIONS,
    Level,
    TriageSession,
    evaluate,
    max_level,
    parse_age,
)

RANK = {Level.INFO: 0, Level.URGENT: 1, Level.CRITICAL: 2}

CPR_NOTE = "Unconscious: Start CPR if no breathing and no pulse."
PRESSURE_NOTE = "Apply firm direct pressure with clean cloth; elevate if possible."
CHEST_NOTE = "Chest pain: Have the person rest. Consider aspirin if not allergic and advised by a professional."


class TestSeverityRules(unittest.TestCase):

    def test_gating_unanswered_returns_placeholder(self):
        for answers in ({}, {"conscious": "yes"}, {"breathing": "no"},
                        {"severeBleeding": "yes", "chestPain": "yes", "age": "80"},
                        {"conscious": "", "breathing": "yes"}):
            verdict = evaluate(answers)
            self.assertEqual(verdict.level, Level.INFO, answers)
            self.assertEqual(verdict.notes, [PLACEHOLDER_NOTE])

    def test_unconscious_is_critical(self):
        verdict = evaluate({"conscious": "no", "breathing": "yes"})
        self.assertEqual(verdict.level, Level.CRITICAL)
        self.assertIn(CPR_NOTE, verdict.notes)

    def test_severe_bleeding_is_critical(self):
        verdict = evaluate({"conscious": "yes", "breathing": "yes", "severeBleeding": "yes"})
        self.assertEqual(verdict.level, Level.CRITICAL)
        self.assertIn(PRESSURE_NOTE, verdict.notes)

    def test_chest_pain_is_urgent_not_critical(self):
        verdict = evaluate({"conscious": "yes", "breathing": "yes", "chestPain": "yes"})
        self.assertEqual(verdict.level, Level.URGENT)
        self.assertEqual(verdict.notes, [CHEST_NOTE])

    def test_nothing_fired_gives_monitor_note(self):
        verdict = evaluate({"conscious": "yes", "breathing": "yes", "age": "30", "seizure": "no"})
        self.assertEqual(verdict.level, Level.INFO)
        self.assertEqual(verdict.notes, [MONITOR_NOTE])

    def test_urgent_rule_does_not_lower_critical(self):
        verdict = evaluate({"conscious": "no", "breathing": "no", "seizure": "yes", "headInjury": "yes"})
        self.assertEqual(verdict.level, Level.CRITICAL)
        self.assertEqual(len(verdict.notes), 4)
        self.assertTrue(verdict.notes[0].startswith("Unconscious"))
        self.assertTrue(verdict.notes[1].startswith("Not breathing"))

    def test_age_extremes(self):
        infant = evaluate({"conscious": "yes", "breathing": "yes", "age": "0"})
        self.assertEqual(infant.level, Level.URGENT)
        self.assertIn("Infant", infant.notes[0])
        elderly = evaluate({"conscious": "yes", "breathing": "yes", "age": "82"})
        self.assertEqual(elderly.level, Level.URGENT)
        self.assertIn("Elderly", elderly.notes[0])
        boundary = evaluate({"conscious": "yes", "breathing": "yes", "age": "75"})
        self.assertEqual(boundary.level, Level.INFO)

    def test_unparsable_age_is_ignored(self):
        verdict = evaluate({"conscious": "yes", "breathing": "yes", "age": "old"})
        self.assertEqual(verdict.notes, [MONITOR_NOTE])

    def test_answers_are_case_insensitive(self):
        verdict = evaluate({"conscious": "Yes", "breathing": "YES", "allergicReaction": "Yes"})
        self.assertEqual(verdict.level, Level.CRITICAL)

    def test_deterministic(self):
        answers = {"conscious": "yes", "breathing": "yes", "headInjury": "yes", "age": "90"}
        self.assertEqual(evaluate(answers).to_dict(), evaluate(dict(answers)).to_dict())

    def test_monotonic_as_escalating_answers_are_added(self):
        """Adding any escalating answer never lowers the level."""
        base = {"conscious": "yes", "breathing": "yes"}
        escalations = [
            ("conscious", "no"), ("breathing", "no"), ("severeBleeding", "yes"),
            ("allergicReaction", "yes"), ("chestPain", "yes"), ("headInjury", "yes"),
            ("seizure", "yes"), ("age", "0"),
        ]
        for order in itertools.permutations(escalations, 4):
            answers = dict(base)
            previous = RANK[evaluate(answers).level]
            for key, value in order:
                answers[key] = value
                current = RANK[evaluate(answers).level]
                self.assertGreaterEqual(current, previous, answers)
                previous = current

    def test_max_level(self):
        self.assertEqual(max_level(Level.INFO, Level.URGENT), Level.URGENT)
        self.assertEqual(max_level(Level.CRITICAL, Level.URGENT), Level.CRITICAL)
        self.assertEqual(max_level(Level.INFO, Level.INFO), Level.INFO)

    def test_parse_age(self):
        self.assertEqual(parse_age("42"), 42)
        self.assertEqual(parse_age(" 7 years"), 7)
        self.assertEqual(parse_age("-2"), -2)
        self.assertIsNone(parse_age(""))
        self.assertIsNone(parse_age(None))
        self.assertIsNone(parse_age("about ten"))


class TestTriageSession(unittest.TestCase):

    def test_eight_fixed_questions(self):
        ids = [q.id for q in QUESTIONS]
        self.assertEqual(ids, ["conscious", "breathing", "severeBleeding", "age", "chestPain",
                               "allergicReaction", "headInjury", "seizure"])
        self.assertEqual(QUESTIONS[3].kind, "number")

    def test_navigation_clamps(self):
        session = TriageSession()
        self.assertEqual(session.back(), 0)
        for _ in range(20):
            session.next()
        self.assertEqual(session.step, len(QUESTIONS) - 1)
        self.assertEqual(session.current.id, "seizure")

    def test_answer_overwrites_and_recomputes(self):
        session = TriageSession()
        session.answer("conscious", "yes")
        self.assertEqual(session.verdict.notes, [PLACEHOLDER_NOTE])
        verdict = session.answer("breathing", "no")
        self.assertEqual(verdict.level, Level.CRITICAL)
        verdict = session.answer("breathing", "yes")
        self.assertEqual(verdict.level, Level.INFO)
        self.assertEqual(session.answers["breathing"], "yes")

    def test_yesno_never_auto_advances(self):
        session = TriageSession(auto_advance=True)
        session.answer("conscious", "yes")
        self.assertEqual(session.step, 0)

    def test_number_auto_advances_only_when_configured(self):
        manual = TriageSession()
        manual.step = 3
        manual.answer("age", "40")
        self.assertEqual(manual.step, 3)

        auto = TriageSession(auto_advance=True)
        auto.step = 3
        auto.answer("age", "40")
        self.assertEqual(auto.step, 4)

    def test_unknown_question_rejected(self):
        with self.assertRaises(ValueError):
            TriageSession().answer("bloodType", "O+")

    def test_reset(self):
        session = TriageSession()
        session.answer("conscious", "no")
        session.answer("breathing", "no")
        session.next()
        session.next()
        session.reset()
        self.assertEqual(session.step, 0)
        self.assertEqual(session.answers, {})
        self.assertEqual(session.verdict.level, Level.INFO)

    def test_snapshot(self):
        session = TriageSession()
        session.answer("conscious", "yes")
        session.answer("breathing", "yes")
        session.answer("seizure", "yes")
        snap = session.snapshot()
        self.assertEqual(snap["step"], 0)
        self.assertEqual(snap["question"]["id"], "conscious")
        self.assertEqual(snap["level"], "urgent")
        self.assertEqual(len(snap["notes"]), 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
