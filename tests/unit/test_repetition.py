"""
Unit tests for the SM-2 style repetition scheduler.
"""

import pytest

from practice_engine.config import AlgorithmSettings
from practice_engine.models import DAY_MS, QuestionRepetition
from practice_engine.rating.repetition import (
    due_within,
    is_due,
    is_mastered,
    normalize_repetition,
    overdue_ms,
    update_repetition,
)

NOW = 1_700_000_000_000


class TestCorrectAnswers:
    def test_first_correct_schedules_one_day(self):
        state = update_repetition(True, None, NOW)
        assert state.repetitions == 1
        assert state.interval == 1
        assert state.ease_factor == pytest.approx(2.5)
        assert state.last_reviewed_at == NOW
        assert state.next_review_at == NOW + DAY_MS

    def test_interval_sequence(self):
        state = update_repetition(True, None, NOW)
        state = update_repetition(True, state, NOW)
        assert (state.repetitions, state.interval) == (2, 3)

        state = update_repetition(True, state, NOW)
        # 3 * 2.5 = 7.5 rounds up
        assert (state.repetitions, state.interval) == (3, 8)

        state = update_repetition(True, state, NOW)
        assert (state.repetitions, state.interval) == (4, 20)
        assert state.next_review_at == NOW + 20 * DAY_MS

    def test_ease_capped_at_maximum(self):
        state = QuestionRepetition(ease_factor=2.45, interval=3, repetitions=2, last_reviewed_at=1, next_review_at=1)
        assert update_repetition(True, state, NOW).ease_factor == pytest.approx(2.5)

    def test_interval_never_shrinks(self):
        state = QuestionRepetition(ease_factor=1.3, interval=1, repetitions=2, last_reviewed_at=1, next_review_at=1)
        # round(1 * 1.3) == 1, still >= previous interval
        assert update_repetition(True, state, NOW).interval >= 1


class TestIncorrectAnswers:
    def test_failure_resets_and_is_due_immediately(self):
        state = QuestionRepetition(ease_factor=2.5, interval=8, repetitions=3, last_reviewed_at=1, next_review_at=1)
        failed = update_repetition(False, state, NOW)
        assert failed.repetitions == 0
        assert failed.interval == 0
        assert failed.next_review_at == NOW
        assert failed.ease_factor == pytest.approx(2.3)

    def test_ease_floor(self):
        state = QuestionRepetition(ease_factor=1.4, interval=8, repetitions=3, last_reviewed_at=1, next_review_at=1)
        assert update_repetition(False, state, NOW).ease_factor == pytest.approx(1.3)

    def test_failed_question_is_not_new(self):
        failed = update_repetition(False, None, NOW)
        assert failed.is_new is False
        assert is_due(failed, NOW) is True

    def test_recovery_after_failure(self):
        state = update_repetition(False, None, NOW)
        state = update_repetition(True, state, NOW)
        assert (state.repetitions, state.interval) == (1, 1)
        assert state.ease_factor == pytest.approx(2.4)


class TestMalformedState:
    def test_none_is_new(self):
        assert normalize_repetition(None).is_new

    def test_garbage_resolves_to_new(self):
        state = normalize_repetition({"easeFactor": "abc", "interval": -5, "repetitions": 2})
        assert state.repetitions == 0
        assert state.interval == 0
        assert state.ease_factor == pytest.approx(2.5)

    def test_ease_clamped(self):
        assert normalize_repetition({"easeFactor": 9.0}).ease_factor == pytest.approx(2.5)
        assert normalize_repetition({"easeFactor": 0.4}).ease_factor == pytest.approx(1.3)

    def test_update_accepts_raw_documents(self):
        state = update_repetition(True, {"easeFactor": 2.2, "interval": 3, "repetitions": 2}, NOW)
        assert state.repetitions == 3
        assert state.interval == 7

    def test_injected_settings_bound_stored_ease(self):
        settings = AlgorithmSettings(default_ease_factor=2.0, max_ease_factor=2.0)
        assert normalize_repetition(None, settings).ease_factor == pytest.approx(2.0)
        state = update_repetition(True, {"easeFactor": 2.5, "interval": 3, "repetitions": 2}, NOW, settings)
        # 3 * 2.0, not 3 * 2.5
        assert state.interval == 6
        assert state.ease_factor == pytest.approx(2.0)


class TestDueChecks:
    def test_new_and_absent_never_due(self):
        assert is_due(None, NOW) is False
        assert is_due(QuestionRepetition(), NOW) is False
        assert due_within(None, NOW, DAY_MS) is False

    def test_scheduled_question(self):
        state = update_repetition(True, None, NOW)
        assert is_due(state, NOW) is False
        assert is_due(state, NOW + DAY_MS) is True
        assert due_within(state, NOW + 1, DAY_MS) is True
        assert due_within(state, NOW - DAY_MS, DAY_MS) is False

    def test_overdue_ms(self):
        state = update_repetition(True, None, NOW)
        assert overdue_ms(state, NOW) == 0
        assert overdue_ms(state, NOW + DAY_MS + 500) == 500

    def test_mastery(self):
        assert is_mastered(None) is False
        assert is_mastered(QuestionRepetition(repetitions=2, interval=3, last_reviewed_at=1)) is False
        assert is_mastered(QuestionRepetition(repetitions=3, interval=8, last_reviewed_at=1)) is True


class TestEaseBounds:
    def test_ease_stays_in_range(self):
        state = None
        for outcome in [False] * 6 + [True] * 10 + [False, True] * 5:
            state = update_repetition(outcome, state, NOW)
            assert 1.3 - 1e-9 <= state.ease_factor <= 2.5 + 1e-9
