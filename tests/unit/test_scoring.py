"""
Unit tests for the five-signal question scorer.
"""

import pytest

from practice_engine.config import AlgorithmSettings
from practice_engine.errors import InvalidStateError
from practice_engine.models import DAY_MS, CandidateQuestion, QueuedQuestion, QuestionRepetition, Session, SkillElo
from practice_engine.selection.scoring import (
    HOUR_MS,
    ScoreComponents,
    ScoringContext,
    difficulty_score,
    due_score,
    explore_score,
    freshness_score,
    score_components,
    score_question,
    session_skill_counts,
    skill_match_score,
    target_success_rate,
)

NOW = 1_700_000_000_000


def reviewed(next_review_at: int, repetitions: int = 1, ease_factor: float = 2.5) -> QuestionRepetition:
    return QuestionRepetition(
        ease_factor=ease_factor,
        interval=1,
        repetitions=repetitions,
        last_reviewed_at=NOW - DAY_MS,
        next_review_at=next_review_at,
    )


class TestTargetSuccessRate:
    def test_fresh_session(self):
        assert target_success_rate(0, 0, 0) == pytest.approx(0.80)

    def test_hot_streak(self):
        assert target_success_rate(5, 5, 5) == pytest.approx(0.70)

    def test_moderate_streak(self):
        assert target_success_rate(3, 3, 3) == pytest.approx(0.75)

    def test_struggling(self):
        assert target_success_rate(0, 1, 4) == pytest.approx(0.85)

    def test_steady(self):
        assert target_success_rate(0, 3, 4) == pytest.approx(0.80)

    def test_streak_checked_before_accuracy(self):
        assert target_success_rate(5, 5, 20) == pytest.approx(0.70)


class TestDueScore:
    def test_never_answered(self):
        assert due_score(None, NOW) == pytest.approx(0.3)
        assert due_score(QuestionRepetition(), NOW) == pytest.approx(0.3)

    def test_overdue(self):
        assert due_score(reviewed(NOW - 1), NOW) == pytest.approx(1.0)
        assert due_score(reviewed(NOW), NOW) == pytest.approx(1.0)

    def test_due_soon(self):
        assert due_score(reviewed(NOW + HOUR_MS), NOW) == pytest.approx(0.7)

    def test_not_due(self):
        assert due_score(reviewed(NOW + 3 * DAY_MS), NOW) == pytest.approx(0.2)

    def test_failed_question_is_overdue(self):
        failed = QuestionRepetition(ease_factor=2.3, last_reviewed_at=NOW - 10, next_review_at=NOW - 10)
        assert due_score(failed, NOW) == pytest.approx(1.0)


class TestSkillMatch:
    def test_unknown_skill_uses_default_rating(self):
        # Expected success 0.5 against a 0.8 target
        assert skill_match_score("Circles", {}, 1100) == pytest.approx(0.7)

    def test_best_at_target_rate(self):
        skill_elos = {"Circles": SkillElo(rating=1341, question_count=10, correct_count=8)}
        assert skill_match_score("Circles", skill_elos, 1100) == pytest.approx(1.0, abs=1e-3)

    def test_target_shifts_match(self):
        easy = skill_match_score("Circles", {}, 900, target=0.85)
        hard = skill_match_score("Circles", {}, 1300, target=0.85)
        assert easy > hard

    def test_nan_skill_rating_rejected(self):
        skill_elos = {"Circles": SkillElo(rating=float("nan"), question_count=3)}
        with pytest.raises(InvalidStateError):
            skill_match_score("Circles", skill_elos, 1100)


class TestDifficultyScore:
    def test_exact_match(self):
        assert difficulty_score(1000, 1000) == pytest.approx(1.0)

    def test_linear_falloff(self):
        assert difficulty_score(1000, 1250) == pytest.approx(0.5)
        assert difficulty_score(1250, 1000) == pytest.approx(0.5)

    def test_floor_at_zero(self):
        assert difficulty_score(1000, 1600) == pytest.approx(0.0)


class TestFreshnessScore:
    def test_unseen_skill(self):
        assert freshness_score("Circles", {}, 4) == pytest.approx(1.0)

    def test_seen_long_ago(self):
        assert freshness_score("Circles", {"Circles": 1}, 10) == pytest.approx(0.7)

    def test_seen_recently(self):
        assert freshness_score("Circles", {"Circles": 2}, 4) == pytest.approx(0.2)

    def test_minimum_step(self):
        assert freshness_score("Circles", {"Circles": 3}, 3) == pytest.approx(0.1)


class TestExploreScore:
    def test_never_answered(self):
        assert explore_score(None) == pytest.approx(0.8)

    def test_mastered(self):
        assert explore_score(reviewed(NOW, repetitions=3)) == pytest.approx(0.2)

    def test_learning(self):
        assert explore_score(reviewed(NOW, repetitions=1)) == pytest.approx(0.5)
        assert explore_score(QuestionRepetition(last_reviewed_at=NOW, next_review_at=NOW)) == pytest.approx(0.5)


class TestComposite:
    def test_new_question_at_learner_level(self, sample_question):
        context = ScoringContext(user_rating=1100, now=NOW)
        components = score_components(sample_question, context)
        assert components.due == pytest.approx(0.3)
        assert components.skill_match == pytest.approx(0.7)
        assert components.difficulty == pytest.approx(1.0)
        assert components.freshness == pytest.approx(1.0)
        assert components.explore == pytest.approx(0.8)
        assert score_question(sample_question, context) == pytest.approx(0.72)

    def test_overdue_question_preferred(self, sample_question):
        overdue = ScoringContext(
            user_rating=1100,
            repetitions={sample_question.question_id: reviewed(NOW - HOUR_MS)},
            now=NOW,
        )
        fresh = ScoringContext(user_rating=1100, now=NOW)
        assert score_question(sample_question, overdue) > score_question(sample_question, fresh)

    def test_components_serialize_with_total(self):
        payload = ScoreComponents(due=1.0, skill_match=1.0, difficulty=1.0, freshness=1.0, explore=1.0).to_dict()
        assert payload["total"] == pytest.approx(1.0)
        assert set(payload) == {"due", "skill_match", "difficulty", "freshness", "explore", "total"}

    def test_serialized_total_uses_injected_weights(self):
        settings = AlgorithmSettings(weight_due=0.35, weight_explore=0.05)
        components = ScoreComponents(due=1.0, skill_match=0.2, difficulty=0.4, freshness=0.6, explore=0.0)
        payload = components.to_dict(settings)
        assert payload["total"] == pytest.approx(components.weighted_total(settings), abs=1e-4)
        assert payload["total"] == pytest.approx(0.58, abs=1e-4)
        assert components.to_dict()["total"] == pytest.approx(0.48, abs=1e-4)


class TestSessionContext:
    def test_skill_counts_from_buffer(self):
        questions = [
            CandidateQuestion("a", "math", "E", "Circles"),
            CandidateQuestion("b", "math", "M", "Circles"),
            CandidateQuestion("c", "math", "H", "Percentages"),
        ]
        session = Session(
            module="math",
            buffered_questions=[QueuedQuestion("a"), QueuedQuestion("b"), QueuedQuestion("c"), QueuedQuestion("zz")],
        )
        counts = session_skill_counts(session, questions)
        assert counts == {"Circles": 2, "Percentages": 1}

    def test_context_uses_session_flow_state(self):
        session = Session(module="math", question_count=6, correct_count=6, streak=6)
        context = ScoringContext.for_session(session, user_rating=1150, profile=None, now=NOW)
        assert context.target_success_rate == pytest.approx(0.70)
        assert context.session_question_count == 6
        assert context.skill_elos == {}

    @pytest.mark.parametrize("rating", [float("nan"), float("inf")])
    def test_non_finite_rating_rejected(self, rating):
        with pytest.raises(InvalidStateError):
            ScoringContext.for_session(Session(module="math"), user_rating=rating, profile=None, now=NOW)
