"""
Question Scorer.

The composite score decides how desirable a candidate question is right now
by combining five signals into a single value.

Formula:
    S(q) = w_due·D(q) + w_skill·K(q) + w_diff·F(q) + w_fresh·R(q) + w_explore·X(q)

Where:
    D(q) = Due signal (spaced-repetition schedule state)
    K(q) = Skill-match signal (predicted success on the skill vs. target rate)
    F(q) = Difficulty signal (closeness to the learner's module rating)
    R(q) = Freshness signal (topic rotation within the session)
    X(q) = Explore signal (never answered > still learning > mastered)

The target success rate in K(q) follows the learner's flow state: hot streaks
raise the challenge, a struggling session eases it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.models import CandidateQuestion, LearnerProfile, QuestionRepetition, Session, SkillElo, now_ms
from practice_engine.rating.elo import expected_score, validate_rating_finite
from practice_engine.rating.repetition import is_mastered

HOUR_MS = 60 * 60 * 1000

# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass
class ScoreComponents:
    """Sub-scores of one candidate, each in [0, 1]."""

    due: float = 0.0
    skill_match: float = 0.0
    difficulty: float = 0.0
    freshness: float = 0.0
    explore: float = 0.0

    def weighted_total(self, settings: AlgorithmSettings | None = None) -> float:
        weights = (settings or get_settings()).get_selection_weights()
        return (
            weights["due"] * self.due
            + weights["skill_match"] * self.skill_match
            + weights["difficulty"] * self.difficulty
            + weights["freshness"] * self.freshness
            + weights["explore"] * self.explore
        )

    @property
    def total(self) -> float:
        """Weighted total with the configured weights."""
        return self.weighted_total()

    def to_dict(self, settings: AlgorithmSettings | None = None) -> dict[str, float]:
        return {
            "due": round(self.due, 3),
            "skill_match": round(self.skill_match, 3),
            "difficulty": round(self.difficulty, 3),
            "freshness": round(self.freshness, 3),
            "explore": round(self.explore, 3),
            "total": round(self.weighted_total(settings), 4),
        }


@dataclass
class ScoringContext:
    """
    Learner and session state shared by every candidate in one scoring pass.

    Built once per recommendation call; absent state is already resolved to
    neutral defaults here so the signal functions never check for it.
    """

    user_rating: float
    skill_elos: Mapping[str, SkillElo] = field(default_factory=dict)
    repetitions: Mapping[str, QuestionRepetition] = field(default_factory=dict)
    session_skill_counts: Mapping[str, int] = field(default_factory=dict)
    session_question_count: int = 0
    target_success_rate: float = 0.80
    now: int = 0

    @classmethod
    def for_session(
        cls,
        session: Session,
        user_rating: float,
        profile: LearnerProfile | None,
        skill_counts: Mapping[str, int] | None = None,
        now: int | None = None,
        settings: AlgorithmSettings | None = None,
    ) -> "ScoringContext":
        validate_rating_finite(user_rating, "user_rating")
        profile = profile or LearnerProfile()
        return cls(
            user_rating=user_rating,
            skill_elos=profile.skill_elos,
            repetitions=profile.question_repetitions,
            session_skill_counts=skill_counts or {},
            session_question_count=session.question_count,
            target_success_rate=target_success_rate(
                session.streak, session.correct_count, session.question_count, settings
            ),
            now=now_ms() if now is None else now,
        )


def session_skill_counts(
    session: Session,
    questions: Iterable[CandidateQuestion],
) -> Counter[str]:
    """Count how often each skill appears in the session buffer."""
    skill_by_id = {q.question_id: q.skill for q in questions}
    counts: Counter[str] = Counter()
    for queued in session.buffered_questions:
        skill = skill_by_id.get(queued.question_id)
        if skill:
            counts[skill] += 1
    return counts


# =============================================================================
# SIGNAL FUNCTIONS
# =============================================================================


def target_success_rate(
    streak: int,
    correct_count: int,
    question_count: int,
    settings: AlgorithmSettings | None = None,
) -> float:
    """
    Success rate the next question should aim for.

    Rules, first match wins:
    - no answers yet -> default (0.80)
    - streak >= 5 -> 0.70 (push harder)
    - streak >= 3 -> 0.75
    - session accuracy < 0.50 -> 0.85 (rebuild confidence)
    - otherwise -> default
    """
    settings = settings or get_settings()
    if question_count == 0:
        return settings.target_success_default

    accuracy = correct_count / question_count
    if streak >= settings.streak_threshold_challenge:
        return settings.target_success_streak_challenge
    if streak >= settings.streak_threshold_moderate:
        return settings.target_success_streak_moderate
    if accuracy < settings.struggling_accuracy_threshold:
        return settings.target_success_struggling
    return settings.target_success_default


def due_score(
    repetition: QuestionRepetition | None,
    now: int,
    settings: AlgorithmSettings | None = None,
) -> float:
    """
    Compute due signal D(q).

    - never answered -> 0.3
    - overdue (next review <= now) -> 1.0
    - due within 24h -> 0.7
    - not due -> 0.2
    """
    settings = settings or get_settings()
    if repetition is None or repetition.is_new:
        return settings.due_score_new
    if repetition.next_review_at <= now:
        return settings.due_score_overdue
    if repetition.next_review_at - now < settings.due_soon_window_hours * HOUR_MS:
        return settings.due_score_due_soon
    return settings.due_score_not_due


def skill_match_score(
    skill: str,
    skill_elos: Mapping[str, SkillElo],
    question_elo: float,
    target: float | None = None,
    settings: AlgorithmSettings | None = None,
) -> float:
    """
    Compute skill-match signal K(q).

        K = 1 - |E(skill_rating, question_elo) - target|

    Highest when predicted success on this skill sits at the target rate.
    """
    settings = settings or get_settings()
    if target is None:
        target = settings.target_success_default
    current = skill_elos.get(skill)
    skill_rating = current.rating if current is not None else settings.default_skill_rating
    expected = expected_score(skill_rating, question_elo, settings.elo_scale)
    return 1.0 - abs(expected - target)


def difficulty_score(
    user_rating: float,
    question_elo: float,
    settings: AlgorithmSettings | None = None,
) -> float:
    """Compute difficulty signal F(q): 1 at an exact match, 0 at 500+ points apart."""
    settings = settings or get_settings()
    diff = abs(user_rating - question_elo)
    return 1.0 - min(1.0, diff / settings.difficulty_max_diff)


def freshness_score(
    skill: str,
    skill_counts: Mapping[str, int],
    session_question_count: int,
    settings: AlgorithmSettings | None = None,
) -> float:
    """
    Compute freshness signal R(q).

    Questions since the skill was last seen are approximated by
    ``session_question_count - skill_count``.

    - skill not in the session yet -> 1.0
    - last seen more than 5 questions ago -> 0.7
    - otherwise -> 0.1 * max(1, questions since)
    """
    settings = settings or get_settings()
    count = skill_counts.get(skill, 0)
    if count == 0:
        return settings.freshness_score_never_seen
    since = session_question_count - count
    if since > settings.freshness_stale_threshold:
        return settings.freshness_score_old
    return settings.freshness_step * max(1, since)


def explore_score(
    repetition: QuestionRepetition | None,
    settings: AlgorithmSettings | None = None,
) -> float:
    """
    Compute explore signal X(q).

    - never answered -> 0.8
    - mastered (3+ consecutive correct) -> 0.2
    - still learning -> 0.5
    """
    settings = settings or get_settings()
    if repetition is None or repetition.is_new:
        return settings.explore_score_new
    if is_mastered(repetition, settings):
        return settings.explore_score_mastered
    return settings.explore_score_learning


# =============================================================================
# COMPOSITE
# =============================================================================


def score_components(
    question: CandidateQuestion,
    context: ScoringContext,
    settings: AlgorithmSettings | None = None,
) -> ScoreComponents:
    """Compute all five signals for one candidate."""
    settings = settings or get_settings()
    repetition = context.repetitions.get(question.question_id)
    return ScoreComponents(
        due=due_score(repetition, context.now, settings),
        skill_match=skill_match_score(
            question.skill, context.skill_elos, question.elo, context.target_success_rate, settings
        ),
        difficulty=difficulty_score(context.user_rating, question.elo, settings),
        freshness=freshness_score(
            question.skill, context.session_skill_counts, context.session_question_count, settings
        ),
        explore=explore_score(repetition, settings),
    )


def score_question(
    question: CandidateQuestion,
    context: ScoringContext,
    settings: AlgorithmSettings | None = None,
) -> float:
    """Composite desirability of a candidate; higher is better."""
    settings = settings or get_settings()
    return score_components(question, context, settings).weighted_total(settings)
