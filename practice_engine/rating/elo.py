"""
Elo rating updates for learners, skills and questions.

Pure functions implementing:
- Logistic expected score
- Learner rating update (fixed or experience-decayed K)
- Question difficulty update (answer-count-decayed K)
- Per-skill rating update

A learner and a question are treated as two players: the learner "wins" by
answering correctly, the question "wins" when the learner is wrong. All
updates are deterministic and return finite integers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.errors import InvalidStateError
from practice_engine.models import SkillElo


@dataclass(frozen=True)
class QuestionEloUpdate:
    """Result of a question difficulty update."""

    new_elo: int
    new_answer_count: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (1020.5 -> 1021)."""
    return int(math.floor(value + 0.5))


def validate_rating_finite(rating: float, name: str = "rating") -> None:
    """
    Validate that a rating is finite (not NaN or Inf).

    Raises:
        InvalidStateError: If rating is not finite
    """
    if not isinstance(rating, (int, float)) or not math.isfinite(rating):
        raise InvalidStateError(f"{name} is not finite: {rating!r}")


def validate_count(count: int, name: str = "count") -> None:
    """Raises InvalidStateError if a counter is negative."""
    if count < 0:
        raise InvalidStateError(f"{name} must be >= 0, got {count}")


def expected_score(rating_a: float, rating_b: float, scale: float | None = None) -> float:
    """
    Probability that player A beats player B.

    Formula:
        E = 1 / (1 + 10 ** ((rating_b - rating_a) / scale))

    Args:
        rating_a: Rating of the player whose expectation is computed
        rating_b: Opponent rating
        scale: Logistic scale (defaults to settings.elo_scale, 400)

    Returns:
        Expected score in (0, 1)

    Raises:
        InvalidStateError: If either rating is NaN or infinite
    """
    if scale is None:
        scale = get_settings().elo_scale
    validate_rating_finite(rating_a, "rating_a")
    validate_rating_finite(rating_b, "rating_b")
    exponent = (rating_b - rating_a) / scale
    # 10 ** 300 is still representable; beyond that the result is 0 or 1 anyway
    exponent = max(-300.0, min(300.0, exponent))
    return 1.0 / (1.0 + 10.0 ** exponent)


def dynamic_user_k(total_answered: int, settings: AlgorithmSettings | None = None) -> float:
    """
    Experience-decayed K-factor for learner rating updates.

    K falls linearly from ``user_k`` (32) to ``user_k_floor`` (16) as the
    learner's answered-question count approaches ``user_k_experience_count``
    (50), damping volatility for experienced learners.
    """
    settings = settings or get_settings()
    validate_count(total_answered, "total_answered")
    span = settings.user_k - settings.user_k_floor
    experience = min(total_answered / settings.user_k_experience_count, 1.0)
    return max(settings.user_k_floor, settings.user_k - experience * span)


def update_user_rating(
    user_rating: float,
    question_elo: float,
    is_correct: bool,
    total_answered: int | None = None,
    settings: AlgorithmSettings | None = None,
) -> int:
    """
    Update a learner's module rating after one answer.

    Args:
        user_rating: Current learner rating
        question_elo: Difficulty rating of the answered question
        is_correct: Whether the learner answered correctly
        total_answered: Learner's answered-question count. When given, the
            dynamic K-factor is used; when None the fixed K (32) applies.

    Returns:
        New rating, rounded to an integer
    """
    settings = settings or get_settings()
    validate_rating_finite(user_rating, "user_rating")
    validate_rating_finite(question_elo, "question_elo")

    if total_answered is None:
        k = settings.user_k
    else:
        k = dynamic_user_k(total_answered, settings)

    expected = expected_score(user_rating, question_elo, settings.elo_scale)
    actual = 1.0 if is_correct else 0.0
    return round_half_up(user_rating + k * (actual - expected))


def question_k_factor(elo_answer_count: int, settings: AlgorithmSettings | None = None) -> float:
    """
    K-factor for a question with ``elo_answer_count`` recorded answers.

    Formula:
        k = max(k_min, k_max * (1 - min(count, horizon) / horizon))
    """
    settings = settings or get_settings()
    validate_count(elo_answer_count, "elo_answer_count")
    horizon = settings.question_k_decay_count
    decay = min(elo_answer_count, horizon) / horizon
    return max(settings.question_k_min, settings.question_k_max * (1.0 - decay))


def update_question_elo(
    question_elo: float,
    user_rating: float,
    elo_answer_count: int,
    is_correct: bool,
    settings: AlgorithmSettings | None = None,
) -> QuestionEloUpdate:
    """
    Update a question's difficulty rating after one answer.

    From the question's perspective the outcome is inverted: an incorrect
    answer is a win for the question and raises its Elo.

    Args:
        question_elo: Current question rating
        user_rating: Rating of the learner who answered
        elo_answer_count: Answers recorded so far for this question
        is_correct: Whether the learner answered correctly

    Returns:
        QuestionEloUpdate with the rounded new Elo and incremented count
    """
    settings = settings or get_settings()
    validate_rating_finite(question_elo, "question_elo")
    validate_rating_finite(user_rating, "user_rating")

    k = question_k_factor(elo_answer_count, settings)
    expected = expected_score(question_elo, user_rating, settings.elo_scale)
    actual = 0.0 if is_correct else 1.0
    return QuestionEloUpdate(
        new_elo=round_half_up(question_elo + k * (actual - expected)),
        new_answer_count=elo_answer_count + 1,
    )


def update_skill_elo(
    is_correct: bool,
    current: SkillElo | None,
    question_elo: float,
    settings: AlgorithmSettings | None = None,
) -> SkillElo:
    """
    Update the learner's rating for the skill a question is tagged with.

    An absent record starts from ``default_skill_rating`` (1100) with zero
    counts. Uses the fixed skill K-factor (20).
    """
    settings = settings or get_settings()
    validate_rating_finite(question_elo, "question_elo")

    rating = current.rating if current is not None else settings.default_skill_rating
    question_count = current.question_count if current is not None else 0
    correct_count = current.correct_count if current is not None else 0
    validate_rating_finite(rating, "skill rating")

    expected = expected_score(rating, question_elo, settings.elo_scale)
    actual = 1.0 if is_correct else 0.0
    return SkillElo(
        rating=round_half_up(rating + settings.skill_k * (actual - expected)),
        question_count=question_count + 1,
        correct_count=correct_count + (1 if is_correct else 0),
    )


def initial_question_elo(difficulty: str | None, settings: AlgorithmSettings | None = None) -> float:
    """Starting Elo for a newly ingested question of the stated difficulty."""
    settings = settings or get_settings()
    return settings.get_difficulty_elos().get(difficulty or "", settings.elo_default)
