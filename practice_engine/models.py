"""
Domain models for the practice engine.

Stored documents are loosely shaped (camelCase keys, optional fields, values
written by older clients). They are converted exactly once, at the boundary,
by the ``from_dict`` classmethods below; everything downstream works with
fully-populated dataclasses and never checks for missing fields again.

Timestamps are integer epoch milliseconds throughout.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from practice_engine.config import AlgorithmSettings, get_settings

MODULES = ("english", "math")
DIFFICULTIES = ("E", "M", "H")
DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _as_int(value: Any, default: int = 0, minimum: int | None = 0) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    number = int(number)
    if minimum is not None and number < minimum:
        return default
    return number


def _as_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return _as_int(value, default=0, minimum=None)


def _as_mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


# =============================================================================
# Enums
# =============================================================================


class SessionMode(str, Enum):
    """How a session chooses its questions."""

    SANDBOX = "sandbox"  # Open-ended adaptive practice
    SPEED_ROUND = "speed_round"  # Adaptive, timed by the client
    REVIEW = "review"  # Due-date driven repetition pass
    DAILY = "daily"  # Deterministic daily challenge

    @classmethod
    def parse(cls, value: Any) -> "SessionMode":
        try:
            return cls(value)
        except ValueError:
            return cls.SANDBOX


# =============================================================================
# Ratings and repetition state
# =============================================================================


@dataclass
class SkillElo:
    """Per-skill rating for one learner."""

    rating: float = 1100.0
    question_count: int = 0
    correct_count: int = 0

    @property
    def accuracy(self) -> float:
        if self.question_count == 0:
            return 0.0
        return self.correct_count / self.question_count

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SkillElo":
        settings = get_settings()
        data = _as_mapping(data)
        question_count = _as_int(data.get("questionCount", data.get("question_count")))
        correct_count = _as_int(data.get("correctCount", data.get("correct_count")))
        return cls(
            rating=_as_float(data.get("rating"), settings.default_skill_rating),
            question_count=question_count,
            correct_count=min(correct_count, question_count),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rating": self.rating,
            "questionCount": self.question_count,
            "correctCount": self.correct_count,
        }


@dataclass
class QuestionRepetition:
    """SM-2 scheduling state for one (learner, question) pair."""

    ease_factor: float = 2.5
    interval: int = 0  # Days
    repetitions: int = 0  # Consecutive correct answers
    last_reviewed_at: int = 0
    next_review_at: int = 0

    @property
    def is_new(self) -> bool:
        return self.repetitions == 0 and self.last_reviewed_at == 0

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any] | None,
        settings: AlgorithmSettings | None = None,
    ) -> "QuestionRepetition":
        """
        Build a repetition record from a stored document.

        Malformed records resolve to the "new" state; the ease factor is
        clamped into its configured range.
        """
        settings = settings or get_settings()
        if not isinstance(data, dict):
            return cls(ease_factor=settings.default_ease_factor)

        ease = _as_float(data.get("easeFactor", data.get("ease_factor")), settings.default_ease_factor)
        ease = max(settings.min_ease_factor, min(settings.max_ease_factor, ease))
        interval = _as_int(data.get("interval"))
        repetitions = _as_int(data.get("repetitions"))
        last_reviewed_at = _as_int(data.get("lastReviewedAt", data.get("last_reviewed_at")))
        next_review_at = _as_int(data.get("nextReviewAt", data.get("next_review_at")))

        if repetitions > 0 and interval < 1:
            # Inconsistent history: schedule from scratch
            return cls(ease_factor=ease)
        if repetitions == 0:
            interval = 0

        return cls(
            ease_factor=ease,
            interval=interval,
            repetitions=repetitions,
            last_reviewed_at=last_reviewed_at,
            next_review_at=next_review_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "lastReviewedAt": self.last_reviewed_at,
            "nextReviewAt": self.next_review_at,
        }


# =============================================================================
# Questions
# =============================================================================


@dataclass(frozen=True)
class CandidateQuestion:
    """Read-only view of a question used for scoring."""

    question_id: str
    module: str
    difficulty: str
    skill: str
    elo: float = 1100.0
    elo_answer_count: int = 0
    domain: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandidateQuestion":
        settings = get_settings()
        difficulty = str(data.get("difficulty") or "")
        initial_elo = settings.get_difficulty_elos().get(difficulty, settings.elo_default)
        return cls(
            question_id=str(data.get("question_id") or data.get("questionId") or ""),
            module=str(data.get("module") or ""),
            difficulty=difficulty,
            skill=str(data.get("skill") or ""),
            # A stored elo of 0 means "never calibrated"
            elo=_as_float(data.get("elo"), initial_elo) or initial_elo,
            elo_answer_count=_as_int(data.get("eloAnswerCount", data.get("elo_answer_count"))),
            domain=str(data.get("domain") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "module": self.module,
            "difficulty": self.difficulty,
            "skill": self.skill,
            "elo": self.elo,
            "eloAnswerCount": self.elo_answer_count,
            "domain": self.domain,
        }


@dataclass(frozen=True)
class QueuedQuestion:
    """An entry in a session buffer. Unanswered until ``answered_at`` is set."""

    question_id: str
    answered_at: int | None = None
    selected_answer: str | None = None
    is_correct: bool | None = None
    correct_answer: str | None = None
    time_spent_ms: int | None = None
    rating_change: int | None = None

    @property
    def is_answered(self) -> bool:
        return self.answered_at is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueuedQuestion":
        is_correct = data.get("isCorrect", data.get("is_correct"))
        return cls(
            question_id=str(data.get("questionId") or data.get("question_id") or ""),
            answered_at=_as_optional_int(data.get("answeredAt", data.get("answered_at"))),
            selected_answer=data.get("selectedAnswer", data.get("selected_answer")),
            is_correct=None if is_correct is None else bool(is_correct),
            correct_answer=data.get("correctAnswer", data.get("correct_answer")),
            time_spent_ms=_as_optional_int(data.get("timeSpentMs", data.get("time_spent_ms"))),
            rating_change=_as_optional_int(data.get("ratingChange", data.get("rating_change"))),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"questionId": self.question_id}
        optional = {
            "answeredAt": self.answered_at,
            "selectedAnswer": self.selected_answer,
            "isCorrect": self.is_correct,
            "correctAnswer": self.correct_answer,
            "timeSpentMs": self.time_spent_ms,
            "ratingChange": self.rating_change,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return payload


# =============================================================================
# Session
# =============================================================================


@dataclass
class Session:
    """A practice session and its buffer of queued questions."""

    session_id: str = ""
    user_id: str = ""
    module: str = "math"
    mode: SessionMode = SessionMode.SANDBOX
    current_rating: int = 1000
    rating_at_start: int = 1000
    question_count: int = 0
    correct_count: int = 0
    streak: int = 0
    best_streak: int = 0
    buffered_questions: list[QueuedQuestion] = field(default_factory=list)
    started_at: int = 0
    last_active_at: int = 0

    @property
    def accuracy(self) -> float:
        if self.question_count == 0:
            return 0.0
        return self.correct_count / self.question_count

    def buffered_ids(self) -> set[str]:
        return {q.question_id for q in self.buffered_questions}

    def unanswered(self) -> list[QueuedQuestion]:
        return [q for q in self.buffered_questions if not q.is_answered]

    def first_unanswered_index(self) -> int | None:
        for index, queued in enumerate(self.buffered_questions):
            if not queued.is_answered:
                return index
        return None

    def with_updates(self, **changes: Any) -> "Session":
        """Return a copy with the given fields replaced (buffer list copied)."""
        changes.setdefault("buffered_questions", list(self.buffered_questions))
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        settings = get_settings()
        data = _as_mapping(data)
        rating = _as_int(data.get("currentRating", data.get("current_rating")), settings.default_user_rating, None)
        return cls(
            session_id=str(data.get("sessionId") or data.get("session_id") or ""),
            user_id=str(data.get("userId") or data.get("user_id") or ""),
            module=str(data.get("module") or "math"),
            mode=SessionMode.parse(data.get("mode")),
            current_rating=rating,
            rating_at_start=_as_int(data.get("ratingAtStart", data.get("rating_at_start")), rating, None),
            question_count=_as_int(data.get("questionCount", data.get("question_count"))),
            correct_count=_as_int(data.get("correctCount", data.get("correct_count"))),
            streak=_as_int(data.get("streak")),
            best_streak=_as_int(data.get("bestStreak", data.get("best_streak"))),
            buffered_questions=[
                QueuedQuestion.from_dict(item)
                for item in _as_list(data.get("bufferedQuestions", data.get("buffered_questions")))
                if isinstance(item, dict)
            ],
            started_at=_as_int(data.get("startedAt", data.get("started_at"))),
            last_active_at=_as_int(data.get("lastActiveAt", data.get("last_active_at"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "module": self.module,
            "mode": self.mode.value,
            "currentRating": self.current_rating,
            "ratingAtStart": self.rating_at_start,
            "questionCount": self.question_count,
            "correctCount": self.correct_count,
            "streak": self.streak,
            "bestStreak": self.best_streak,
            "bufferedQuestions": [q.to_dict() for q in self.buffered_questions],
            "startedAt": self.started_at,
            "lastActiveAt": self.last_active_at,
        }


# =============================================================================
# Learner profile
# =============================================================================


@dataclass
class LearnerProfile:
    """
    Everything the engine knows about one learner.

    Legacy ``skillStats`` documents are ignored: skill ability is tracked
    exclusively through ``skill_elos``.
    """

    user_id: str = ""
    ratings: dict[str, int] = field(default_factory=dict)
    skill_elos: dict[str, SkillElo] = field(default_factory=dict)
    question_repetitions: dict[str, QuestionRepetition] = field(default_factory=dict)
    total_questions: int = 0
    total_correct: int = 0

    def rating_for(self, module: str) -> int:
        return self.ratings.get(module, get_settings().default_user_rating)

    def repetition_for(self, question_id: str) -> QuestionRepetition | None:
        return self.question_repetitions.get(question_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LearnerProfile":
        settings = get_settings()
        data = _as_mapping(data)

        ratings: dict[str, int] = {}
        stored = data.get("ratings")
        if isinstance(stored, dict):
            for module, value in stored.items():
                ratings[str(module)] = _as_int(value, settings.default_user_rating, None)
        for module in MODULES:
            key = f"{module}Rating"
            if module not in ratings and key in data:
                ratings[module] = _as_int(data[key], settings.default_user_rating, None)

        raw_skills = _as_mapping(data.get("skillElos", data.get("skill_elos")))
        raw_reps = _as_mapping(data.get("questionRepetitions", data.get("question_repetitions")))

        return cls(
            user_id=str(data.get("uid") or data.get("user_id") or ""),
            ratings=ratings,
            skill_elos={
                str(skill): SkillElo.from_dict(value)
                for skill, value in raw_skills.items()
                if isinstance(value, dict)
            },
            question_repetitions={
                str(qid): QuestionRepetition.from_dict(value)
                for qid, value in raw_reps.items()
                if isinstance(value, dict)
            },
            total_questions=_as_int(data.get("totalQuestions", data.get("total_questions"))),
            total_correct=_as_int(data.get("totalCorrect", data.get("total_correct"))),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "uid": self.user_id,
            "ratings": dict(self.ratings),
            "skillElos": {k: v.to_dict() for k, v in self.skill_elos.items()},
            "questionRepetitions": {k: v.to_dict() for k, v in self.question_repetitions.items()},
            "totalQuestions": self.total_questions,
            "totalCorrect": self.total_correct,
        }
        for module in MODULES:
            payload[f"{module}Rating"] = self.rating_for(module)
        return payload
