"""
Configuration settings for the practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every tunable of the rating, scheduling and selection algorithms lives here so that
behaviour can be adjusted without touching the algorithm modules.
"""
from __future__ import annotations

import math
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from practice_engine.errors import ConfigurationError


class AlgorithmSettings(BaseSettings):
    """Algorithm settings loaded from environment variables (PRACTICE_*)."""

    model_config = SettingsConfigDict(
        env_prefix="PRACTICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Elo rating system
    # ========================================
    default_user_rating: int = Field(
        default=1000,
        description="Starting module rating for a learner",
    )
    default_skill_rating: float = Field(
        default=1100.0,
        description="Starting per-skill rating and the baseline for accuracy estimates",
    )
    elo_scale: float = Field(
        default=400.0,
        description="Logistic scale of the expected-score curve",
    )
    user_k: float = Field(
        default=32.0,
        description="Fixed K-factor for learner rating updates",
    )
    user_k_floor: float = Field(
        default=16.0,
        description="Lowest dynamic K-factor for experienced learners",
    )
    user_k_experience_count: int = Field(
        default=50,
        description="Answered questions after which the dynamic K reaches its floor",
    )
    question_k_max: float = Field(
        default=16.0,
        description="K-factor for a question with no recorded answers",
    )
    question_k_min: float = Field(
        default=4.0,
        description="K-factor floor for well-calibrated questions",
    )
    question_k_decay_count: int = Field(
        default=100,
        description="Answer count at which question K reaches its floor",
    )
    skill_k: float = Field(
        default=20.0,
        description="K-factor for per-skill rating updates",
    )

    # ─── Initial question Elo by stated difficulty ──────────────────────────────
    elo_easy: float = Field(default=900.0)
    elo_medium: float = Field(default=1100.0)
    elo_hard: float = Field(default=1300.0)
    elo_default: float = Field(default=1100.0)

    # ========================================
    # Spaced repetition (SM-2 style)
    # ========================================
    default_ease_factor: float = Field(default=2.5)
    min_ease_factor: float = Field(default=1.3)
    max_ease_factor: float = Field(default=2.5)
    ease_bonus_correct: float = Field(default=0.1)
    ease_penalty_wrong: float = Field(default=0.2)
    interval_first_days: int = Field(default=1)
    interval_second_days: int = Field(default=3)
    mastered_repetitions: int = Field(
        default=3,
        description="Repetition count at which a question counts as mastered",
    )

    # ========================================
    # Question selection weights
    # ========================================
    weight_due: float = Field(default=0.25)
    weight_skill_match: float = Field(default=0.25)
    weight_difficulty: float = Field(default=0.15)
    weight_freshness: float = Field(default=0.20)
    weight_explore: float = Field(default=0.15)

    # ─── Flow-state modulation ──────────────────────────────────────────────────
    target_success_default: float = Field(default=0.80)
    target_success_streak_challenge: float = Field(default=0.70)
    target_success_streak_moderate: float = Field(default=0.75)
    target_success_struggling: float = Field(default=0.85)
    streak_threshold_challenge: int = Field(default=5)
    streak_threshold_moderate: int = Field(default=3)
    struggling_accuracy_threshold: float = Field(default=0.50)

    # ─── Sub-score levels ───────────────────────────────────────────────────────
    due_score_new: float = Field(default=0.3)
    due_score_overdue: float = Field(default=1.0)
    due_score_due_soon: float = Field(default=0.7)
    due_score_not_due: float = Field(default=0.2)
    due_soon_window_hours: int = Field(default=24)
    explore_score_new: float = Field(default=0.8)
    explore_score_mastered: float = Field(default=0.2)
    explore_score_learning: float = Field(default=0.5)
    freshness_score_never_seen: float = Field(default=1.0)
    freshness_score_old: float = Field(default=0.7)
    freshness_stale_threshold: int = Field(default=5)
    freshness_step: float = Field(default=0.1)
    difficulty_max_diff: float = Field(
        default=500.0,
        description="Rating gap at which the difficulty score reaches zero",
    )

    # ========================================
    # Selection mechanics
    # ========================================
    calibration_sequence: list[str] = Field(
        default_factory=lambda: ["E", "M", "E", "M", "H"],
        description="Fixed difficulty sequence served at the start of a session",
    )
    top_candidates_count: int = Field(
        default=5,
        description="Number of top-scored questions entering the weighted draw",
    )
    review_window_hours: int = Field(
        default=24,
        description="Questions due within this window are eligible in review mode",
    )
    buffer_target: int = Field(
        default=3,
        description="Unanswered questions kept in a session buffer",
    )
    candidate_cache_ttl_seconds: int = Field(default=300)

    # ========================================
    # Score estimation
    # ========================================
    estimate_min_elo: float = Field(default=700.0)
    estimate_max_elo: float = Field(default=1500.0)
    estimate_min_score: int = Field(default=200)
    estimate_max_score: int = Field(default=800)
    estimate_curve_exponent: float = Field(default=0.8)
    estimate_skill_confidence_questions: int = Field(default=20)
    estimate_confidence_questions: int = Field(default=100)
    estimate_default_score: int = Field(default=500)
    estimate_default_confidence: float = Field(default=0.1)
    estimate_default_category_weight: float = Field(default=0.25)

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def _check_weights(self) -> "AlgorithmSettings":
        total = sum(self.get_selection_weights().values())
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ConfigurationError(f"Selection weights must sum to 1.0, got {total:.4f}")
        if self.min_ease_factor > self.max_ease_factor:
            raise ConfigurationError("min_ease_factor exceeds max_ease_factor")
        return self

    def get_selection_weights(self) -> dict[str, float]:
        """Get the five question-selection weights as a dictionary."""
        return {
            "due": self.weight_due,
            "skill_match": self.weight_skill_match,
            "difficulty": self.weight_difficulty,
            "freshness": self.weight_freshness,
            "explore": self.weight_explore,
        }

    def get_difficulty_elos(self) -> dict[str, float]:
        """Initial question Elo per stated difficulty."""
        return {
            "E": self.elo_easy,
            "M": self.elo_medium,
            "H": self.elo_hard,
        }


@lru_cache(maxsize=1)
def get_settings() -> AlgorithmSettings:
    """Get cached settings instance."""
    return AlgorithmSettings()
