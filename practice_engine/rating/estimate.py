"""
Section score estimation from per-skill Elo ratings.

Maps a learner's skill ratings to a projected 200-800 section score:

1. Average the ratings of the answered skills inside each category
2. Weight categories by their section share, discounted while a category
   has fewer than 20 answers: w * (0.5 + 0.5 * min(1, n / 20))
3. Map the weighted Elo onto the score scale with a gamma curve:
       score = 200 + 600 * clamp((elo - 700) / 800, 0, 1) ** 0.8

Confidence grows linearly with answered questions and saturates at 100.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.models import SkillElo, now_ms
from practice_engine.rating.elo import expected_score, round_half_up
from practice_engine.rating.skills import CATEGORY_WEIGHTS, SkillCategory, normalize_skill, skills_by_module


@dataclass(frozen=True)
class EstimatedScore:
    """Projected section score."""

    score: int
    confidence: float
    raw_accuracy: float
    calculated_at: int

    def to_dict(self) -> dict[str, float]:
        return {
            "score": self.score,
            "confidence": self.confidence,
            "rawAccuracy": self.raw_accuracy,
            "calculatedAt": self.calculated_at,
        }


@dataclass(frozen=True)
class TotalEstimate:
    """Projected total across both sections."""

    total: int
    english: EstimatedScore
    math: EstimatedScore


@dataclass(frozen=True)
class CategoryRating:
    """Aggregated rating of one category."""

    category: str
    elo: float
    question_count: int
    weight: float


def elo_to_scaled_score(elo: float, settings: AlgorithmSettings | None = None) -> int:
    """Map an Elo rating onto the section score scale."""
    settings = settings or get_settings()
    span = settings.estimate_max_elo - settings.estimate_min_elo
    normalized = max(0.0, min(1.0, (elo - settings.estimate_min_elo) / span))
    score_span = settings.estimate_max_score - settings.estimate_min_score
    scaled = settings.estimate_min_score + score_span * normalized ** settings.estimate_curve_exponent
    return round_half_up(max(settings.estimate_min_score, min(settings.estimate_max_score, scaled)))


def category_rating(
    skill_elos: Mapping[str, SkillElo],
    group: SkillCategory,
    settings: AlgorithmSettings | None = None,
) -> CategoryRating:
    """Average rating of the answered skills in a category (default when none)."""
    settings = settings or get_settings()
    total_elo = 0.0
    total_questions = 0
    skills_with_data = 0

    for skill in group.skills:
        data = skill_elos.get(skill)
        if data is not None and data.question_count > 0:
            total_elo += data.rating
            total_questions += data.question_count
            skills_with_data += 1

    elo = total_elo / skills_with_data if skills_with_data else settings.default_skill_rating
    weight = CATEGORY_WEIGHTS.get(group.category, settings.estimate_default_category_weight)
    return CategoryRating(group.category, elo, total_questions, weight)


def merge_skill_labels(skill_elos: Mapping[str, SkillElo]) -> dict[str, SkillElo]:
    """
    Key skill ratings by canonical label.

    Labels that normalize to the same skill are combined: answer counts are
    summed and the rating is the answer-weighted mean.
    """
    merged: dict[str, SkillElo] = {}
    for label, data in skill_elos.items():
        key = normalize_skill(label)
        existing = merged.get(key)
        if existing is None:
            merged[key] = data
            continue
        question_count = existing.question_count + data.question_count
        if question_count > 0:
            rating = (
                existing.rating * existing.question_count + data.rating * data.question_count
            ) / question_count
        else:
            rating = existing.rating
        merged[key] = SkillElo(
            rating=rating,
            question_count=question_count,
            correct_count=existing.correct_count + data.correct_count,
        )
    return merged


def _default_estimate(settings: AlgorithmSettings, now: int) -> EstimatedScore:
    return EstimatedScore(
        score=settings.estimate_default_score,
        confidence=settings.estimate_default_confidence,
        raw_accuracy=0.5,
        calculated_at=now,
    )


def estimate_section_score(
    skill_elos: Mapping[str, SkillElo] | None,
    module: str,
    now: int | None = None,
    settings: AlgorithmSettings | None = None,
) -> EstimatedScore:
    """
    Estimate a learner's section score for one module.

    Args:
        skill_elos: Skill label -> SkillElo (None or empty for a new learner)
        module: "english" or "math"
        now: Timestamp recorded on the estimate (defaults to the wall clock)

    Returns:
        EstimatedScore. A learner with no answered skills in the module gets
        the midpoint (500) with confidence 0.1 rather than a misleading low.
    """
    settings = settings or get_settings()
    now = now_ms() if now is None else now
    if not skill_elos:
        return _default_estimate(settings, now)

    by_label = merge_skill_labels(skill_elos)
    categories = [category_rating(by_label, group, settings) for group in skills_by_module(module)]
    total_questions = sum(c.question_count for c in categories)
    if total_questions == 0:
        return _default_estimate(settings, now)

    weighted_elo = 0.0
    total_weight = 0.0
    for category in categories:
        skill_confidence = min(1.0, category.question_count / settings.estimate_skill_confidence_questions)
        effective_weight = category.weight * (0.5 + 0.5 * skill_confidence)
        weighted_elo += category.elo * effective_weight
        total_weight += effective_weight

    avg_elo = weighted_elo / total_weight if total_weight > 0 else settings.default_skill_rating
    confidence = min(1.0, total_questions / settings.estimate_confidence_questions)
    raw_accuracy = expected_score(avg_elo, settings.default_skill_rating, settings.elo_scale)

    return EstimatedScore(
        score=elo_to_scaled_score(avg_elo, settings),
        confidence=round(confidence, 2),
        raw_accuracy=round(raw_accuracy, 2),
        calculated_at=now,
    )


def estimate_total_score(
    skill_elos: Mapping[str, SkillElo] | None,
    now: int | None = None,
    settings: AlgorithmSettings | None = None,
) -> TotalEstimate:
    """Estimate both sections and their sum."""
    now = now_ms() if now is None else now
    english = estimate_section_score(skill_elos, "english", now, settings)
    math = estimate_section_score(skill_elos, "math", now, settings)
    return TotalEstimate(total=english.score + math.score, english=english, math=math)
