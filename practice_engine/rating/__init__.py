"""
Rating models for learners, skills and questions.

Components:
- elo: Learner, question and per-skill Elo updates
- repetition: SM-2 style per-question review scheduling
- skills: Skill taxonomy and category weights
- estimate: Section score projection from skill ratings
"""

from .elo import (
    QuestionEloUpdate,
    dynamic_user_k,
    expected_score,
    initial_question_elo,
    question_k_factor,
    update_question_elo,
    update_skill_elo,
    update_user_rating,
)
from .estimate import EstimatedScore, TotalEstimate, estimate_section_score, estimate_total_score
from .repetition import is_due, is_mastered, normalize_repetition, update_repetition
from .skills import CATEGORY_WEIGHTS, SKILL_HIERARCHY, SkillCategory, category_for_skill, module_for_skill

__all__ = [
    # Elo
    "QuestionEloUpdate",
    "expected_score",
    "dynamic_user_k",
    "update_user_rating",
    "question_k_factor",
    "update_question_elo",
    "update_skill_elo",
    "initial_question_elo",
    # Repetition
    "update_repetition",
    "normalize_repetition",
    "is_due",
    "is_mastered",
    # Taxonomy
    "SkillCategory",
    "SKILL_HIERARCHY",
    "CATEGORY_WEIGHTS",
    "module_for_skill",
    "category_for_skill",
    # Estimation
    "EstimatedScore",
    "TotalEstimate",
    "estimate_section_score",
    "estimate_total_score",
]
