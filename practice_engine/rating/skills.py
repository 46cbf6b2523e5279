"""
Skill taxonomy for the two exam modules.

Each module is split into topical categories; each category groups the skill
labels questions are tagged with. Category weights approximate each
category's share of the section and drive the score estimate.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SkillCategory:
    """A topical category within one module."""

    category: str
    module: str
    skills: tuple[str, ...]


SKILL_HIERARCHY: tuple[SkillCategory, ...] = (
    # English / Reading & Writing
    SkillCategory(
        category="Information and Ideas",
        module="english",
        skills=(
            "Inferences",
            "Command of Evidence",
            "Central Ideas and Details",
            "Quantitative Reasoning",
        ),
    ),
    SkillCategory(
        category="Craft and Structure",
        module="english",
        skills=(
            "Cross-Text Connections",
            "Words in Context",
            "Text Structure and Purpose",
            "Rhetorical Synthesis",
            "Vocabulary",
        ),
    ),
    SkillCategory(
        category="Expression of Ideas",
        module="english",
        skills=(
            "Transitions",
            "Boundaries",
            "Development",
            "Organization",
        ),
    ),
    SkillCategory(
        category="Standard English Conventions",
        module="english",
        skills=(
            "Form, Structure, and Sense",
            "Punctuation",
            "Usage",
            "Agreement",
        ),
    ),
    # Math
    SkillCategory(
        category="Algebra",
        module="math",
        skills=(
            "Linear equations in one variable",
            "Linear equations in two variables",
            "Linear functions",
            "Linear inequalities in one or two variables",
            "Systems of two linear equations in two variables",
            "Quadratic Equations",
        ),
    ),
    SkillCategory(
        category="Problem Solving and Data Analysis",
        module="math",
        skills=(
            "Ratios, rates, proportional relationships, and units",
            "Percentages",
            "One-variable data: Distributions and measures of center and spread",
            "Inference from sample statistics and margin of error",
            "Evaluating statistical claims: Observational studies and experiments",
            "Probability and conditional probability",
            "Two-variable data: Models and scatterplots",
        ),
    ),
    SkillCategory(
        category="Advanced Math",
        module="math",
        skills=(
            "Nonlinear equations in one variable and systems of equations in two variables",
            "Nonlinear functions",
            "Equivalent expressions",
        ),
    ),
    SkillCategory(
        category="Geometry and Trigonometry",
        module="math",
        skills=(
            "Lines, angles, and triangles",
            "Area and volume",
            "Circles",
            "Right triangles and trigonometry",
        ),
    ),
)

# Share of each category in its section (sums to 1.0 per module)
CATEGORY_WEIGHTS: dict[str, float] = {
    "Information and Ideas": 0.26,
    "Craft and Structure": 0.28,
    "Expression of Ideas": 0.28,
    "Standard English Conventions": 0.18,
    "Algebra": 0.35,
    "Problem Solving and Data Analysis": 0.15,
    "Advanced Math": 0.35,
    "Geometry and Trigonometry": 0.15,
}


def normalize_skill(skill: str) -> str:
    """Skill labels arrive with stray whitespace from some question sources."""
    return " ".join(skill.split())


def _find_category(skill: str) -> SkillCategory | None:
    label = normalize_skill(skill)
    for group in SKILL_HIERARCHY:
        if label in group.skills:
            return group
    return None


def module_for_skill(skill: str) -> str | None:
    """Module a skill belongs to, or None for unknown labels."""
    group = _find_category(skill)
    return group.module if group else None


def category_for_skill(skill: str) -> str | None:
    """Category a skill belongs to, or None for unknown labels."""
    group = _find_category(skill)
    return group.category if group else None


def skills_by_module(module: str) -> list[SkillCategory]:
    """All categories of a module, in taxonomy order."""
    return [group for group in SKILL_HIERARCHY if group.module == module]
