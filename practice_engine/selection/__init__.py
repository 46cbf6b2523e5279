"""
Question selection.

Components:
- scoring: Five-signal composite score for one candidate
- recommender: Adaptive, review and daily selection strategies
- randomness: Injectable random sources and daily hash ranking
- cache: TTL cache of candidate questions per module
"""

from .cache import CandidateCache, CandidateSource
from .randomness import ProcessRandomSource, RandomSource, SeededRandomSource, SequenceRandomSource
from .recommender import QuestionRecommender, RecommendationRequest, recommend_questions
from .scoring import ScoreComponents, ScoringContext, score_components, score_question

__all__ = [
    # Scoring
    "ScoreComponents",
    "ScoringContext",
    "score_components",
    "score_question",
    # Selection
    "QuestionRecommender",
    "RecommendationRequest",
    "recommend_questions",
    # Randomness
    "RandomSource",
    "ProcessRandomSource",
    "SeededRandomSource",
    "SequenceRandomSource",
    # Candidate supply
    "CandidateSource",
    "CandidateCache",
]
