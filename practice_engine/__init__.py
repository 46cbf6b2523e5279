"""
Practice Engine: adaptive question selection for exam practice.

Rates learners, skills and questions with Elo, schedules reviews with an
SM-2 style scheduler, projects section scores and picks the next questions
for a practice session. Storage, authentication and UI live elsewhere; this
package only computes.

Components:
- models: Session, profile and question records
- rating: Elo updates, repetition scheduling, score estimation
- selection: Candidate scoring and recommendation strategies
- progress: Answer recording and buffer refills
- simulation: Synthetic learners for offline evaluation
"""

from .errors import (
    ConfigurationError,
    InvalidStateError,
    NoUnansweredQuestionError,
    PracticeEngineError,
    StaleQuestionError,
)
from .models import CandidateQuestion, LearnerProfile, QueuedQuestion, Session, SessionMode
from .progress import AnswerResult, apply_answer, refill_buffer, start_session
from .selection import QuestionRecommender, RecommendationRequest

__version__ = "1.0.0"

__all__ = [
    # Records
    "CandidateQuestion",
    "LearnerProfile",
    "QueuedQuestion",
    "Session",
    "SessionMode",
    # Session flow
    "AnswerResult",
    "start_session",
    "apply_answer",
    "refill_buffer",
    # Selection
    "QuestionRecommender",
    "RecommendationRequest",
    # Errors
    "PracticeEngineError",
    "InvalidStateError",
    "ConfigurationError",
    "NoUnansweredQuestionError",
    "StaleQuestionError",
]
