"""
Exceptions raised by the practice engine.

Absent state is never an error: missing ratings, skills or repetition records
resolve to neutral defaults. These exceptions signal programmer errors
(corrupt inputs) and violated session preconditions.
"""


class PracticeEngineError(Exception):
    """Base class for practice engine errors."""
    pass


class InvalidStateError(PracticeEngineError, ValueError):
    """Raised when an input violates a precondition (NaN rating, negative count)."""
    pass


class ConfigurationError(PracticeEngineError):
    """Raised when algorithm settings are inconsistent."""
    pass


class NoUnansweredQuestionError(PracticeEngineError):
    """Raised when an answer arrives for a session with nothing pending."""
    pass


class StaleQuestionError(PracticeEngineError):
    """Raised when the submitted question is not the session's first unanswered entry."""

    def __init__(self, submitted_id: str, expected_id: str):
        self.submitted_id = submitted_id
        self.expected_id = expected_id
        super().__init__(
            f"Stale question {submitted_id!r}: session expects {expected_id!r}"
        )
