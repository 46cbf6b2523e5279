"""
SM-2 Style Repetition Scheduler.

Tracks, per learner and question:
- Ease Factor (EF): how quickly review intervals grow (2.5 default, range 1.3-2.5)
- Interval: days until the next review
- Repetitions: consecutive correct answers

Correct answers grow the interval (1 day, 3 days, then interval * EF) and
nudge EF up; an incorrect answer resets the streak and makes the question
due immediately. There is no terminal state: mastered questions keep being
scheduled, only further apart.

Scheduler functions never raise. Absent or malformed state is treated as new.
"""

from __future__ import annotations

from typing import Any

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.models import DAY_MS, QuestionRepetition, now_ms
from practice_engine.rating.elo import round_half_up

DEFAULT_REPETITION = QuestionRepetition()


def normalize_repetition(
    current: QuestionRepetition | dict[str, Any] | None,
    settings: AlgorithmSettings | None = None,
) -> QuestionRepetition:
    """
    Resolve any stored representation into a valid repetition record.

    Args:
        current: Existing record, raw document, or None for never seen
        settings: Ease defaults and bounds (cached settings if None)

    Returns:
        A QuestionRepetition; the "new" state when input is absent or malformed
    """
    settings = settings or get_settings()
    if current is None:
        return QuestionRepetition(ease_factor=settings.default_ease_factor)
    if isinstance(current, QuestionRepetition):
        current = current.to_dict()
    return QuestionRepetition.from_dict(current, settings)


def update_repetition(
    is_correct: bool,
    current: QuestionRepetition | dict[str, Any] | None,
    now: int | None = None,
    settings: AlgorithmSettings | None = None,
) -> QuestionRepetition:
    """
    Calculate the next repetition state after one answer.

    Args:
        is_correct: Whether the learner answered correctly
        current: Existing state (None = never seen)
        now: Review time in epoch ms (defaults to the wall clock)

    Returns:
        New QuestionRepetition
    """
    settings = settings or get_settings()
    now = now_ms() if now is None else now
    base = normalize_repetition(current, settings)

    if not is_correct:
        # Failed - back to the beginning, due right away
        return QuestionRepetition(
            ease_factor=max(settings.min_ease_factor, base.ease_factor - settings.ease_penalty_wrong),
            interval=0,
            repetitions=0,
            last_reviewed_at=now,
            next_review_at=now,
        )

    repetitions = base.repetitions + 1
    if repetitions == 1:
        interval = settings.interval_first_days
    elif repetitions == 2:
        interval = settings.interval_second_days
    else:
        # Grows with the ease factor held before this answer
        interval = max(base.interval, round_half_up(base.interval * base.ease_factor))

    return QuestionRepetition(
        ease_factor=min(settings.max_ease_factor, base.ease_factor + settings.ease_bonus_correct),
        interval=interval,
        repetitions=repetitions,
        last_reviewed_at=now,
        next_review_at=now + interval * DAY_MS,
    )


def is_due(repetition: QuestionRepetition | None, now: int | None = None) -> bool:
    """True when a reviewed question's next review time has arrived."""
    if repetition is None or repetition.is_new:
        return False
    now = now_ms() if now is None else now
    return repetition.next_review_at <= now


def due_within(repetition: QuestionRepetition | None, now: int, window_ms: int) -> bool:
    """True when a reviewed question falls due before ``now + window_ms``."""
    if repetition is None or repetition.is_new:
        return False
    return repetition.next_review_at - now < window_ms


def is_mastered(repetition: QuestionRepetition | None, settings: AlgorithmSettings | None = None) -> bool:
    """Scoring heuristic: enough consecutive correct answers to deprioritize."""
    if repetition is None:
        return False
    settings = settings or get_settings()
    return repetition.repetitions >= settings.mastered_repetitions


def overdue_ms(repetition: QuestionRepetition, now: int) -> int:
    """Milliseconds past the scheduled review (0 when not yet due)."""
    return max(0, now - repetition.next_review_at)
