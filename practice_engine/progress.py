"""
Answer progression for practice sessions.

Pure helpers the request-handling layer runs inside one storage transaction:

    session, profile = load snapshot
    result = apply_answer(session, profile, question, question_id, is_correct)
    new_entries = refill_buffer(result.session, result.profile, candidates, recommender)
    commit(extend_buffer(result.session, new_entries), result.profile, result.question_update)

Nothing here touches storage; inputs are never mutated.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from loguru import logger

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.errors import InvalidStateError, NoUnansweredQuestionError, StaleQuestionError
from practice_engine.models import (
    CandidateQuestion,
    LearnerProfile,
    QueuedQuestion,
    Session,
    SessionMode,
    now_ms,
)
from practice_engine.rating.elo import QuestionEloUpdate, update_question_elo, update_skill_elo, update_user_rating
from practice_engine.rating.repetition import update_repetition
from practice_engine.selection.recommender import QuestionRecommender, RecommendationRequest


@dataclass
class AnswerResult:
    """Everything that changes when one answer is recorded."""

    session: Session
    profile: LearnerProfile
    question_update: QuestionEloUpdate
    is_correct: bool
    new_rating: int
    rating_change: int
    skill: str


def start_session(
    session_id: str,
    user_id: str,
    module: str,
    candidates: Sequence[CandidateQuestion],
    recommender: QuestionRecommender,
    profile: LearnerProfile | None = None,
    mode: SessionMode = SessionMode.SANDBOX,
    now: int | None = None,
    initial_buffer: int | None = None,
    date_seed: str | None = None,
) -> Session:
    """
    Create a session with its first buffered questions.

    The starting rating is the learner's module rating (1000 for a learner
    without a profile). An empty buffer is returned as-is when the pool is
    starved; the caller decides whether that is fatal.
    """
    now = now_ms() if now is None else now
    profile = profile or LearnerProfile(user_id=user_id)
    rating = profile.rating_for(module)
    session = Session(
        session_id=session_id,
        user_id=user_id,
        module=module,
        mode=mode,
        current_rating=rating,
        rating_at_start=rating,
        started_at=now,
        last_active_at=now,
    )

    entries = refill_buffer(
        session,
        profile,
        candidates,
        recommender,
        target_unanswered=initial_buffer,
        now=now,
        date_seed=date_seed,
    )
    if not entries:
        logger.warning(f"Session {session_id} started with an empty buffer ({module}, {mode.value})")
    else:
        logger.info(f"Session {session_id} started: {module}/{mode.value}, rating {rating}, {len(entries)} queued")
    return extend_buffer(session, entries)


def apply_answer(
    session: Session,
    profile: LearnerProfile | None,
    question: CandidateQuestion,
    question_id: str,
    is_correct: bool,
    selected_answer: str | None = None,
    correct_answer: str | None = None,
    time_spent_ms: int = 0,
    now: int | None = None,
    settings: AlgorithmSettings | None = None,
) -> AnswerResult:
    """
    Record an answer to the session's first unanswered question.

    Rating updates:
    - Learner module rating: dynamic K on the profile's answered count
    - Skill rating: fixed skill K
    - Question Elo: decayed K, against the learner's post-answer rating

    Args:
        session: Session snapshot
        profile: Learner profile (None for learners without one)
        question: The answered question's candidate record
        question_id: Id the client says it answered
        is_correct: Precomputed correctness

    Returns:
        AnswerResult with the updated session, profile and question Elo

    Raises:
        NoUnansweredQuestionError: The buffer has nothing pending
        StaleQuestionError: ``question_id`` is not the first pending entry
        InvalidStateError: ``question`` does not match ``question_id``
    """
    settings = settings or get_settings()
    now = now_ms() if now is None else now

    index = session.first_unanswered_index()
    if index is None:
        raise NoUnansweredQuestionError(f"Session {session.session_id} has no unanswered questions")
    expected_id = session.buffered_questions[index].question_id
    if expected_id != question_id:
        raise StaleQuestionError(question_id, expected_id)
    if question.question_id != question_id:
        raise InvalidStateError(
            f"Question record {question.question_id!r} does not match answered id {question_id!r}"
        )

    profile = profile or LearnerProfile(user_id=session.user_id)

    new_rating = update_user_rating(
        session.current_rating,
        question.elo,
        is_correct,
        total_answered=profile.total_questions,
        settings=settings,
    )
    rating_change = new_rating - session.current_rating
    streak = session.streak + 1 if is_correct else 0

    buffer = list(session.buffered_questions)
    buffer[index] = QueuedQuestion(
        question_id=question_id,
        answered_at=now,
        selected_answer=selected_answer,
        is_correct=is_correct,
        correct_answer=correct_answer,
        time_spent_ms=time_spent_ms or 0,
        rating_change=rating_change,
    )
    updated_session = session.with_updates(
        current_rating=new_rating,
        question_count=session.question_count + 1,
        correct_count=session.correct_count + (1 if is_correct else 0),
        streak=streak,
        best_streak=max(session.best_streak, streak),
        buffered_questions=buffer,
        last_active_at=now,
    )

    skill_elos = dict(profile.skill_elos)
    skill_elos[question.skill] = update_skill_elo(
        is_correct, profile.skill_elos.get(question.skill), question.elo, settings
    )
    repetitions = dict(profile.question_repetitions)
    repetitions[question_id] = update_repetition(
        is_correct, profile.question_repetitions.get(question_id), now, settings
    )
    ratings = dict(profile.ratings)
    ratings[session.module] = new_rating

    updated_profile = replace(
        profile,
        ratings=ratings,
        skill_elos=skill_elos,
        question_repetitions=repetitions,
        total_questions=profile.total_questions + 1,
        total_correct=profile.total_correct + (1 if is_correct else 0),
    )

    question_update = update_question_elo(
        question.elo, new_rating, question.elo_answer_count, is_correct, settings
    )

    logger.debug(
        f"Answer {question_id} in {session.session_id}: correct={is_correct}, "
        f"rating {session.current_rating}->{new_rating}, question elo {question.elo}->{question_update.new_elo}"
    )

    return AnswerResult(
        session=updated_session,
        profile=updated_profile,
        question_update=question_update,
        is_correct=is_correct,
        new_rating=new_rating,
        rating_change=rating_change,
        skill=question.skill,
    )


def refill_buffer(
    session: Session,
    profile: LearnerProfile | None,
    candidates: Sequence[CandidateQuestion],
    recommender: QuestionRecommender,
    target_unanswered: int | None = None,
    now: int | None = None,
    date_seed: str | None = None,
) -> list[QueuedQuestion]:
    """
    Entries to append so the session holds ``target_unanswered`` pending questions.

    Returns an empty list when the buffer is already full or the pool is starved.
    """
    if target_unanswered is None:
        target_unanswered = recommender.settings.buffer_target
    missing = target_unanswered - len(session.unanswered())
    if missing <= 0:
        return []

    request = RecommendationRequest(
        candidates=candidates,
        session=session,
        profile=profile,
        now=now,
    )
    question_ids = recommender.recommend_for_mode(request, missing, date_seed=date_seed)
    return [QueuedQuestion(question_id=qid) for qid in question_ids]


def extend_buffer(session: Session, entries: Sequence[QueuedQuestion]) -> Session:
    """Return a copy of ``session`` with ``entries`` appended to its buffer."""
    return session.with_updates(buffered_questions=[*session.buffered_questions, *entries])
