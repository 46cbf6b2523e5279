"""
Recommendation Selector.

Chooses which question ids to append to a session buffer. Three strategies
share the same filtering machinery:

- Adaptive (sandbox, speed_round): calibration sequence for the first five
  questions, then composite scoring and a weighted draw among the top five
- Review: pure due-date pass over the learner's repetition records
- Daily: deterministic hash-ranked selection keyed by the date

Every strategy returns distinct ids, never repeats ids already buffered
(unless the adaptive pool would otherwise be empty) and returns an empty
list rather than raising when nothing is eligible.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from practice_engine.config import AlgorithmSettings, get_settings
from practice_engine.errors import InvalidStateError
from practice_engine.models import CandidateQuestion, LearnerProfile, Session, SessionMode, now_ms
from practice_engine.rating.elo import validate_rating_finite
from practice_engine.rating.repetition import due_within, overdue_ms
from practice_engine.selection.randomness import ProcessRandomSource, RandomSource, daily_seed, seeded_order
from practice_engine.selection.scoring import ScoringContext, score_question, session_skill_counts

HOUR_MS = 60 * 60 * 1000


@dataclass
class RecommendationRequest:
    """Consistent snapshot of everything one recommendation call needs."""

    candidates: Sequence[CandidateQuestion]
    session: Session
    profile: LearnerProfile | None = None
    user_rating: float | None = None  # Defaults to session.current_rating
    now: int | None = None

    @property
    def rating(self) -> float:
        if self.user_rating is not None:
            return self.user_rating
        return self.session.current_rating


@dataclass(frozen=True)
class ScoredQuestion:
    """A candidate id with its composite score."""

    question_id: str
    score: float


def weighted_random_pick(
    scored: Sequence[ScoredQuestion],
    rng: RandomSource,
    top_n: int = 5,
) -> str | None:
    """
    Pick one id from the ``top_n`` highest scores, proportionally to score.

    Falls back to the best candidate when only one remains or every top
    score is zero. Returns None for an empty input.
    """
    if not scored:
        return None

    # Stable sort: ties keep their input order
    ranked = sorted(scored, key=lambda item: item.score, reverse=True)
    top = ranked[: max(1, top_n)]
    total = sum(max(0.0, item.score) for item in top)
    if len(top) == 1 or total <= 0:
        return top[0].question_id

    draw = rng.random() * total
    for item in top:
        draw -= max(0.0, item.score)
        if draw <= 0:
            return item.question_id
    return top[0].question_id


def date_seed_for(now: int) -> str:
    """UTC calendar date (YYYY-MM-DD) of an epoch-ms timestamp."""
    return datetime.fromtimestamp(now / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


class QuestionRecommender:
    """
    Select the next questions for a session.

    Usage:
        recommender = QuestionRecommender()
        request = RecommendationRequest(candidates, session, profile)
        next_ids = recommender.recommend(request, count=3)
    """

    def __init__(
        self,
        random_source: RandomSource | None = None,
        settings: AlgorithmSettings | None = None,
    ):
        """
        Initialize the recommender.

        Args:
            random_source: Source for weighted draws (process-level random if None)
            settings: Algorithm settings (cached settings if None)
        """
        self.random_source = random_source or ProcessRandomSource()
        self.settings = settings or get_settings()

    # =========================================================================
    # FILTERING
    # =========================================================================

    @staticmethod
    def _check_count(count: int) -> None:
        if count < 0:
            raise InvalidStateError(f"count must be >= 0, got {count}")

    def _module_pool(
        self,
        request: RecommendationRequest,
        allow_fallback: bool,
    ) -> list[CandidateQuestion]:
        """Module candidates not yet buffered; optionally all module candidates."""
        module = request.session.module
        buffered = request.session.buffered_ids()
        in_module = [q for q in request.candidates if q.module == module]
        pool = [q for q in in_module if q.question_id not in buffered]

        if not pool and allow_fallback and in_module:
            logger.warning(
                f"Every {module} candidate is already buffered in session "
                f"{request.session.session_id or '<new>'}; allowing repeats"
            )
            pool = in_module

        # Duplicate ids in the snapshot must not yield duplicate picks
        unique: dict[str, CandidateQuestion] = {}
        for question in pool:
            unique.setdefault(question.question_id, question)
        return list(unique.values())

    def _calibration_pool(
        self,
        pool: list[CandidateQuestion],
        question_count: int,
    ) -> list[CandidateQuestion]:
        """Restrict to the calibration difficulty while the session is young."""
        sequence = self.settings.calibration_sequence
        if question_count >= len(sequence):
            return pool

        target = sequence[question_count]
        calibrated = [q for q in pool if q.difficulty == target]
        if calibrated:
            logger.debug(f"Calibration slot {question_count}: {len(calibrated)} {target} candidates")
            return calibrated
        return pool

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def score_candidates(
        self,
        request: RecommendationRequest,
        pool: Sequence[CandidateQuestion],
    ) -> list[ScoredQuestion]:
        """Score a pool against the request's learner and session state."""
        context = ScoringContext.for_session(
            request.session,
            user_rating=request.rating,
            profile=request.profile,
            skill_counts=session_skill_counts(request.session, request.candidates),
            now=request.now,
            settings=self.settings,
        )
        return [
            ScoredQuestion(q.question_id, score_question(q, context, self.settings))
            for q in pool
        ]

    def recommend(self, request: RecommendationRequest, count: int = 1) -> list[str]:
        """
        Adaptive recommendation.

        Steps:
        1. Filter to the session module, excluding buffered ids (fallback:
           allow repeats rather than return nothing)
        2. Calibration override for the first five questions
        3. Score every remaining candidate
        4. Weighted draw among the top five, ``count`` times without replacement

        Returns:
            Up to ``count`` distinct question ids
        """
        self._check_count(count)
        validate_rating_finite(request.rating, "user_rating")
        if count == 0:
            return []

        pool = self._module_pool(request, allow_fallback=True)
        if not pool:
            logger.warning(f"No {request.session.module} candidates to recommend")
            return []

        pool = self._calibration_pool(pool, request.session.question_count)
        remaining = self.score_candidates(request, pool)

        results: list[str] = []
        while remaining and len(results) < count:
            picked = weighted_random_pick(remaining, self.random_source, self.settings.top_candidates_count)
            if picked is None:
                break
            results.append(picked)
            remaining = [item for item in remaining if item.question_id != picked]

        logger.debug(
            f"Recommended {len(results)}/{count} for session {request.session.session_id or '<new>'} "
            f"(pool={len(pool)}, rating={request.rating})"
        )
        return results

    def recommend_review(self, request: RecommendationRequest, count: int = 1) -> list[str]:
        """
        Due-date recommendation for review sessions.

        Only questions with a repetition record that is overdue or falls due
        within the review window are eligible. Most overdue first, then the
        lower ease factor (harder for this learner), then id.
        """
        self._check_count(count)
        if count == 0:
            return []

        now = now_ms() if request.now is None else request.now
        window_ms = self.settings.review_window_hours * HOUR_MS
        repetitions = (request.profile or LearnerProfile()).question_repetitions

        due = []
        for question in self._module_pool(request, allow_fallback=False):
            repetition = repetitions.get(question.question_id)
            if repetition is not None and due_within(repetition, now, window_ms):
                due.append((question, repetition))

        due.sort(key=lambda pair: (pair[1].next_review_at, pair[1].ease_factor, pair[0].question_id))
        results = [question.question_id for question, _ in due[:count]]

        if due:
            most_overdue_hours = overdue_ms(due[0][1], now) / HOUR_MS
            logger.debug(f"Review pass: {len(due)} due, most overdue by {most_overdue_hours:.1f}h")
        return results

    def recommend_daily(
        self,
        candidates: Sequence[CandidateQuestion],
        date_seed: str,
        count: int = 1,
        module: str | None = None,
        learner_id: str | None = None,
        exclude_ids: set[str] | None = None,
    ) -> list[str]:
        """
        Deterministic daily challenge.

        Questions are ranked by a hash of (date seed, learner id, question
        id); the same inputs return the same ordered ids on every call, for
        every caller, regardless of candidate order. Pass ``learner_id`` only
        for per-learner challenges.

        Args:
            candidates: Question snapshot
            date_seed: Calendar day, e.g. "2026-10-17"
            count: Number of questions
            module: Restrict to one module
            learner_id: Optional per-learner salt
            exclude_ids: Ids to skip (already served today)
        """
        self._check_count(count)
        exclude_ids = exclude_ids or set()
        eligible = [
            q.question_id
            for q in candidates
            if (module is None or q.module == module)
        ]
        seed = daily_seed(date_seed, learner_id)
        ordered = [qid for qid in seeded_order(seed, eligible) if qid not in exclude_ids]
        return ordered[:count]

    def recommend_for_mode(
        self,
        request: RecommendationRequest,
        count: int = 1,
        date_seed: str | None = None,
    ) -> list[str]:
        """Dispatch on the session mode."""
        mode = request.session.mode
        if mode is SessionMode.DAILY:
            now = now_ms() if request.now is None else request.now
            return self.recommend_daily(
                request.candidates,
                date_seed or date_seed_for(now),
                count,
                module=request.session.module,
                exclude_ids=request.session.buffered_ids(),
            )

        if mode is SessionMode.REVIEW:
            due = self.recommend_review(request, count)
            if due:
                return due
            logger.info(
                f"Nothing due for review in session {request.session.session_id or '<new>'}; "
                "using adaptive selection"
            )

        return self.recommend(request, count)


def recommend_questions(
    candidates: Sequence[CandidateQuestion],
    session: Session,
    profile: LearnerProfile | None = None,
    count: int = 1,
    user_rating: float | None = None,
    random_source: RandomSource | None = None,
    now: int | None = None,
) -> list[str]:
    """Convenience wrapper for a one-off adaptive recommendation."""
    recommender = QuestionRecommender(random_source=random_source)
    request = RecommendationRequest(
        candidates=candidates,
        session=session,
        profile=profile,
        user_rating=user_rating,
        now=now,
    )
    return recommender.recommend(request, count)
