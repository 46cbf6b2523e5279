"""
Candidate question supply.

The recommender never loads questions itself; callers hand it a snapshot
from a ``CandidateSource``. ``CandidateCache`` is the usual implementation:
a per-module TTL cache in front of whatever loader reads the question store.
It is owned and lifecycle-managed by the caller, never a module global.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from practice_engine.config import get_settings
from practice_engine.models import CandidateQuestion


class CandidateSource(Protocol):
    """Read-only, possibly stale, supply of questions per module."""

    def get(self, module: str) -> list[CandidateQuestion]: ...

    def invalidate(self, module: str | None = None) -> None: ...


@dataclass
class _CacheEntry:
    questions: list[CandidateQuestion]
    fetched_at: float


class CandidateCache:
    """
    TTL cache of candidate questions keyed by module.

    Usage:
        cache = CandidateCache(loader=load_questions_from_store)
        candidates = cache.get("math")
        ...
        cache.invalidate("math")  # after ingesting new questions
    """

    def __init__(
        self,
        loader: Callable[[str], list[CandidateQuestion]],
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            loader: Fetches all questions of a module from the backing store
            ttl_seconds: Entry lifetime (defaults to settings, 300s)
            clock: Monotonic time source in seconds
        """
        self._loader = loader
        self._ttl = get_settings().candidate_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def _fresh(self, entry: _CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self._ttl

    def get(self, module: str) -> list[CandidateQuestion]:
        """All questions of a module, loading when missing or expired."""
        entry = self._entries.get(module)
        if entry is not None and self._fresh(entry):
            return entry.questions

        questions = list(self._loader(module))
        self._entries[module] = _CacheEntry(questions=questions, fetched_at=self._clock())
        logger.debug(f"Loaded {len(questions)} candidates for module {module}")
        return questions

    def get_question(self, question_id: str) -> CandidateQuestion | None:
        """Look a question up among fresh cached entries only."""
        for entry in self._entries.values():
            if not self._fresh(entry):
                continue
            for question in entry.questions:
                if question.question_id == question_id:
                    return question
        return None

    def invalidate(self, module: str | None = None) -> None:
        """Drop one module's entry, or every entry when module is None."""
        if module is None:
            self._entries.clear()
        else:
            self._entries.pop(module, None)
        logger.debug(f"Candidate cache invalidated ({module or 'all modules'})")
