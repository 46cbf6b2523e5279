"""
Random sources for question selection.

Adaptive selection draws from an injectable source so tests can pin the
sequence. Daily challenges never touch a random generator: they rank
questions by a SHA-256 hash of (date seed, optional learner, question id),
which gives every caller the same order on the same day.
"""

from __future__ import annotations

import hashlib
import random
from collections.abc import Iterable, Sequence
from typing import Protocol


class RandomSource(Protocol):
    """Anything with ``random() -> float`` in [0, 1); ``random.Random`` qualifies."""

    def random(self) -> float: ...


class ProcessRandomSource:
    """The process-level generator of the ``random`` module."""

    def random(self) -> float:
        return random.random()


class SeededRandomSource(random.Random):
    """Deterministic source for reproducible runs and tests."""

    def __init__(self, seed: int | str = 0):
        super().__init__(seed)


class SequenceRandomSource:
    """Replays a fixed sequence of draws, cycling when exhausted."""

    def __init__(self, values: Sequence[float]):
        if not values:
            raise ValueError("SequenceRandomSource needs at least one value")
        self._values = list(values)
        self._index = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value


def daily_seed(date_seed: str, learner_id: str | None = None) -> str:
    """
    Seed string for a daily challenge.

    Without a learner id every learner shares the day's challenge.
    """
    return date_seed if not learner_id else f"{date_seed}|{learner_id}"


def hash_rank(seed: str, item_id: str) -> str:
    """Stable sort key for ``item_id`` under ``seed``."""
    return hashlib.sha256(f"{seed}|{item_id}".encode()).hexdigest()


def seeded_order(seed: str, item_ids: Iterable[str]) -> list[str]:
    """Order ids by their hash under ``seed`` (independent of input order)."""
    return sorted(set(item_ids), key=lambda item_id: (hash_rank(seed, item_id), item_id))
