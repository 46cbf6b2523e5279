"""
Unit tests for the candidate question cache.
"""

from practice_engine.models import CandidateQuestion
from practice_engine.selection.cache import CandidateCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class CountingLoader:
    def __init__(self):
        self.calls = []

    def __call__(self, module):
        self.calls.append(module)
        return [CandidateQuestion(f"{module}-{len(self.calls)}", module, "M", "Circles")]


class TestCandidateCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.loader = CountingLoader()
        self.cache = CandidateCache(self.loader, ttl_seconds=300, clock=self.clock)

    def test_hit_within_ttl(self):
        first = self.cache.get("math")
        self.clock.now = 299
        assert self.cache.get("math") == first
        assert self.loader.calls == ["math"]

    def test_reload_after_ttl(self):
        self.cache.get("math")
        self.clock.now = 300
        reloaded = self.cache.get("math")
        assert self.loader.calls == ["math", "math"]
        assert reloaded[0].question_id == "math-2"

    def test_modules_cached_separately(self):
        self.cache.get("math")
        self.cache.get("english")
        self.cache.get("math")
        assert self.loader.calls == ["math", "english"]

    def test_invalidate_one_module(self):
        self.cache.get("math")
        self.cache.get("english")
        self.cache.invalidate("math")
        self.cache.get("math")
        self.cache.get("english")
        assert self.loader.calls == ["math", "english", "math"]

    def test_invalidate_all(self):
        self.cache.get("math")
        self.cache.invalidate()
        self.cache.get("math")
        assert self.loader.calls == ["math", "math"]

    def test_lookup_by_id(self):
        self.cache.get("math")
        assert self.cache.get_question("math-1").module == "math"
        assert self.cache.get_question("missing") is None

    def test_lookup_ignores_expired_entries(self):
        self.cache.get("math")
        self.clock.now = 301
        assert self.cache.get_question("math-1") is None
