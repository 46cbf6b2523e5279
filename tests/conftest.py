"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from practice_engine.config import get_settings  # noqa: E402
from practice_engine.models import CandidateQuestion, LearnerProfile, Session  # noqa: E402
from practice_engine.selection.randomness import SeededRandomSource  # noqa: E402
from practice_engine.selection.recommender import QuestionRecommender  # noqa: E402
from practice_engine.simulation import build_question_bank  # noqa: E402

# Fixed clock for deterministic scheduling tests (2023-11-14T22:13:20Z)
NOW = 1_700_000_000_000


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full answer loop, no storage)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)
        elif "property" in str(item.fspath):
            item.add_marker(pytest.mark.property)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so env overrides in one test never leak into another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed epoch-ms timestamp."""
    return NOW


@pytest.fixture
def math_bank():
    """Synthetic math bank: 20 skills x (E, M, H)."""
    return build_question_bank("math", per_skill=3, seed=1)


@pytest.fixture
def english_bank():
    """Synthetic english bank: 17 skills x (E, M, H)."""
    return build_question_bank("english", per_skill=3, seed=2)


@pytest.fixture
def math_session():
    """Empty sandbox session for the math module."""
    return Session(session_id="session-001", user_id="learner-001", module="math")


@pytest.fixture
def learner():
    """Learner profile without any history."""
    return LearnerProfile(user_id="learner-001")


@pytest.fixture
def recommender():
    """Recommender with a pinned random source."""
    return QuestionRecommender(random_source=SeededRandomSource(42))


@pytest.fixture
def sample_question():
    """A medium math question at the default Elo."""
    return CandidateQuestion(
        question_id="q-linear-001",
        module="math",
        difficulty="M",
        skill="Linear functions",
        elo=1100,
    )
