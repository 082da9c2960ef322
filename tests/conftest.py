"""
Pytest configuration and shared fixtures for the discovery backend tests.
"""
import os
import sys
import time
from datetime import datetime, timezone

import pytest

# Add src (and tests, for the fake client) to path for imports
ROOT = os.path.dirname(os.path.dirname(__file__))
sys.path.insert(0, os.path.join(ROOT, "src"))
sys.path.insert(0, os.path.dirname(__file__))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(ROOT, ".env"))

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

from fake_supabase import FakeSupabase  # noqa: E402


# ============================================================================
# Fixtures: Clock
# ============================================================================

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Fixtures: Settings & Services
# ============================================================================

@pytest.fixture
def settings():
    from config.settings import get_settings_for_testing
    return get_settings_for_testing()


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def memory_backend(clock):
    from caching.backends import InMemoryCacheBackend
    return InMemoryCacheBackend(clock=clock)


@pytest.fixture
def cache(memory_backend, settings, clock):
    from caching.manager import CacheManager
    return CacheManager(backend=memory_backend, settings=settings, clock=clock)


@pytest.fixture
def disabled_cache(settings):
    from caching.manager import CacheManager
    return CacheManager(backend=None, settings=settings)


@pytest.fixture
def authenticated_actor():
    from core.auth import Actor
    return Actor(profile_id="profile-1")


@pytest.fixture
def anonymous_actor():
    from core.auth import Actor
    return Actor(anonymous_id="anon-1")


@pytest.fixture
def preference_repository(supabase, cache):
    from preferences.repository import PreferenceRepository
    return PreferenceRepository(supabase, cache=cache)


@pytest.fixture
def event_store(supabase, preference_repository, settings):
    """Event store with the production projections subscribed."""
    from events.dispatcher import EventDispatcher
    from events.projectors import (
        OutcomeProjector,
        SavedItemsProjector,
        SessionActivityProjector,
    )
    from events.store import EventStore
    from preferences.incremental import PreferenceIncrementalUpdater

    dispatcher = EventDispatcher([
        SavedItemsProjector(supabase),
        OutcomeProjector(supabase),
        SessionActivityProjector(supabase),
        PreferenceIncrementalUpdater(preference_repository, settings),
    ])
    return EventStore(supabase, dispatcher)


# ============================================================================
# Fixtures: FastAPI Test Client
# ============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from api.app import create_app
    return create_app()


@pytest.fixture
def client(app):
    """Synchronous HTTP client for testing FastAPI endpoints."""
    from fastapi.testclient import TestClient
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "supabase: marks tests that require Supabase")


# ============================================================================
# JWT Token Generation
# ============================================================================

def generate_test_jwt(
    user_id: str = "test-user-001",
    exp_hours: int = 24,
    is_anonymous: bool = False,
) -> str:
    """
    Generate a Supabase-style access token signed with SUPABASE_JWT_SECRET.
    """
    import jwt

    now = int(time.time())
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "email": f"{user_id}@test.com",
        "aal": "aal1",
        "exp": now + (exp_hours * 3600),
        "iat": now,
        "is_anonymous": is_anonymous,
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def test_jwt_token() -> str:
    return generate_test_jwt()


@pytest.fixture
def auth_headers(test_jwt_token: str) -> dict:
    """Auth headers with Bearer token."""
    return {"Authorization": f"Bearer {test_jwt_token}"}


def pytest_collection_modifyitems(config, items):
    """Auto-skip Supabase tests if no real project is configured."""
    skip_supabase = pytest.mark.skip(reason="Supabase tests require credentials")
    supabase_url = os.getenv("SUPABASE_URL", "")

    for item in items:
        if "supabase" in item.keywords and "test.supabase.co" in supabase_url:
            item.add_marker(skip_supabase)
