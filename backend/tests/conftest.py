"""
Pytest configuration and shared fixtures for backend tests.
"""

import random
import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from datetime import UTC, datetime, timedelta
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport

# Import after path is set
from services import get_connection_store, get_session_registry, get_subscription_engine
from services.connection_store import ConnectionStore
from services.subscription_engine import SessionRegistry, SubscriptionEngine


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    """Clock pinned to a fixed instant."""
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible ids and metrics."""
    return random.Random(1234)


@pytest.fixture
def engine(clock: FrozenClock) -> SubscriptionEngine:
    return SubscriptionEngine(clock=clock)


@pytest.fixture
def registry(engine: SubscriptionEngine) -> SessionRegistry:
    return SessionRegistry(engine)


@pytest.fixture
def store(clock: FrozenClock, rng: random.Random) -> ConnectionStore:
    return ConnectionStore(clock=clock, rng=rng)


@pytest.fixture
async def async_client(
    engine: SubscriptionEngine,
    registry: SessionRegistry,
    store: ConnectionStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client wired to fresh engine instances."""
    # Import app here to avoid circular imports
    from main import app

    app.dependency_overrides[get_subscription_engine] = lambda: engine
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_connection_store] = lambda: store

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
