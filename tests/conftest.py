"""Shared test fixtures for Creatorgate."""

import os
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient


API_KEY = "test-service-api-key"
SUPER_ADMIN_KEY = "test-super-admin-key"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["CREATORGATE_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["CREATORGATE_API_KEY"] = API_KEY
    os.environ["CREATORGATE_SUPER_ADMIN_KEY"] = SUPER_ADMIN_KEY
    os.environ.pop("CREATORGATE_STRIPE_WEBHOOK_SECRET", None)

    # Clear caches and singletons so new env vars take effect
    from creatorgate.common.config import get_settings
    get_settings.cache_clear()

    from creatorgate.deps import reset_singletons
    reset_singletons()

    from creatorgate.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from creatorgate.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def service_headers():
    return {"X-Creatorgate-Api-Key": API_KEY}


@pytest.fixture
def super_admin_headers():
    return {"X-Creatorgate-Api-Key": SUPER_ADMIN_KEY}


@pytest.fixture
def user_headers(service_headers):
    def _headers(user_id: str = "user-1") -> dict[str, str]:
        return {**service_headers, "X-Creatorgate-User": user_id}
    return _headers
