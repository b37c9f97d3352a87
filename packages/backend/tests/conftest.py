"""Test fixtures — a fresh in-memory database and app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI without a server:

1. Each test gets its own in-memory SQLite engine (aiosqlite + StaticPool,
   so every session shares the one connection that holds the schema).
2. get_db is overridden to hand each request a new session from that engine.
3. The app is built with create_app() and a FakeClock, so token expiry and
   reset windows can be tested by moving time instead of sleeping.
4. The reset notifier records tickets instead of sending anything.

Nothing is shared between tests, so no cleanup is needed.
"""

import os
from datetime import datetime, timedelta, timezone

# Must be set before shareme is imported: the module-level engine and
# settings read them once.
os.environ.setdefault("SHAREME_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SHAREME_ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shareme.auth.password import configure_rounds
from shareme.config import Settings
from shareme.db.engine import create_all, get_db
from shareme.main import create_app

TEST_SECRET = "test-signing-key-0123456789abcdef0123456789"
DEFAULT_PASSWORD = "correct-horse-battery"

# Minimum bcrypt cost keeps the suite fast
configure_rounds(4)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    """Reset notifier that keeps every ticket it is handed."""

    def __init__(self):
        self.tickets = []

    async def send(self, ticket) -> None:
        self.tickets.append(ticket)

    @property
    def last(self):
        return self.tickets[-1]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def test_settings(tmp_path):
    return Settings(
        database_url="sqlite+aiosqlite://",
        environment="test",
        jwt_secret=TEST_SECRET,
        access_token_expire_minutes=60,
        reset_token_expire_minutes=30,
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024,
    )


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for service-level tests (no HTTP involved)."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def app(test_settings, clock, notifier, session_factory):
    application = create_app(test_settings, clock=clock, reset_notifier=notifier)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(client):
    """Factory: sign up + log in, return {"id", "email", "token", "headers"}.

    Learn: Real tokens through the real gate. No auth override, so every
    API test also exercises the authentication path.
    """

    async def _make(email: str, first_name: str = "Test", last_name: str = "User",
                    password: str = DEFAULT_PASSWORD) -> dict:
        r = await client.post(
            "/api/auth/signup",
            json={
                "email": email,
                "password": password,
                "firstName": first_name,
                "lastName": last_name,
            },
        )
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]

        r = await client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        assert r.status_code == 200, r.text
        token = r.json()["token"]
        return {
            "id": user_id,
            "email": email,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make
