"""
Test infrastructure for the blog RPC API.

Strategy
--------
- SQLite in-memory via aiosqlite keeps the suite free of a running
  Postgres instance.
- StaticPool forces every session onto the same connection, which is
  required because an in-memory SQLite database is connection-scoped.
- Each test gets its own ``Database`` handle installed on
  ``app.state.database``, with tables created before and the engine
  disposed after, so no state leaks between tests.
- The Redis cache is disabled by setting ``cache._redis = None``; the
  CacheManager treats that as "no cache" and every read hits SQLite.
- Signed-in callers are real users in the database plus a session
  cookie minted with ``create_session_token``.
"""
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from blogrpc.cache import cache
from blogrpc.config import settings
from blogrpc.database import Base, Database
from blogrpc.main import app
from blogrpc.models import UserRole
from blogrpc.schemas import IdentityAssertion
from blogrpc.services import user_service
from blogrpc.sessions import create_session_token

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_OPEN_ID = "admin-open-id"
READER_OPEN_ID = "reader-open-id"


def _client(token: str | None = None) -> AsyncClient:
    cookies = {settings.SESSION_COOKIE_NAME: token} if token else None
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
    )


async def _register(database: Database, open_id: str, role: UserRole) -> str:
    """Store a user with *role* and return a session token for them."""
    async with database.session() as session:
        await user_service.upsert_user(
            session,
            IdentityAssertion(open_id=open_id, name=open_id, login_method="test", role=role),
        )
        await session.commit()
    return create_session_token(open_id, name=open_id, login_method="test")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def database(monkeypatch) -> Database:
    """Fresh in-memory database per test, installed on the app."""
    monkeypatch.setattr(settings, "OWNER_OPEN_ID", None)
    cache._redis = None

    db = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    app.state.database = db
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncSession:
    """Live session for tests that call the service layer directly."""
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Anonymous caller."""
    async with _client() as client:
        yield client


@pytest_asyncio.fixture
async def reader_client(database: Database) -> AsyncClient:
    """Signed-in caller with the plain ``user`` role."""
    token = await _register(database, READER_OPEN_ID, UserRole.USER)
    async with _client(token) as client:
        yield client


@pytest_asyncio.fixture
async def admin_client(database: Database) -> AsyncClient:
    """Signed-in caller with the ``admin`` role."""
    token = await _register(database, ADMIN_OPEN_ID, UserRole.ADMIN)
    async with _client(token) as client:
        yield client
