"""
Test infrastructure for the Learn API.

Strategy
--------
- SQLite in-memory via aiosqlite; StaticPool makes every task share the
  one connection, since an in-memory database lives and dies with its
  connection.
- ``PRAGMA foreign_keys=ON`` is issued on connect so ``ON DELETE CASCADE``
  behaves as it does on PostgreSQL.
- The app's get_db dependency is overridden so every test-time request
  uses the test session factory.
- All tables are created before each test and dropped after.
- Redis is disabled by setting ``cache._redis = None``; the CacheManager
  turns every call into a no-op in that state.
- Identity tokens are minted with ``create_access_token`` exactly as the
  identity provider would sign them.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.cache import cache
from app.database import Base, commit, get_db
from app.identity import Identity, create_access_token
from app.main import app
from app.middleware import install_query_counter

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine_test.sync_engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Identity helpers
# ---------------------------------------------------------------------------

def _auth_headers(user_id: str, name: str | None = None, image: str | None = None) -> dict:
    token = create_access_token(user_id, name=name or user_id.title(), image=image)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for tests that call handlers directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """An httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Factory: ``auth_headers("user_x")`` -> Authorization header with a signed token."""
    return _auth_headers


@pytest.fixture
def alice() -> Identity:
    return Identity(user_id="user_alice", name="Alice", image="https://img.example.com/alice.png")


@pytest.fixture
def bob() -> Identity:
    return Identity(user_id="user_bob", name="Bob")
