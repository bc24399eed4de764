"""Shared test fixtures - uses async SQLite for isolated testing."""

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.db.database import Base, get_db
from app.db.redis import get_redis

# In-memory SQLite for tests (no Docker needed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///file::memory:?cache=shared&uri=true"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


async def _override_get_db():
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0


class BrokenRedis:
    """Every command fails as if the server were down."""

    async def set(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    async def get(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")


class RecordingConnections:
    """Stands in for the ConnectionManager; remembers every push."""

    def __init__(self):
        self.pushed: list[tuple[int, dict]] = []

    def push(self, user_id: int, message: dict) -> bool:
        self.pushed.append((user_id, message))
        return True

    def types_for(self, user_id: int) -> list[str]:
        return [m["type"] for uid, m in self.pushed if uid == user_id]


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    # Import all models so Base.metadata knows about them
    import app.models  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db():
    """Direct async DB session for service-level tests."""
    async with test_session_factory() as session:
        yield session
        await session.commit()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def client(fake_redis):
    """Async HTTP test client with test DB and fake Redis overrides."""
    from app.main import app

    async def _override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_redis] = _override_get_redis
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Register a user through the partner directory."""
    from app.services.partner_service import partner_service

    async def _make(name: str, email: str | None = None, telegram_id: str | None = None):
        return await partner_service.register_user(
            db, name, email or f"{name.lower()}@example.com", telegram_id
        )

    return _make


@pytest.fixture
async def partners(db, make_user):
    """Alice and Bob, linked through an accepted partner request and committed."""
    from app.services.partner_service import partner_service

    alice = await make_user("Alice")
    bob = await make_user("Bob")
    request = await partner_service.send_request(db, alice.email, bob.email, "Lift together?")
    await partner_service.respond(db, request.id, bob.email, accept=True)
    await db.commit()
    return alice, bob


@pytest.fixture
def session_factory():
    """Factory for extra, independent sessions (concurrency and feed tests)."""
    return test_session_factory


class RecordingDelivery:
    def __init__(self):
        self.delivered: list[tuple[int, str]] = []

    async def deliver(self, user, notification) -> None:
        self.delivered.append((user.id, notification.type))


@pytest.fixture
def connections():
    return RecordingConnections()


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def make_feed(connections, delivery, fake_redis):
    """Build a ChangeFeed over the test database with recording collaborators."""
    from app.services.change_feed import ChangeFeed
    from app.services.notifier import Notifier
    from app.services.suggestion_cache import SuggestionCache

    def _make(notifier=None, max_attempts: int = 3):
        return ChangeFeed(
            test_session_factory,
            notifier or Notifier(SuggestionCache(fake_redis)),
            connections,
            delivery=delivery,
            poll_interval=0.01,
            batch_size=50,
            max_attempts=max_attempts,
        )

    return _make


async def drain_all(feed) -> None:
    """Run the feed until no claimable events remain."""
    for _ in range(20):
        if not await feed.drain():
            return
    raise AssertionError("change feed did not settle")


@pytest.fixture
def drain():
    return drain_all


@pytest.fixture
def broken_redis():
    return BrokenRedis()
