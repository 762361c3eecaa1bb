import os

# Configure before any application module reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOGIN_MAX_FAILURES"] = "3"

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import models  # noqa: E402, F401
from apps.api.deps import get_db, get_redis_client  # noqa: E402
from apps.api.main import app  # noqa: E402
from apps.identity.session import UserSession  # noqa: E402
from core.db import Base  # noqa: E402
from core.security import hash_password  # noqa: E402
from models.pair import Pair  # noqa: E402
from models.user import User  # noqa: E402

PASSWORD = "secret1"


class FakeRedis:
    """In-memory stand-in for the few Redis commands the app issues."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, "0")) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return key in self.store

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def client(session_factory, fake_redis):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = override_get_redis
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create an account row directly and return a session for it."""

    async def _make(name: str, email: str) -> UserSession:
        user = User(email=email, display_name=name, password_hash=hash_password(PASSWORD))
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return UserSession(uid=user.id, email=email, display_name=name, is_admin=False, token="unused")

    return _make


@pytest.fixture
def make_pairs(db):
    async def _make(*items: tuple[str, str]) -> list[Pair]:
        pairs = [Pair(number=number, name=name) for number, name in items]
        db.add_all(pairs)
        await db.commit()
        for pair in pairs:
            await db.refresh(pair)
        return pairs

    return _make


@pytest.fixture
def register(client):
    """Register through the API and return the response body."""

    async def _register(name: str, email: str, password: str = PASSWORD) -> dict:
        response = await client.post("/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()

    return _register


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer
