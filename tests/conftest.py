"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-fleet.db")
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("FLEET_TZ", "UTC")
os.environ.pop("REDIS_URL", None)

import fnmatch

import httpx
import pytest
from redis.exceptions import RedisError

from fleet import cache as cache_module
from fleet.api import create_app
from fleet.auth import create_access_token, hash_password
from fleet.database import create_async_db_engine, create_session_factory, create_tables
from fleet.models import Role, User, Vehicle


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_async_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
    """Session for arranging test data"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(engine, session_factory):
    """Application wired to the test database"""
    app = create_app()
    app.state.db_engine = engine
    app.state.session_factory = session_factory
    return app


@pytest.fixture
async def client(app):
    """HTTP client talking to the app in-process"""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _make_user(db_session, email, role, password="password123"):
    user = User(email=email, name=email.split("@")[0], password=hash_password(password), role=role)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def admin_user(db_session):
    return await _make_user(db_session, "admin@example.com", Role.ADMIN)


@pytest.fixture
async def regular_user(db_session):
    return await _make_user(db_session, "user@example.com", Role.USER)


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user)}"}


@pytest.fixture
def user_headers(regular_user):
    return {"Authorization": f"Bearer {create_access_token(regular_user)}"}


@pytest.fixture
async def vehicle(db_session):
    vehicle = Vehicle(
        plate_number="B1234ABC",
        brand="Toyota",
        model="Avanza",
        year=2020,
        color="White",
    )
    db_session.add(vehicle)
    await db_session.commit()
    return vehicle


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio the cache uses"""

    def __init__(self, fail_writes=False, fail_deletes=False):
        self.store = {}
        self.fail_writes = fail_writes
        self.fail_deletes = fail_deletes

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, nx=False, ex=None):
        if nx:
            if key in self.store:
                return None
        elif self.fail_writes:
            raise RedisError("write failed")
        self.store[key] = value
        return True

    async def delete(self, *keys):
        if self.fail_deletes:
            raise RedisError("delete failed")
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self):
        pass


@pytest.fixture
def fake_redis(monkeypatch):
    """Cache enabled against an in-memory Redis"""
    redis = FakeRedis()
    monkeypatch.setattr(cache_module, "_redis_client", redis)
    return redis
