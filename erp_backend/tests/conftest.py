"""
Centralized Test Configuration.

Every test gets a fresh in-memory SQLite database and an in-memory Redis
stand-in; the base roles are seeded on demand through the ``roles`` fixture.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from erp_backend.app.main import app
from erp_backend.app.db.session import get_db, Base
from erp_backend.app.db.seed import seed_roles
from erp_backend.app.core.jwt import create_access_token
from erp_backend.app.models.user import User
import erp_backend.app.core.redis_client as redis_client_module
import erp_backend.app.core.security as security_module

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class MockRedis:
    """In-memory stand-in for the few Redis commands the app uses."""

    def __init__(self):
        self.store = {}
        self.ttl = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, seconds, value):
        self.store[key] = value
        self.ttl[key] = seconds
        return True

    async def delete(self, key):
        self.ttl.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}
        self.ttl = {}


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Minimum bcrypt cost keeps the suite fast."""
    monkeypatch.setattr(security_module, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    redis = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", redis)
    return redis


@pytest.fixture
async def engine():
    """Fresh schema per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Session for fixture data and direct service calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def roles(db_session):
    """Base roles (admin, usuario, contabilidad, almacen) keyed by name."""
    return await seed_roles(db_session)


@pytest.fixture
def create_user(db_session, roles):
    """Factory: persist a user holding one of the base roles."""
    async def _create(role_name="usuario", email=None, password="secret123", name="Test User", is_active=True):
        user = User(
            email=email or f"{role_name}@erp.com",
            name=name,
            hashed_password=security_module.get_password_hash(password),
            role_id=roles[role_name].id,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create


def token_for(user: User, role_name: str) -> str:
    return create_access_token({"sub": user.email, "user_id": user.id, "role": role_name})


def auth_headers(user: User, role_name: str) -> dict:
    return {"Authorization": f"Bearer {token_for(user, role_name)}"}


@pytest.fixture
async def admin_user(create_user):
    return await create_user("admin", email="admin@erp.com", name="Administrator")


@pytest.fixture
async def accountant_user(create_user):
    return await create_user("contabilidad", email="ana@erp.com", name="Ana Contable")


@pytest.fixture
async def warehouse_user(create_user):
    return await create_user("almacen", email="luis@erp.com", name="Luis Almacen")


@pytest.fixture
async def basic_user(create_user):
    return await create_user("usuario", email="eva@erp.com", name="Eva Usuaria")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user, "admin")


@pytest.fixture
def accountant_headers(accountant_user):
    return auth_headers(accountant_user, "contabilidad")


@pytest.fixture
def warehouse_headers(warehouse_user):
    return auth_headers(warehouse_user, "almacen")


@pytest.fixture
def basic_headers(basic_user):
    return auth_headers(basic_user, "usuario")


@pytest.fixture
def accountant(accountant_user):
    """Identity dict as produced by get_current_user, for direct service calls."""
    return {
        "user_id": accountant_user.id,
        "sub": accountant_user.email,
        "name": accountant_user.name,
        "role": "contabilidad",
        "permissions": ["dashboard:read", "contabilidad:read", "contabilidad:write"],
    }


@pytest.fixture
def warehouse_keeper(warehouse_user):
    return {
        "user_id": warehouse_user.id,
        "sub": warehouse_user.email,
        "name": warehouse_user.name,
        "role": "almacen",
        "permissions": ["dashboard:read", "almacen:read", "almacen:write"],
    }


@pytest.fixture
def headers_for():
    """Factory: bearer headers for any user and role name."""
    return auth_headers
