import os

# Settings are read at import time; point them at a throwaway database first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from casehub.database import Base, get_db
from casehub.main import app
from casehub.models.user import User
from casehub.services import audit_service
from casehub.services.auth_service import create_access_token, hash_password

TEST_PASSWORD = "CaseHub123!"


@pytest.fixture
async def session_factory(monkeypatch):
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    monkeypatch.setattr(audit_service, "AsyncSessionLocal", factory)

    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def _make_user(factory, email: str, role: str) -> User:
    async with factory() as session:
        user = User(
            email=email,
            password_hash=hash_password(TEST_PASSWORD),
            first_name=role.capitalize(),
            last_name="User",
            role=role,
        )
        session.add(user)
        await session.commit()
        return user


def _headers(user: User) -> dict:
    token = create_access_token(user_id=str(user.id), role=user.role, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(session_factory):
    return await _make_user(session_factory, "admin@casehub.org", "admin")


@pytest.fixture
async def coordinator_user(session_factory):
    return await _make_user(session_factory, "coordinator@casehub.org", "coordinator")


@pytest.fixture
async def staff_user(session_factory):
    return await _make_user(session_factory, "staff@casehub.org", "staff")


@pytest.fixture
def auth_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def coordinator_headers(coordinator_user):
    return _headers(coordinator_user)


@pytest.fixture
def staff_headers(staff_user):
    return _headers(staff_user)


@pytest.fixture
def user_password():
    return TEST_PASSWORD
