"""Service test fixtures: async DB, FastAPI test client and seeded accounts.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test session factory
    - app.state.session_factory points at the same factory (health check)
    - No Redis client on app.state, so rate limiting is skipped

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
    - Accounts are inserted directly; tokens are minted with create_access_token
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import atreo.models  # noqa: F401
from atreo.api.deps import get_db
from atreo.app import create_app
from atreo.models.base import Base
from atreo.models.user import User
from atreo.security import create_access_token, hash_password
from atreo.services.admin_service import AdminService
from atreo.services.permission_service import PermissionService

from tests.services.helpers import PASSWORD


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    app = create_app()
    app.state.session_factory = test_session_factory

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# -- Accounts -------------------------------------------------------------------


@pytest.fixture
def make_user(test_db):
    """Factory inserting a user (plus Admin record when ``admin_role`` is given)."""

    async def _make(email, role="user", admin_role=None, password=PASSWORD, **fields):
        user = User(
            email=email,
            name=fields.pop("name", email.split("@")[0].title()),
            password_hash=hash_password(password),
            role=role,
            email_verified=fields.pop("email_verified", True),
            **fields,
        )
        test_db.add(user)
        await test_db.flush()
        if admin_role:
            AdminService(test_db).build_admin(user, role=admin_role)
        await test_db.commit()
        await test_db.refresh(user)
        return user

    return _make


@pytest.fixture
def auth():
    """Build Authorization headers for a user."""

    def _headers(user):
        token = create_access_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def grant(test_db, super_admin):
    """Store a module map for a user, as a super-admin would."""

    async def _grant(user, modules):
        return await PermissionService(test_db).set_permissions(user.id, modules, super_admin.id)

    return _grant


@pytest.fixture
async def super_admin(make_user):
    return await make_user("root@example.com", role="admin", admin_role="super-admin")


@pytest.fixture
async def admin(make_user):
    return await make_user("admin@example.com", role="admin", admin_role="admin")


@pytest.fixture
async def member(make_user):
    return await make_user("member@example.com")


@pytest.fixture
async def accountant(make_user):
    return await make_user("books@example.com", role="accountant")
