"""
Shared test fixtures for the Customer Registry test suite.

Async throughout (aiosqlite + AsyncSession).
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["CUSTOMER_STORAGE"] = "database"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from customer_registry.api.v1.deps import get_db
from customer_registry.api.v1.endpoints.auth import limiter
from customer_registry.core.security import create_access_token
from customer_registry.db.base import Base
from customer_registry.main import app
from customer_registry.models.account import Account
from customer_registry.models.user import ROLE_ADMIN, ROLE_OPERATOR
from customer_registry.services.directory import UserDirectory
from customer_registry.services.identity import SqlIdentityStore

# Separate test engine shared by the app (through get_db) and the tests
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Login attempts in tests would otherwise trip the per-IP limit
limiter.enabled = False


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture(autouse=True)
def _reset_overrides():
    """Drop per-test dependency overrides, keeping the database one."""
    yield
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct setup and queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Accounts ────────────────────────────────────────────────────────
async def make_user(
    session: AsyncSession,
    email: str,
    role: str | None,
    nome: str = "Test User",
    password: str = "secret123",
) -> Account:
    """Create account + profile (+ role when given) directly in the store."""
    account = await SqlIdentityStore(session).create_account(email, password, {"nome": nome})
    directory = UserDirectory(session)
    await directory.insert_profile(account.id, email, nome)
    if role is not None:
        await directory.upsert_role(account.id, role)
    return account


def auth_headers(account: Account) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(account.id)}"}


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> Account:
    return await make_user(db_session, "admin@example.com", ROLE_ADMIN, nome="Admin")


@pytest.fixture
async def operator_user(db_session: AsyncSession) -> Account:
    return await make_user(db_session, "operator@example.com", ROLE_OPERATOR, nome="Operador")


@pytest.fixture
def admin_headers(admin_user: Account) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def operator_headers(operator_user: Account) -> dict[str, str]:
    return auth_headers(operator_user)
