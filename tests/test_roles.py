"""Tests for role resolution and admin gating."""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers, make_user
from customer_registry.api.v1.deps import get_role_resolver, get_user_directory
from customer_registry.core.exceptions import TransientStoreError
from customer_registry.main import app
from customer_registry.services.directory import UserDirectory
from customer_registry.services.roles import RoleResolver


class UnreachableResolver(RoleResolver):
    def __init__(self) -> None:
        pass

    async def effective_role(self, user_id: str) -> str:
        raise TransientStoreError("Could not determine user permissions")


class UnreachableDirectory(UserDirectory):
    def __init__(self) -> None:
        pass

    async def get_profile(self, user_id: str):
        raise OperationalError("SELECT", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_missing_role_resolves_to_operator(db_session: AsyncSession):
    account = await make_user(db_session, "legacy@example.com", role=None)
    resolver = RoleResolver(db_session)
    assert await resolver.effective_role(account.id) == "operator"
    assert await resolver.is_admin(account.id) is False


@pytest.mark.asyncio
async def test_unknown_user_resolves_to_operator(db_session: AsyncSession):
    assert await RoleResolver(db_session).effective_role("no-such-user") == "operator"


@pytest.mark.asyncio
async def test_role_upsert_overwrites(db_session: AsyncSession):
    account = await make_user(db_session, "u@example.com", role="operator")
    directory = UserDirectory(db_session)
    await directory.upsert_role(account.id, "admin")
    await directory.upsert_role(account.id, "admin")
    assert await directory.get_role(account.id) == "admin"
    assert await RoleResolver(db_session).is_admin(account.id)


@pytest.mark.asyncio
async def test_store_failure_surfaces_transient_error(db_session: AsyncSession):
    resolver = RoleResolver(db_session)

    async def broken_get_role(user_id):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    resolver.directory.get_role = broken_get_role
    with pytest.raises(TransientStoreError):
        await resolver.effective_role("anyone")


@pytest.mark.asyncio
async def test_me_reports_role(async_client: AsyncClient, admin_headers):
    resp = await async_client.get("/api/v1/auth/me", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["email"] == "admin@example.com"
    assert data["nome"] == "Admin"
    assert data["role"] == "admin"
    assert data["is_admin"] is True


@pytest.mark.asyncio
async def test_me_defaults_to_least_privilege_when_role_unknown(
    async_client: AsyncClient, admin_headers
):
    app.dependency_overrides[get_role_resolver] = UnreachableResolver
    resp = await async_client.get("/api/v1/auth/me", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] is None
    assert data["is_admin"] is False


@pytest.mark.asyncio
async def test_admin_endpoint_unavailable_when_role_unknown(
    async_client: AsyncClient, admin_headers
):
    app.dependency_overrides[get_role_resolver] = UnreachableResolver
    resp = await async_client.get("/api/v1/users", headers=admin_headers)
    assert resp.status_code == 503
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_me_tolerates_missing_profile(async_client: AsyncClient, db_session: AsyncSession):
    account = await make_user(db_session, "noprofile@example.com", role=None, nome="Nina")
    await UserDirectory(db_session).delete_profile(account.id)

    resp = await async_client.get("/api/v1/auth/me", headers=auth_headers(account))
    assert resp.status_code == 200
    data = resp.json()
    assert data["nome"] == "Nina"  # from account metadata
    assert data["role"] == "operator"


@pytest.mark.asyncio
async def test_role_change_takes_effect_immediately(
    async_client: AsyncClient, db_session: AsyncSession, admin_headers
):
    """Admin access follows the stored role on every request."""
    account = await make_user(db_session, "promoted@example.com", role="operator")
    headers = auth_headers(account)

    assert (await async_client.get("/api/v1/users", headers=headers)).status_code == 403

    resp = await async_client.put(
        f"/api/v1/users/{account.id}/role", json={"role": "admin"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert (await async_client.get("/api/v1/users", headers=headers)).status_code == 200

    await async_client.put(
        f"/api/v1/users/{account.id}/role", json={"role": "operator"}, headers=admin_headers
    )
    assert (await async_client.get("/api/v1/users", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_me_answers_when_store_is_unreachable(async_client: AsyncClient, admin_headers):
    """Role and profile both unavailable: least privilege, name from the account."""
    app.dependency_overrides[get_role_resolver] = UnreachableResolver
    app.dependency_overrides[get_user_directory] = UnreachableDirectory
    resp = await async_client.get("/api/v1/auth/me", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] is None
    assert data["is_admin"] is False
    assert data["nome"] == "Admin"
