"""Tests for the local-to-hosted customer migration and the JSON storage adapter."""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.api.v1.deps import get_local_storage
from customer_registry.main import app
from customer_registry.schemas.customer import CustomerCreate, CustomerUpdate
from customer_registry.services.customer_storage import JsonFileCustomerStorage, SqlCustomerStorage
from customer_registry.services.migration import migrate_customers, migrate_local_file


def _record(cid: str, name: str = "Joana Prado", created_at: str = "2024-05-01T10:00:00+00:00") -> dict:
    return {
        "id": cid,
        "nome_completo": name,
        "cep": "20040-020",
        "endereco": {"rua": "Rua da Assembleia", "numero": "10", "bairro": "Centro"},
        "telefone": "(21) 3333-4444",
        "cidade": "Rio de Janeiro",
        "uf": "RJ",
        "created_at": created_at,
    }


@pytest.mark.asyncio
async def test_migrate_customers_counts_and_errors(db_session: AsyncSession):
    target = SqlCustomerStorage(db_session)
    bad = _record("c-3", name="X")

    report = await migrate_customers([_record("c-1"), _record("c-2"), bad], target, created_by=None)

    assert report.migrated == 2
    assert report.success is False
    assert len(report.errors) == 1
    assert "X" in report.errors[0]
    assert await target.exists("c-1")
    assert not await target.exists("c-3")


@pytest.mark.asyncio
async def test_migration_is_idempotent(db_session: AsyncSession):
    target = SqlCustomerStorage(db_session)
    records = [_record("c-1"), _record("c-2")]

    first = await migrate_customers(records, target, created_by=None)
    second = await migrate_customers(records, target, created_by=None)

    assert (first.migrated, first.skipped) == (2, 0)
    assert (second.migrated, second.skipped) == (0, 2)
    assert second.success is True
    assert len(await target.list_all()) == 2


@pytest.mark.asyncio
async def test_migration_keeps_registration_time(db_session: AsyncSession):
    target = SqlCustomerStorage(db_session)
    await migrate_customers(
        [
            _record("old", name="Antiga", created_at="2023-01-01T00:00:00+00:00"),
            _record("new", name="Nova", created_at="2024-01-01T00:00:00+00:00"),
        ],
        target,
        created_by=None,
    )
    assert [c.id for c in await target.list_all()] == ["new", "old"]


@pytest.mark.asyncio
async def test_migrate_local_file_clears_source_on_success(db_session: AsyncSession, tmp_path):
    path = tmp_path / "customers.json"
    path.write_text(json.dumps([_record("c-1")]), encoding="utf-8")
    source = JsonFileCustomerStorage(path)

    report = await migrate_local_file(source, SqlCustomerStorage(db_session), created_by=None)

    assert report.success and report.migrated == 1
    assert not path.exists()


@pytest.mark.asyncio
async def test_migrate_local_file_keeps_source_on_error(db_session: AsyncSession, tmp_path):
    path = tmp_path / "customers.json"
    path.write_text(json.dumps([_record("c-1"), {"id": "broken"}]), encoding="utf-8")

    report = await migrate_local_file(
        JsonFileCustomerStorage(path), SqlCustomerStorage(db_session), created_by=None
    )

    assert report.migrated == 1
    assert report.success is False
    assert path.exists()


@pytest.mark.asyncio
async def test_migrate_endpoint_with_body(async_client: AsyncClient, operator_user, operator_headers):
    resp = await async_client.post(
        "/api/v1/customers/migrate",
        json={"records": [_record("c-1"), _record("c-2")]},
        headers=operator_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "migrated": 2, "skipped": 0, "errors": []}

    listed = await async_client.get("/api/v1/customers", headers=operator_headers)
    assert {c["created_by"] for c in listed.json()} == {operator_user.id}


@pytest.mark.asyncio
async def test_migrate_endpoint_from_local_file(async_client: AsyncClient, operator_headers, tmp_path):
    path = tmp_path / "customers.json"
    path.write_text(json.dumps([_record("c-9")]), encoding="utf-8")
    app.dependency_overrides[get_local_storage] = lambda: JsonFileCustomerStorage(path)

    resp = await async_client.post("/api/v1/customers/migrate", headers=operator_headers)
    assert resp.status_code == 200
    assert resp.json()["migrated"] == 1
    assert not path.exists()

    # Nothing left to migrate
    again = await async_client.post("/api/v1/customers/migrate", headers=operator_headers)
    assert again.json() == {"success": True, "migrated": 0, "skipped": 0, "errors": []}


# ── JSON storage adapter ────────────────────────────────────────────
def _create(name: str) -> CustomerCreate:
    data = _record("ignored", name=name)
    del data["id"], data["created_at"]
    return CustomerCreate.model_validate(data)


@pytest.mark.asyncio
async def test_json_storage_crud(tmp_path):
    storage = JsonFileCustomerStorage(tmp_path / "nested" / "customers.json")
    assert await storage.list_all() == []

    first = await storage.create(_create("Ana Souza"), created_by="u1")
    second = await storage.create(_create("Bruno Lima"), created_by="u1")
    assert [c.id for c in await storage.list_all()] == [second.id, first.id]

    updated = await storage.update(first.id, CustomerUpdate(cidade="Niterói"))
    assert updated.cidade == "Niterói"
    assert updated.nome_completo == "Ana Souza"
    assert (await storage.get(first.id)).cidade == "Niterói"

    assert await storage.delete(first.id) is True
    assert await storage.delete(first.id) is False
    assert await storage.update(first.id, CustomerUpdate(cidade="X")) is None


@pytest.mark.asyncio
async def test_json_storage_survives_reload(tmp_path):
    path = tmp_path / "customers.json"
    created = await JsonFileCustomerStorage(path).create(_create("Ana Souza"), created_by=None)
    reloaded = JsonFileCustomerStorage(path)
    assert (await reloaded.get(created.id)).nome_completo == "Ana Souza"
