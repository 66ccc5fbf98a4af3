"""
Customer CRUD + local-data migration.

All operations require an authenticated user; no per-record ownership rules.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from customer_registry.api.v1.deps import (
    get_current_user,
    get_customer_storage,
    get_hosted_storage,
    get_local_storage,
)
from customer_registry.core.exceptions import NotFoundError
from customer_registry.models.account import Account
from customer_registry.schemas.common import DeleteResponse
from customer_registry.schemas.customer import (
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    MigrationReport,
    MigrationRequest,
)
from customer_registry.services.customer_storage import (
    CustomerStorage,
    JsonFileCustomerStorage,
    SqlCustomerStorage,
)
from customer_registry.services.migration import migrate_customers, migrate_local_file

router = APIRouter(prefix="/customers", tags=["customers"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[CustomerRead])
async def list_customers(
    storage: CustomerStorage = Depends(get_customer_storage),
    _user: Account = Depends(get_current_user),
) -> list[CustomerRead]:
    """All customers, most recently registered first."""
    return await storage.list_all()


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(
    body: CustomerCreate,
    storage: CustomerStorage = Depends(get_customer_storage),
    user: Account = Depends(get_current_user),
) -> CustomerRead:
    customer = await storage.create(body, created_by=user.id)
    logger.info("Created customer %s (%s)", customer.id, customer.nome_completo)
    return customer


@router.post("/migrate", response_model=MigrationReport)
async def migrate_local_customers(
    body: MigrationRequest | None = None,
    target: SqlCustomerStorage = Depends(get_hosted_storage),
    local: JsonFileCustomerStorage = Depends(get_local_storage),
    user: Account = Depends(get_current_user),
) -> MigrationReport:
    """Copy local records into the hosted store.

    Records come from the request body, or from the local storage file when
    the body omits them (the file is removed after an error-free run).
    """
    if body is not None and body.records is not None:
        return await migrate_customers(body.records, target, created_by=user.id)
    return await migrate_local_file(local, target, created_by=user.id)


@router.get("/{customer_id}", response_model=CustomerRead)
async def get_customer(
    customer_id: str,
    storage: CustomerStorage = Depends(get_customer_storage),
    _user: Account = Depends(get_current_user),
) -> CustomerRead:
    customer = await storage.get(customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


@router.put("/{customer_id}", response_model=CustomerRead)
async def update_customer(
    customer_id: str,
    body: CustomerUpdate,
    storage: CustomerStorage = Depends(get_customer_storage),
    _user: Account = Depends(get_current_user),
) -> CustomerRead:
    """Partial update — only the fields sent are changed."""
    customer = await storage.update(customer_id, body)
    if customer is None:
        raise NotFoundError("Customer not found")
    logger.info("Updated customer %s", customer_id)
    return customer


@router.delete("/{customer_id}", response_model=DeleteResponse)
async def delete_customer(
    customer_id: str,
    storage: CustomerStorage = Depends(get_customer_storage),
    _user: Account = Depends(get_current_user),
) -> DeleteResponse:
    if not await storage.delete(customer_id):
        raise NotFoundError("Customer not found")
    logger.info("Deleted customer %s", customer_id)
    return DeleteResponse(success=True, message=f"Customer {customer_id} removed")
