"""
One-shot copy of locally stored customers into the hosted store.

The run is explicit and idempotent: records already present in the target
(same id) are skipped, so repeating a migration never duplicates data.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError as SchemaError

from customer_registry.core.exceptions import AppError
from customer_registry.schemas.customer import CustomerImport, MigrationReport
from customer_registry.services.customer_storage import (
    CustomerStorage,
    JsonFileCustomerStorage,
)

logger = logging.getLogger(__name__)


def _label(record: dict) -> str:
    return str(record.get("nome_completo") or record.get("id") or "<unnamed>")


def _summarise(exc: SchemaError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


async def migrate_customers(
    records: Iterable[dict],
    target: CustomerStorage,
    created_by: str | None,
) -> MigrationReport:
    """Copy *records* into *target*, collecting one error per failed record."""
    migrated = 0
    skipped = 0
    errors: list[str] = []

    for record in records:
        try:
            customer = CustomerImport.model_validate(record)
        except SchemaError as exc:
            errors.append(f"Could not migrate customer {_label(record)}: {_summarise(exc)}")
            continue

        if await target.exists(customer.id):
            skipped += 1
            continue

        try:
            await target.create(customer, created_by=created_by, created_at=customer.created_at)
        except AppError as exc:
            errors.append(f"Could not migrate customer {customer.nome_completo}: {exc.message}")
        else:
            migrated += 1

    if errors:
        logger.error("Customer migration finished with %d error(s): %s", len(errors), errors)
    logger.info("Customer migration: %d migrated, %d skipped", migrated, skipped)
    return MigrationReport(success=not errors, migrated=migrated, skipped=skipped, errors=errors)


async def migrate_local_file(
    source: JsonFileCustomerStorage,
    target: CustomerStorage,
    created_by: str | None,
) -> MigrationReport:
    """Migrate the local file and remove it once every record made it across."""
    report = await migrate_customers(source.load_raw(), target, created_by)
    if report.success:
        source.clear()
    return report
