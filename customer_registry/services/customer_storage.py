"""
Customer storage port and its two adapters.

``SqlCustomerStorage`` writes to the hosted relational store;
``JsonFileCustomerStorage`` keeps records in a local JSON document (the
pre-migration storage). Which one serves the API is chosen by the
``CUSTOMER_STORAGE`` setting.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.core.exceptions import AlreadyExistsError, TransientStoreError
from customer_registry.models.customer import Customer
from customer_registry.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate

logger = logging.getLogger(__name__)


class CustomerStorage(Protocol):
    async def list_all(self) -> list[CustomerRead]: ...

    async def get(self, customer_id: str) -> CustomerRead | None: ...

    async def exists(self, customer_id: str) -> bool: ...

    async def create(
        self,
        data: CustomerCreate,
        created_by: str | None,
        created_at: datetime | None = None,
    ) -> CustomerRead: ...

    async def update(self, customer_id: str, changes: CustomerUpdate) -> CustomerRead | None: ...

    async def delete(self, customer_id: str) -> bool: ...


def _duplicate(customer_id: str) -> AlreadyExistsError:
    return AlreadyExistsError(f"Customer {customer_id} already exists")


def _fields(data: CustomerCreate) -> dict:
    return data.model_dump(exclude={"id", "created_at"})


def _changes(changes: CustomerUpdate) -> dict:
    return changes.model_dump(exclude_unset=True)


# ── Hosted relational store ─────────────────────────────────────────
class SqlCustomerStorage:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Customer write failed: %s", exc)
            raise TransientStoreError("Could not save the customer, please try again") from exc

    async def list_all(self) -> list[CustomerRead]:
        result = await self.db.execute(select(Customer).order_by(Customer.created_at.desc()))
        return [CustomerRead.model_validate(c) for c in result.scalars().all()]

    async def _load(self, customer_id: str) -> Customer | None:
        result = await self.db.execute(select(Customer).where(Customer.id == customer_id))
        return result.scalar_one_or_none()

    async def get(self, customer_id: str) -> CustomerRead | None:
        customer = await self._load(customer_id)
        return CustomerRead.model_validate(customer) if customer else None

    async def exists(self, customer_id: str) -> bool:
        return await self._load(customer_id) is not None

    async def create(
        self,
        data: CustomerCreate,
        created_by: str | None,
        created_at: datetime | None = None,
    ) -> CustomerRead:
        customer_id = data.id or str(uuid.uuid4())
        if await self.exists(customer_id):
            raise _duplicate(customer_id)
        customer = Customer(id=customer_id, created_by=created_by, **_fields(data))
        if created_at is not None:
            customer.created_at = created_at
        self.db.add(customer)
        await self._commit()
        await self.db.refresh(customer)
        return CustomerRead.model_validate(customer)

    async def update(self, customer_id: str, changes: CustomerUpdate) -> CustomerRead | None:
        customer = await self._load(customer_id)
        if customer is None:
            return None
        for name, value in _changes(changes).items():
            setattr(customer, name, value)
        await self._commit()
        await self.db.refresh(customer)
        return CustomerRead.model_validate(customer)

    async def delete(self, customer_id: str) -> bool:
        customer = await self._load(customer_id)
        if customer is None:
            return False
        await self.db.delete(customer)
        await self._commit()
        return True


# ── Local JSON document ─────────────────────────────────────────────
class JsonFileCustomerStorage:
    """Customer records kept as a JSON array in a single local file."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def load_raw(self) -> list[dict]:
        """Return the stored records without validation ([] if the file is missing)."""
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read local customer file %s: %s", self.path, exc)
            raise TransientStoreError("Local customer storage is unreadable") from exc
        if not isinstance(data, list):
            raise TransientStoreError("Local customer storage is malformed")
        return [r for r in data if isinstance(r, dict)]

    def _write(self, records: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".customers-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(records, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def _read(self) -> list[CustomerRead]:
        return [CustomerRead.model_validate(r) for r in self.load_raw()]

    async def list_all(self) -> list[CustomerRead]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)

        def registered(c: CustomerRead) -> datetime:
            ts = c.created_at or epoch
            return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

        return sorted(self._read(), key=registered, reverse=True)

    async def get(self, customer_id: str) -> CustomerRead | None:
        return next((c for c in self._read() if c.id == customer_id), None)

    async def exists(self, customer_id: str) -> bool:
        return await self.get(customer_id) is not None

    async def create(
        self,
        data: CustomerCreate,
        created_by: str | None,
        created_at: datetime | None = None,
    ) -> CustomerRead:
        records = self._read()
        customer_id = data.id or str(uuid.uuid4())
        if any(c.id == customer_id for c in records):
            raise _duplicate(customer_id)
        now = datetime.now(timezone.utc)
        customer = CustomerRead(
            id=customer_id,
            created_by=created_by,
            created_at=created_at or now,
            updated_at=now,
            **_fields(data),
        )
        records.append(customer)
        self._write([c.model_dump(mode="json") for c in records])
        return customer

    async def update(self, customer_id: str, changes: CustomerUpdate) -> CustomerRead | None:
        records = self._read()
        for index, current in enumerate(records):
            if current.id == customer_id:
                merged = current.model_dump() | _changes(changes)
                merged["updated_at"] = datetime.now(timezone.utc)
                records[index] = CustomerRead.model_validate(merged)
                self._write([c.model_dump(mode="json") for c in records])
                return records[index]
        return None

    async def delete(self, customer_id: str) -> bool:
        records = self._read()
        remaining = [c for c in records if c.id != customer_id]
        if len(remaining) == len(records):
            return False
        self._write([c.model_dump(mode="json") for c in remaining])
        return True
