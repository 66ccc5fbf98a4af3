"""
Identity store — owns credentials and account records.

The rest of the application only talks to the ``IdentityStore`` protocol;
``SqlIdentityStore`` is the adapter that keeps accounts in the relational
database with bcrypt-hashed passwords.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.core.config import settings
from customer_registry.core.exceptions import (
    AlreadyExistsError,
    IdentityStoreError,
    WeakPasswordError,
)
from customer_registry.core.security import get_password_hash, verify_password
from customer_registry.models.account import Account

logger = logging.getLogger(__name__)


class IdentityStore(Protocol):
    async def create_account(self, email: str, password: str, metadata: dict) -> Account:
        """Create an account or raise AlreadyExistsError / WeakPasswordError / IdentityStoreError."""
        ...

    async def delete_account(self, account_id: str) -> bool:
        """Delete an account. Returns False if it did not exist."""
        ...

    async def authenticate(self, email: str, password: str) -> Account | None: ...

    async def get_account(self, account_id: str) -> Account | None: ...

    async def find_by_email(self, email: str) -> Account | None: ...


class SqlIdentityStore:
    def __init__(self, db: AsyncSession, min_password_length: int | None = None) -> None:
        self.db = db
        self.min_password_length = min_password_length or settings.MIN_PASSWORD_LENGTH

    async def create_account(self, email: str, password: str, metadata: dict) -> Account:
        email = email.strip().lower()
        if len(password) < self.min_password_length:
            raise WeakPasswordError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        try:
            existing = await self.find_by_email(email)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Account lookup failed for %s: %s", email, exc)
            raise IdentityStoreError("Could not create the account") from exc
        if existing is not None:
            raise AlreadyExistsError()

        account = Account(
            email=email,
            hashed_password=get_password_hash(password),
            user_metadata=dict(metadata),
        )
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race against another registration of the same email
            await self.db.rollback()
            raise AlreadyExistsError() from None
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Account creation failed for %s: %s", email, exc)
            raise IdentityStoreError("Could not create the account") from exc
        # Column defaults are client-side and expire_on_commit is off, so the
        # committed instance is complete without a refresh.
        return account

    async def delete_account(self, account_id: str) -> bool:
        try:
            result = await self.db.execute(delete(Account).where(Account.id == account_id))
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Account deletion failed for %s: %s", account_id, exc)
            raise IdentityStoreError("Could not delete the account") from exc
        return result.rowcount > 0

    async def authenticate(self, email: str, password: str) -> Account | None:
        account = await self.find_by_email(email)
        if account is None or not verify_password(password, account.hashed_password):
            return None
        return account

    async def get_account(self, account_id: str) -> Account | None:
        result = await self.db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Account | None:
        result = await self.db.execute(
            select(Account).where(Account.email == email.strip().lower())
        )
        return result.scalar_one_or_none()
