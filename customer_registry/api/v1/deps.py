"""
FastAPI dependencies — auth guards, database session and service wiring.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.core.config import settings
from customer_registry.core.exceptions import AuthorizationError
from customer_registry.core.security import decode_access_token
from customer_registry.db.session import async_session_factory
from customer_registry.models.account import Account
from customer_registry.services.customer_storage import (
    CustomerStorage,
    JsonFileCustomerStorage,
    SqlCustomerStorage,
)
from customer_registry.services.directory import UserDirectory
from customer_registry.services.identity import IdentityStore, SqlIdentityStore
from customer_registry.services.postal_code import PostalCodeClient
from customer_registry.services.provisioning import UserProvisioner
from customer_registry.services.roles import RoleResolver

# auto_error=False so the cookie can be checked when the header is missing
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Services ────────────────────────────────────────────────────────
def get_identity_store(db: AsyncSession = Depends(get_db)) -> IdentityStore:
    return SqlIdentityStore(db)


def get_user_directory(db: AsyncSession = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)


def get_role_resolver(db: AsyncSession = Depends(get_db)) -> RoleResolver:
    return RoleResolver(db)


def get_provisioner(
    identity: IdentityStore = Depends(get_identity_store),
    directory: UserDirectory = Depends(get_user_directory),
) -> UserProvisioner:
    return UserProvisioner(identity, directory)


def get_local_storage() -> JsonFileCustomerStorage:
    return JsonFileCustomerStorage(settings.LOCAL_STORAGE_PATH)


def get_hosted_storage(db: AsyncSession = Depends(get_db)) -> SqlCustomerStorage:
    return SqlCustomerStorage(db)


def get_customer_storage(db: AsyncSession = Depends(get_db)) -> CustomerStorage:
    """The storage adapter selected by ``CUSTOMER_STORAGE``."""
    if settings.CUSTOMER_STORAGE == "file":
        return get_local_storage()
    return SqlCustomerStorage(db)


def get_postal_code_client() -> PostalCodeClient:
    return PostalCodeClient()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # HttpOnly cookie
    identity: IdentityStore = Depends(get_identity_store),
) -> Account:
    """Decode JWT from Header OR Cookie, look up the account."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        # Cookie values are written as "Bearer <token>"
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise credentials_exc

    account = await identity.get_account(user_id)
    if account is None:
        raise credentials_exc
    return account


async def require_admin(
    current_user: Account = Depends(get_current_user),
    roles: RoleResolver = Depends(get_role_resolver),
) -> Account:
    """Only allow the admin role to proceed; the role is re-read on every request."""
    if not await roles.is_admin(current_user.id):
        raise AuthorizationError()
    return current_user
