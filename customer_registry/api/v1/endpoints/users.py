"""
User management endpoints (admin only) — the administration screen.

Creation and removal run the provisioning workflows; role changes upsert the
single role assignment of a user.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from customer_registry.api.v1.deps import get_provisioner, get_user_directory, require_admin
from customer_registry.core.exceptions import NotFoundError, ValidationError
from customer_registry.models.account import Account
from customer_registry.schemas.common import DeleteResponse
from customer_registry.schemas.user import RoleUpdate, UserCreate, UserCreated, UserRead
from customer_registry.services.directory import UserDirectory
from customer_registry.services.provisioning import UserProvisioner

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[UserRead])
async def list_users(
    directory: UserDirectory = Depends(get_user_directory),
    _admin: Account = Depends(require_admin),
) -> list[UserRead]:
    """All users with their effective role, newest first."""
    return [UserRead(**vars(entry)) for entry in await directory.list_users()]


@router.post("", response_model=UserCreated, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    provisioner: UserProvisioner = Depends(get_provisioner),
    _admin: Account = Depends(require_admin),
) -> UserCreated:
    """Provision a new user. Partial failures come back as warnings."""
    result = await provisioner.create_user(body.email, body.password, body.nome, body.role)
    result.raise_for_rejection()
    return UserCreated(
        status=result.status.value,
        user=UserRead(id=result.user_id, email=result.email, nome=result.nome, role=result.role),
        warnings=result.warning_messages,
    )


@router.put("/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    directory: UserDirectory = Depends(get_user_directory),
    _admin: Account = Depends(require_admin),
) -> UserRead:
    """Set a user's role, replacing any previous assignment."""
    profile = await directory.get_profile(user_id)
    if profile is None:
        raise NotFoundError("User not found")
    await directory.upsert_role(user_id, body.role)
    logger.info("Role of %s set to %s", user_id, body.role)
    return UserRead(
        id=profile.id,
        email=profile.email,
        nome=profile.nome,
        role=body.role,
        created_at=profile.created_at,
    )


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: str,
    provisioner: UserProvisioner = Depends(get_provisioner),
    admin: Account = Depends(require_admin),
) -> DeleteResponse:
    """Remove a user's account, role and profile."""
    if user_id == admin.id:
        raise ValidationError("You cannot remove your own account")
    existed = await provisioner.remove_user(user_id)
    message = "User removed" if existed else "User was already removed"
    return DeleteResponse(success=True, message=message)
