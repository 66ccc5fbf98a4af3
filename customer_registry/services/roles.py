"""
Role resolution — the authoritative source for access decisions.

A user without a role assignment is an operator. The role is read from the
store on every call; nothing is cached between requests.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.core.exceptions import TransientStoreError
from customer_registry.models.user import ROLE_ADMIN, ROLE_OPERATOR
from customer_registry.services.directory import UserDirectory

logger = logging.getLogger(__name__)

DEFAULT_ROLE = ROLE_OPERATOR


class RoleResolver:
    def __init__(self, db: AsyncSession) -> None:
        self.directory = UserDirectory(db)

    async def effective_role(self, user_id: str) -> str:
        """Return the user's role, or ``operator`` when none is assigned.

        Raises TransientStoreError when the store cannot be reached; callers
        must then treat the role as unknown and grant least privilege.
        """
        try:
            role = await self.directory.get_role(user_id)
        except SQLAlchemyError as exc:
            logger.warning("Role lookup failed for %s: %s", user_id, exc)
            raise TransientStoreError("Could not determine user permissions") from exc
        return role or DEFAULT_ROLE

    async def is_admin(self, user_id: str) -> bool:
        return await self.effective_role(user_id) == ROLE_ADMIN
