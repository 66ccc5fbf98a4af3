"""
User directory — profile and role-assignment rows in the relational store.

Every write commits on its own; on failure the session is rolled back and the
error re-raised so the caller can apply its own partial-failure policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.models.user import ROLE_OPERATOR, Profile, UserRole


@dataclass
class DirectoryEntry:
    id: str
    email: str
    nome: str | None
    role: str
    created_at: datetime | None


class UserDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _execute(self, stmt) -> int:
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return result.rowcount

    # ── Profiles ────────────────────────────────────────────────────
    async def insert_profile(self, user_id: str, email: str, nome: str | None) -> Profile:
        profile = Profile(id=user_id, email=email, nome=nome)
        self.db.add(profile)
        await self._commit()
        return profile

    async def get_profile(self, user_id: str) -> Profile | None:
        result = await self.db.execute(select(Profile).where(Profile.id == user_id))
        return result.scalar_one_or_none()

    async def delete_profile(self, user_id: str) -> int:
        return await self._execute(delete(Profile).where(Profile.id == user_id))

    # ── Roles ───────────────────────────────────────────────────────
    async def get_role(self, user_id: str) -> str | None:
        result = await self.db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        return result.scalar_one_or_none()

    async def upsert_role(self, user_id: str, role: str) -> None:
        """Assign *role*, overwriting any existing assignment for the user."""
        if self.db.bind.dialect.name == "postgresql":
            stmt = pg_insert(UserRole).values(user_id=user_id, role=role)
        else:
            stmt = sqlite_insert(UserRole).values(user_id=user_id, role=role)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserRole.user_id],
            set_={"role": stmt.excluded.role},
        )
        await self._execute(stmt)

    async def delete_role(self, user_id: str) -> int:
        return await self._execute(delete(UserRole).where(UserRole.user_id == user_id))

    # ── Listing ─────────────────────────────────────────────────────
    async def list_users(self) -> list[DirectoryEntry]:
        """All profiles with their effective role, newest first."""
        result = await self.db.execute(
            select(Profile, UserRole.role)
            .outerjoin(UserRole, UserRole.user_id == Profile.id)
            .order_by(Profile.created_at.desc())
        )
        return [
            DirectoryEntry(
                id=profile.id,
                email=profile.email,
                nome=profile.nome,
                role=role or ROLE_OPERATOR,
                created_at=profile.created_at,
            )
            for profile, role in result.all()
        ]
