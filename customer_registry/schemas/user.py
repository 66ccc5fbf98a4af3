"""Pydantic schemas for accounts, profiles and role assignments."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

from customer_registry.models.user import ROLE_OPERATOR, VALID_ROLES


def _validate_role(v: str) -> str:
    if v not in VALID_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(VALID_ROLES)}")
    return v


class UserCreate(BaseModel):
    """Provisioning request; password and email rules are checked by the workflow."""

    email: str
    password: str
    nome: str
    role: str = ROLE_OPERATOR

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("role")
    @classmethod
    def _role(cls, v: str) -> str:
        return _validate_role(v)


class UserRead(BaseModel):
    id: str
    email: str
    nome: str | None = None
    role: str
    created_at: datetime | None = None


class UserCreated(BaseModel):
    status: str  # created | created_with_warning
    user: UserRead
    warnings: list[str] = []


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def _role(cls, v: str) -> str:
        return _validate_role(v)


class CurrentUser(BaseModel):
    id: str
    email: str
    nome: str | None
    # None when the role could not be resolved; clients must then hide admin features.
    role: str | None
    is_admin: bool
