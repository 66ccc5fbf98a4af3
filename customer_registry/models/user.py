"""
Profile & role-assignment models — display identity and authorization.

Both reference ``accounts.id`` with ON DELETE CASCADE, so removing an account
removes its auxiliary rows at the database level as well.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from customer_registry.db.base import Base

ROLE_ADMIN = "admin"
ROLE_OPERATOR = "operator"
VALID_ROLES = (ROLE_ADMIN, ROLE_OPERATOR)


class Profile(Base):
    __tablename__ = "profiles"

    id: str = Column(  # type: ignore[assignment]
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    email: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    nome: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: str = Column(  # type: ignore[assignment]
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=ROLE_OPERATOR,
        server_default=ROLE_OPERATOR,
    )  # admin | operator
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
