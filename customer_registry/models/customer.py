"""
Customer model — the registered customer records.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text

from customer_registry.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id: str = Column(  # type: ignore[assignment]
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    nome_completo: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    cep: str = Column(String(9), nullable=False)  # type: ignore[assignment]
    endereco: dict = Column(JSON, nullable=False)  # type: ignore[assignment]
    # {rua, numero, complemento?, bairro}
    telefone: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    whatsapp: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    cidade: str = Column(String(120), nullable=False)  # type: ignore[assignment]
    uf: str = Column(String(2), nullable=False)  # type: ignore[assignment]
    observacoes: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    created_by: str | None = Column(  # type: ignore[assignment]
        String(36),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
