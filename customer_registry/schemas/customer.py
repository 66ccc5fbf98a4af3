"""Pydantic schemas for customer records and local-data migration."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, model_validator

_NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")
_CEP_RE = re.compile(r"^\d{5}-?\d{3}$")
_PHONE_RE = re.compile(r"^\(\d{2}\)\s\d{4,5}-\d{4}$")
_UF_RE = re.compile(r"^[A-Z]{2}$")


# ── Field rules (shared by create / update / import) ───────────────
def _check_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Name must be at least 2 characters long")
    if not _NAME_RE.match(v):
        raise ValueError("Name must contain only letters")
    return v


def _check_cep(v: str) -> str:
    v = v.strip()
    if not _CEP_RE.match(v):
        raise ValueError("CEP must have 8 digits (e.g. 12345-678)")
    return v


def _check_phone(v: str) -> str:
    v = v.strip()
    if not _PHONE_RE.match(v):
        raise ValueError("Phone must use the format (11) 99999-9999")
    return v


def _check_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Field is required")
    return v


def _check_uf(v: str) -> str:
    v = v.strip()
    if not _UF_RE.match(v):
        raise ValueError("UF must be two uppercase letters")
    return v


def _blank_to_none(v: object) -> object:
    if isinstance(v, str) and not v.strip():
        return None
    return v


FullName = Annotated[str, AfterValidator(_check_name)]
Cep = Annotated[str, AfterValidator(_check_cep)]
Phone = Annotated[str, AfterValidator(_check_phone)]
RequiredText = Annotated[str, AfterValidator(_check_required)]
StateCode = Annotated[str, AfterValidator(_check_uf)]
# Empty strings mean "absent" for optional fields.
OptionalPhone = Annotated[Phone | None, BeforeValidator(_blank_to_none)]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]


# ── Address ─────────────────────────────────────────────────────────
class Endereco(BaseModel):
    rua: RequiredText
    numero: RequiredText
    complemento: OptionalText = None
    bairro: RequiredText


# ── Customer ────────────────────────────────────────────────────────
class CustomerCreate(BaseModel):
    id: str | None = Field(default=None, max_length=36)
    nome_completo: FullName
    cep: Cep
    endereco: Endereco
    telefone: Phone
    whatsapp: OptionalPhone = None
    cidade: RequiredText
    uf: StateCode
    observacoes: OptionalText = None


_NOT_NULLABLE = ("nome_completo", "cep", "endereco", "telefone", "cidade", "uf")


class CustomerUpdate(BaseModel):
    """Partial update: only the fields sent are validated and written."""

    nome_completo: FullName | None = None
    cep: Cep | None = None
    endereco: Endereco | None = None
    telefone: Phone | None = None
    whatsapp: OptionalPhone = None
    cidade: RequiredText | None = None
    uf: StateCode | None = None
    observacoes: OptionalText = None

    @model_validator(mode="after")
    def _reject_cleared_required(self) -> "CustomerUpdate":
        for name in _NOT_NULLABLE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self


class CustomerImport(CustomerCreate):
    """A record carried over from local storage; keeps its id and timestamp."""

    id: str = Field(min_length=1, max_length=36)
    created_at: datetime | None = None


class CustomerRead(BaseModel):
    id: str
    nome_completo: str
    cep: str
    endereco: Endereco
    telefone: str
    whatsapp: str | None = None
    cidade: str
    uf: str
    observacoes: str | None = None
    created_at: datetime | None = None
    created_by: str | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


# ── Migration ───────────────────────────────────────────────────────
class MigrationRequest(BaseModel):
    # Omit to migrate from the configured local storage file.
    records: list[dict] | None = None


class MigrationReport(BaseModel):
    success: bool
    migrated: int
    skipped: int = 0
    errors: list[str] = []
