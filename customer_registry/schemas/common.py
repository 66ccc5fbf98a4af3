"""Small response envelopes shared across endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class DeleteResponse(BaseModel):
    success: bool
    message: str


class LogoutResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str
    db: bool
    version: str


class PostalCodeAddress(BaseModel):
    cep: str
    logradouro: str = ""
    complemento: str = ""
    bairro: str = ""
    localidade: str = ""
    uf: str = ""
