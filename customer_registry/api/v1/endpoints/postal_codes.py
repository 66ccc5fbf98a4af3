"""Postal-code lookup used to auto-fill customer addresses."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from customer_registry.api.v1.deps import get_current_user, get_postal_code_client
from customer_registry.models.account import Account
from customer_registry.schemas.common import PostalCodeAddress
from customer_registry.services.postal_code import PostalCodeClient

router = APIRouter(prefix="/postal-codes", tags=["postal-codes"])


@router.get("/{cep}", response_model=PostalCodeAddress)
async def lookup_postal_code(
    cep: str,
    client: PostalCodeClient = Depends(get_postal_code_client),
    _user: Account = Depends(get_current_user),
) -> PostalCodeAddress:
    return await client.lookup(cep)
