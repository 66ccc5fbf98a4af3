"""
Postal-code (CEP) lookup against the ViaCEP web service.
"""

from __future__ import annotations

import logging
import re

import httpx

from customer_registry.core.config import settings
from customer_registry.core.exceptions import (
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from customer_registry.schemas.common import PostalCodeAddress

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def clean_postal_code(cep: str) -> str:
    """Strip formatting; raise ValidationError unless exactly 8 digits remain."""
    digits = _NON_DIGITS.sub("", cep or "")
    if len(digits) != 8:
        raise ValidationError("CEP must have 8 digits")
    return digits


class PostalCodeClient:
    """Read-only lookup. ``transport`` lets tests plug in an httpx.MockTransport."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.POSTAL_CODE_API_URL).rstrip("/")
        self.timeout = timeout or settings.POSTAL_CODE_TIMEOUT_SECONDS
        self.transport = transport

    async def lookup(self, cep: str) -> PostalCodeAddress:
        digits = clean_postal_code(cep)
        url = f"{self.base_url}/{digits}/json/"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, headers={"Accept": "application/json"})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Postal-code lookup failed for %s: %s", digits, exc)
            raise UpstreamServiceError("Could not reach the postal-code service") from exc
        except ValueError as exc:
            logger.warning("Invalid JSON from postal-code service for %s: %s", digits, exc)
            raise UpstreamServiceError("Invalid response from the postal-code service") from exc

        if not isinstance(data, dict):
            raise UpstreamServiceError("Invalid response from the postal-code service")
        if data.get("erro"):
            raise NotFoundError("CEP not found")

        return PostalCodeAddress.model_validate(
            {k: data.get(k) or "" for k in PostalCodeAddress.model_fields}
        )
