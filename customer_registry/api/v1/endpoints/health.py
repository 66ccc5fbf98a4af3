"""Liveness / readiness endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from customer_registry.api.v1.deps import get_db
from customer_registry.core.config import settings
from customer_registry.schemas.common import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    db_ok = True
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)
        db_ok = False
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        db=db_ok,
        version=settings.VERSION,
    )
