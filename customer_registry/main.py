"""
Customer Registry — application entry point.

This is the **only** file that assembles the app. All business logic lives
in the `api/`, `services/`, `models/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from customer_registry.api import functions
from customer_registry.api.v1.api import api_router
from customer_registry.api.v1.endpoints.auth import limiter
from customer_registry.core.config import settings
from customer_registry.core.exceptions import register_exception_handlers
from customer_registry.db.base import Base
from customer_registry.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from customer_registry.models.account import Account  # noqa: F401
from customer_registry.models.customer import Customer  # noqa: F401
from customer_registry.models.user import ROLE_ADMIN, Profile, UserRole  # noqa: F401
from customer_registry.services.directory import UserDirectory
from customer_registry.services.identity import SqlIdentityStore
from customer_registry.services.provisioning import UserProvisioner

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_first_admin() -> None:
    """Provision the default administrator if no account uses its email."""
    async with async_session_factory() as session:
        identity = SqlIdentityStore(session)
        if await identity.find_by_email(settings.FIRST_ADMIN_EMAIL) is not None:
            return
        result = await UserProvisioner(identity, UserDirectory(session)).create_user(
            settings.FIRST_ADMIN_EMAIL,
            settings.FIRST_ADMIN_PASSWORD,
            settings.FIRST_ADMIN_NAME,
            ROLE_ADMIN,
        )
        if result.error is not None:
            logger.error("Could not create default admin: %s", result.error.message)
        else:
            logger.info(
                "Default admin created: %s (password: <redacted>) [%s]",
                settings.FIRST_ADMIN_EMAIL,
                result.status.value,
            )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_first_admin()

    logger.info("🚀 %s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Customer registration with role-based user administration",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting (login / refresh)
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)
    application.include_router(functions.router, prefix=settings.FUNCTIONS_PREFIX)

    return application


app = create_app()
