"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from customer_registry.api.v1.endpoints import auth, customers, health, postal_codes, users

api_router = APIRouter()

# Auth (login, refresh, logout, current session)
api_router.include_router(auth.router)

# Admin user management
api_router.include_router(users.router)

# Customers + migration
api_router.include_router(customers.router)

# Address auto-fill
api_router.include_router(postal_codes.router)

# Health
api_router.include_router(health.router)
