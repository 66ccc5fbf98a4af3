"""
Privileged server functions: ``admin-create-user`` and ``admin-delete-user``.

Wire format: JSON in, ``{user: {...}}`` / ``{success: true}`` on 200,
``{error: "..."}`` on every failure, refused callers included. Every response
carries the permissive CORS headers; preflight gets an empty 200.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from customer_registry.api.v1.deps import (
    get_current_user,
    get_identity_store,
    get_provisioner,
    get_role_resolver,
    oauth2_scheme,
    require_admin,
)
from customer_registry.core.exceptions import AlreadyExistsError, AppError, ValidationError
from customer_registry.models.account import Account
from customer_registry.services.identity import IdentityStore
from customer_registry.services.provisioning import UserProvisioner
from customer_registry.services.roles import RoleResolver

router = APIRouter(tags=["functions"])
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _json(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return _json({"error": message}, status_code)


async def _read_payload(request: Request) -> dict:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise AppError("Invalid JSON body") from None
    if not isinstance(payload, dict):
        raise AppError("Invalid JSON body")
    return payload


def _creation_error(exc: AppError) -> str:
    if isinstance(exc, AlreadyExistsError):
        return "This email is already registered"
    if isinstance(exc, ValidationError):
        return exc.message
    return "Could not create user"


async def get_admin_caller(
    token: str | None = Depends(oauth2_scheme),
    access_token: str | None = Cookie(default=None),
    identity: IdentityStore = Depends(get_identity_store),
    roles: RoleResolver = Depends(get_role_resolver),
) -> Account | JSONResponse:
    """The admin making the call, or the ``{error}`` response that refuses it."""
    try:
        account = await get_current_user(token, access_token, identity)
        return await require_admin(account, roles)
    except HTTPException as exc:
        return _error(str(exc.detail), exc.status_code)
    except AppError as exc:
        return _error(exc.message, exc.status_code)


@router.options("/admin-create-user")
@router.options("/admin-delete-user")
async def preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/admin-create-user")
async def admin_create_user(
    request: Request,
    provisioner: UserProvisioner = Depends(get_provisioner),
    caller: Account | JSONResponse = Depends(get_admin_caller),
) -> JSONResponse:
    if isinstance(caller, JSONResponse):
        return caller
    try:
        payload = await _read_payload(request)
        email = str(payload.get("email") or "")
        logger.info("Creating user: %s (role %s)", email, payload.get("role"))

        result = await provisioner.create_user(
            email,
            str(payload.get("password") or ""),
            str(payload.get("nome") or ""),
            str(payload.get("role") or ""),
        )
        if result.error is not None:
            return _error(_creation_error(result.error))

        body: dict = {
            "success": True,
            "user": {
                "id": result.user_id,
                "email": result.email,
                "nome": result.nome,
                "role": result.role,
            },
        }
        if result.warnings:
            body["warning"] = " ".join(result.warning_messages)
        return _json(body)
    except AppError as exc:
        return _error(exc.message)
    except Exception:
        logger.exception("Unexpected error in admin-create-user")
        return _error("Internal server error", 500)


@router.post("/admin-delete-user")
async def admin_delete_user(
    request: Request,
    provisioner: UserProvisioner = Depends(get_provisioner),
    caller: Account | JSONResponse = Depends(get_admin_caller),
) -> JSONResponse:
    if isinstance(caller, JSONResponse):
        return caller
    try:
        payload = await _read_payload(request)
        user_id = str(payload.get("userId") or "")
        if not user_id:
            return _error("userId is required")
        if user_id == caller.id:
            return _error("You cannot remove your own account")
        await provisioner.remove_user(user_id)
        return _json({"success": True})
    except AppError as exc:
        logger.error("admin-delete-user failed for request: %s", exc.message)
        return _error("Could not delete the user")
    except Exception:
        logger.exception("Unexpected error in admin-delete-user")
        return _error("Internal server error", 500)
