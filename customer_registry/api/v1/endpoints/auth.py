"""
Auth endpoints — login (OAuth2 password flow), token refresh, logout and the
current session with its effective role.
"""

import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from customer_registry.api.v1.deps import (
    get_current_user,
    get_identity_store,
    get_role_resolver,
    get_user_directory,
)
from customer_registry.core.config import settings
from customer_registry.core.exceptions import TransientStoreError
from customer_registry.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)
from customer_registry.models.account import Account
from customer_registry.models.user import ROLE_ADMIN
from customer_registry.schemas.common import LogoutResponse
from customer_registry.schemas.token import RefreshRequest, Token
from customer_registry.schemas.user import CurrentUser
from customer_registry.services.directory import UserDirectory
from customer_registry.services.identity import IdentityStore
from customer_registry.services.roles import RoleResolver

# Rate limiter — keyed by client IP
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _issue_tokens(response: Response, account_id: str) -> Token:
    access_token = create_access_token(account_id)
    refresh_token = create_refresh_token(account_id)
    _set_session_cookies(response, access_token, refresh_token)
    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    identity: IdentityStore = Depends(get_identity_store),
) -> Token:
    """Authenticate with email/password. Returns tokens and sets HttpOnly cookies."""
    account = await identity.authenticate(form_data.username, form_data.password)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.info("Login: %s", account.email)
    return _issue_tokens(response, account.id)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token_endpoint(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(None, alias="refresh_token"),
    identity: IdentityStore = Depends(get_identity_store),
) -> Token:
    # Priority: Body > Cookie
    token_str = body.refresh_token if body and body.refresh_token else refresh_token_cookie
    if not token_str:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token missing",
        )

    payload = decode_refresh_token(token_str)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    account = await identity.get_account(payload.get("sub", ""))
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )
    return _issue_tokens(response, account.id)


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response) -> LogoutResponse:
    """Clear auth cookies and end the session."""
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    return LogoutResponse(message="Logged out")


@router.get("/me", response_model=CurrentUser)
async def read_current_user(
    current_user: Account = Depends(get_current_user),
    roles: RoleResolver = Depends(get_role_resolver),
    directory: UserDirectory = Depends(get_user_directory),
) -> CurrentUser:
    """Current account with its effective role.

    If the role cannot be resolved the response carries ``role: null`` and
    ``is_admin: false`` so clients fall back to least privilege.
    """
    try:
        role: str | None = await roles.effective_role(current_user.id)
    except TransientStoreError:
        role = None

    # Display name tolerates a missing or unreachable profile row
    try:
        profile = await directory.get_profile(current_user.id)
    except SQLAlchemyError as exc:
        logger.warning("Profile lookup failed for %s: %s", current_user.id, exc)
        profile = None
    nome = (profile.nome if profile else None) or (current_user.user_metadata or {}).get("nome")

    return CurrentUser(
        id=current_user.id,
        email=current_user.email,
        nome=nome or current_user.email,
        role=role,
        is_admin=role == ROLE_ADMIN,
    )
