"""
Authentication endpoints.

- Email/Password registration & login
- Bearer credential in the response body, mirrored in an HttpOnly cookie
- Logout clears the cookies (credentials are stateless, nothing to revoke)
"""

from __future__ import annotations

import secrets
import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CSRF_COOKIE, SESSION_COOKIE, create_credential, get_current_user_id
from app.core.config import get_settings
from app.core.database import get_session
from app.services import users as user_service
from orgtasks_shared.schemas.users import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)

settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.credential_ttl_minutes * 60,
}


def _set_session_cookies(response: Response, token: str) -> None:
    """Set the credential cookie and a readable CSRF token cookie."""
    response.set_cookie(key=SESSION_COOKIE, value=token, httponly=True, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=secrets.token_urlsafe(32),
        httponly=False,  # JS must read this
        **COOKIE_KWARGS,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user with email/password and sign them in."""
    user = await user_service.register(body.full_name, body.email, body.password, session)
    await session.commit()

    token, expires_at = create_credential(user.id)
    _set_session_cookies(response, token)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=token,
        expires_at=expires_at,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a credential."""
    user, token, expires_at = await user_service.authenticate(body.email, body.password, session)
    _set_session_cookies(response, token)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=token,
        expires_at=expires_at,
    )


@router.post("/logout")
async def logout(response: Response):
    """Forget the session cookies on this client."""
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """The authenticated user."""
    return await user_service.get_user(user_id, session)
