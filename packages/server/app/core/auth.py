"""
Authentication for OrgTasks.

Supports:
- Password hashing (bcrypt)
- Signed, time-limited bearer credentials (JWT, HS256)
- Stateless credential verification against the users table
- Request dependency resolving the acting user id once per request
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import InvalidInput, Unauthenticated
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

SESSION_COOKIE = "orgtasks_session"
CSRF_COOKIE = "orgtasks_csrf"

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def check_password_policy(password: str) -> None:
    """Raise InvalidInput unless the password is usable with bcrypt."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Over-long input or a corrupt stored hash can never match.
        return False


# ---------------------------------------------------------------------------
# Credentials (JWT)
# ---------------------------------------------------------------------------

def create_credential(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Create a signed credential for a user. Returns (token, expires_at)."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.credential_ttl_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, exp


def decode_credential(token: str) -> dict:
    """Decode and verify a credential. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )


async def verify_credential(token: str, session: AsyncSession) -> uuid.UUID:
    """Resolve a credential to the id of an existing user.

    Fails with Unauthenticated when the signature is bad, the credential has
    expired, or the user it names no longer exists.
    """
    try:
        payload = decode_credential(token)
        user_id = uuid.UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Credential has expired")
    except (jwt.PyJWTError, ValueError):
        raise Unauthenticated("Invalid credential")

    user = await session.get(User, user_id)
    if user is None:
        log.warning("auth.unknown_subject", user_id=str(user_id))
        raise Unauthenticated("Invalid credential")
    return user_id


# ---------------------------------------------------------------------------
# Request dependency
# ---------------------------------------------------------------------------

def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user_id(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> uuid.UUID:
    """Main authentication dependency: the acting user's id for this request."""
    token = extract_token(request, authorization)
    if not token:
        raise Unauthenticated()
    user_id = await verify_credential(token, session)
    request.state.user_id = user_id
    return user_id
