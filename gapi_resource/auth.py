"""
Session authentication for the Google API resource.

Provides JWT verification and user extraction from Supabase tokens. Requests
without a valid token are anonymous; whether that is allowed is decided per
resource instance by the router.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from .config import Settings

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme; a missing header is not an error here
security = HTTPBearer(auto_error=False)


@dataclass
class User:
    """Authenticated user information extracted from JWT."""
    id: str  # Supabase user UUID
    email: Optional[str] = None


def verify_token(token: str, secret: str) -> dict:
    """
    Verify a Supabase JWT token and return the payload.

    Args:
        token: The JWT token to verify
        secret: The Supabase JWT secret

    Returns:
        The decoded token payload

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        audience="authenticated",
    )


def user_from_token(token: str, settings: Settings) -> Optional[User]:
    """Get the user a token belongs to, or None if it does not verify."""
    if not settings.supabase_jwt_secret:
        logger.warning("SUPABASE_JWT_SECRET is not set; treating request as anonymous")
        return None

    try:
        payload = verify_token(token, settings.supabase_jwt_secret)
    except JWTError as e:
        logger.info(f"Rejected session token: {e}")
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    return User(id=user_id, email=payload.get("email"))


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[User]:
    """
    FastAPI dependency to optionally get the current user.

    Does not raise if no authentication is provided.

    Returns:
        User object if authenticated, None otherwise
    """
    if credentials is None:
        return None
    return user_from_token(credentials.credentials, request.app.state.settings)
