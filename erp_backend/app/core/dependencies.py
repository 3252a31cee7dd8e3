"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from erp_backend.app.core.jwt import decode_access_token
from erp_backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from erp_backend.app.db.session import get_db
from erp_backend.app.models.user import User

# HTTP Bearer security scheme; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Raw bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Access token required")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency resolving the caller identity.

    Checks, in order:
    1. JWT signature and expiry
    2. Explicit revocation of this token (logout)
    3. Revocation of every token of the user (deactivation)
    4. User still exists and is active (real-time database check)

    Returns:
        Identity dict: user_id, sub, name, role, permissions.
        Permissions come from the user's role in the database, not from the token,
        so role edits take effect on the next request.

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")

    if await are_user_tokens_revoked(user_id):
        raise _unauthorized("User access has been revoked")

    result = await db.execute(
        select(User).options(selectinload(User.role)).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise _unauthorized("User account is inactive")

    return {
        "user_id": user.id,
        "sub": user.email,
        "name": user.name,
        "role": user.role.name,
        "permissions": list(user.role.permissions or []),
    }
