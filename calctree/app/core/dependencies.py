"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from calctree.app.core.jwt import decode_access_token
from calctree.app.core.redis_client import get_redis
from calctree.app.core.token_revocation import is_token_revoked
from calctree.app.db.session import get_db
from calctree.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _authenticate(token: str, db: AsyncSession, redis) -> dict:
    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Check if this specific token has been revoked (logout)
    if await is_token_revoked(redis, token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Real-time database check: the user must still exist
    result = await db.execute(select(User.id).where(User.id == user_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {**payload, "token": token}


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Security checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked
    3. Verifies user still exists in database

    Args:
        credentials: HTTP Bearer token from request header
        db: Database session for real-time user check
        redis: Redis client holding the token blacklist

    Returns:
        Decoded token payload (sub, user_id, exp) plus the raw token

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    return await _authenticate(credentials.credentials, db, redis)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
) -> Optional[dict]:
    """
    Like get_current_user, but anonymous requests pass through as None.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return await _authenticate(credentials.credentials, db, redis)
