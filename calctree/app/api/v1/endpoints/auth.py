"""
Authentication API endpoints.

Provides register, login, token validation, logout and user info endpoints.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from calctree.app.db.session import get_db
from calctree.app.models.user import User
from calctree.app.schemas.auth import (
    UserRegister, UserLogin, TokenResponse, UserResponse, TokenValidationResponse
)
from calctree.app.schemas.calculation import MessageResponse
from calctree.app.core.security import get_password_hash, verify_password
from calctree.app.core.jwt import create_access_token
from calctree.app.core.dependencies import get_current_user
from calctree.app.core.redis_client import get_redis
from calctree.app.core.token_revocation import revoke_token

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger("calctree.auth")


def _token_for(user: User) -> TokenResponse:
    access_token = create_access_token(user.id, user.username)
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        username=user.username
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user and return a token.

    Username must be unique (409 otherwise).
    """
    result = await db.execute(select(User).where(User.username == user_data.username))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists"
        )

    new_user = User(
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password)
    )

    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists"
        )
    await db.refresh(new_user)

    logger.info("User %s registered (id=%s)", new_user.username, new_user.id)
    return _token_for(new_user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Unknown user and wrong password produce the same 401.
    """
    result = await db.execute(select(User).where(User.username == credentials.username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning("Failed login for username %s", credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _token_for(user)


@router.get("/validate", response_model=TokenValidationResponse)
async def validate_token(current_user: dict = Depends(get_current_user)):
    """Reaching this handler means the token passed authentication."""
    return TokenValidationResponse(valid=True)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    redis=Depends(get_redis)
):
    """
    Revoke the presented token.

    Subsequent requests with the same token get 401.
    """
    revoked = await revoke_token(redis, current_user["token"], current_user["user_id"])
    if not revoked:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not revoke token, please retry"
        )
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.

    Raises:
        404: If user not found in database
    """
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)
