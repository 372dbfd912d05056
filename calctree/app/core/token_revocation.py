"""
Token Revocation System using Redis.

Implements token blacklisting so a logged-out JWT stops working
immediately instead of at expiry.
"""

import logging
from calctree.app.core.config import settings

logger = logging.getLogger("calctree.auth")

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


async def revoke_token(redis, token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        redis: Async Redis client
        token: The JWT token string to revoke
        user_id: User ID who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        # Tokens expire on their own, the blacklist entry only needs to outlive them
        ttl_seconds = settings.access_token_expire_minutes * 60

        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await redis.setex(key, ttl_seconds, str(user_id))

        return True
    except Exception as e:
        logger.error("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(redis, token: str) -> bool:
    """
    Check if a token has been revoked.

    Args:
        redis: Async Redis client
        token: JWT token string to check

    Returns:
        True if token is revoked, False otherwise
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await redis.exists(key)
        return exists > 0
    except Exception as e:
        # Redis outage: allow the request (availability over strict logout)
        logger.warning("Error checking token revocation: %s", e)
        return False
