"""
Redis client initialization and connection management.

Redis holds the token blacklist used by logout.
"""

import redis.asyncio as redis
from calctree.app.core.config import settings


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Used as a FastAPI dependency so tests can swap in an in-memory client.
    """
    return redis_client


async def close_redis() -> None:
    """Close the Redis connection pool. Called once at shutdown."""
    await redis_client.aclose()
