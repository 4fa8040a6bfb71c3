"""
Redis client for version streams and conversations
"""

from typing import Optional

from redis import asyncio as aioredis

from .config import Config


_redis_client: Optional[aioredis.Redis] = None


def get_redis_client() -> aioredis.Redis:
    """
    Get or create the async Redis client (singleton pattern)

    Returns:
        redis.asyncio.Redis instance with decoded string responses
    """
    global _redis_client

    if _redis_client is None:
        Config.validate()
        _redis_client = aioredis.from_url(
            Config.REDIS_URL,
            decode_responses=True,
        )

    return _redis_client


def reset_redis_client():
    """Reset the Redis client (useful for testing)"""
    global _redis_client
    _redis_client = None
