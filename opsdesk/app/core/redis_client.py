"""
Redis client initialization and connection management.

Redis backs the token revocation lists.
"""

import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from opsdesk.app.core.config import settings

logger = logging.getLogger(__name__)

# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.
    
    Resolved at call time so tests can swap the module-level client.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.
    
    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await (await get_redis()).ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed", extra={"error": str(exc)})
        return False
