"""
Token Revocation System using Redis.

Invalidates JWT tokens on logout and revokes every token of an admin
whose account is deactivated.
"""

import logging
from redis.exceptions import RedisError
from opsdesk.app.core.redis_client import get_redis
from opsdesk.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefixes
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
ADMIN_TOKENS_PREFIX = "admin:tokens:"


def _token_ttl() -> int:
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, admin_id: int) -> bool:
    """
    Revoke a single JWT token by adding it to the blacklist.
    
    The entry expires with the token itself.
    """
    try:
        client = await get_redis()
        await client.setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", _token_ttl(), str(admin_id))
        return True
    except (RedisError, OSError) as exc:
        logger.error("Token revocation failed", extra={"admin_id": admin_id, "error": str(exc)})
        return False


async def is_token_revoked(token: str) -> bool:
    try:
        client = await get_redis()
        return await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}") > 0
    except (RedisError, OSError) as exc:
        # Redis down: fail open, the database active-flag check still applies
        logger.warning("Token revocation check failed", extra={"error": str(exc)})
        return False


async def revoke_all_admin_tokens(admin_id: int) -> bool:
    """
    Revoke all active tokens for an admin.
    
    Sets a per-admin flag that every token validation checks.
    """
    try:
        client = await get_redis()
        await client.setex(f"{ADMIN_TOKENS_PREFIX}{admin_id}:revoked", _token_ttl(), "1")
        return True
    except (RedisError, OSError) as exc:
        logger.error("Revoking all tokens failed", extra={"admin_id": admin_id, "error": str(exc)})
        return False


async def are_admin_tokens_revoked(admin_id: int) -> bool:
    try:
        client = await get_redis()
        return await client.exists(f"{ADMIN_TOKENS_PREFIX}{admin_id}:revoked") > 0
    except (RedisError, OSError) as exc:
        logger.warning("Admin revocation check failed", extra={"admin_id": admin_id, "error": str(exc)})
        return False


async def clear_admin_token_revocation(admin_id: int) -> bool:
    """Called when a deactivated admin is reactivated."""
    try:
        client = await get_redis()
        await client.delete(f"{ADMIN_TOKENS_PREFIX}{admin_id}:revoked")
        return True
    except (RedisError, OSError) as exc:
        logger.error("Clearing token revocation failed", extra={"admin_id": admin_id, "error": str(exc)})
        return False
