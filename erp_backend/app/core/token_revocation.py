"""
Token Revocation System using Redis.

Implements token blacklisting to immediately invalidate JWT tokens
on logout or when a user is deactivated.
"""

import logging

from erp_backend.app.core.config import settings
from erp_backend.app.core.redis_client import get_redis

logger = logging.getLogger(__name__)

# Redis key prefixes
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _ttl_seconds() -> int:
    # Tokens expire on their own after this window, so the marker can too
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        client = await get_redis()
        await client.setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", _ttl_seconds(), str(user_id))
        return True
    except Exception:
        logger.exception("Error revoking token for user %s", user_id)
        return False


async def is_token_revoked(token: str) -> bool:
    """Check if a token has been revoked."""
    try:
        client = await get_redis()
        return await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}") > 0
    except Exception:
        # Redis outage: let the request through, the database active-user check still applies
        logger.exception("Error checking token revocation")
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke all active tokens for a specific user.

    Called when a user is deactivated to immediately terminate all sessions.
    """
    try:
        client = await get_redis()
        await client.setex(f"{USER_TOKENS_PREFIX}{user_id}:revoked", _ttl_seconds(), "1")
        return True
    except Exception:
        logger.exception("Error revoking all tokens for user %s", user_id)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """Check if all tokens for a user have been revoked."""
    try:
        client = await get_redis()
        return await client.exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked") > 0
    except Exception:
        logger.exception("Error checking user token revocation for user %s", user_id)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """
    Clear the global token revocation flag for a user.

    Called when a deactivated user is reactivated.
    """
    try:
        client = await get_redis()
        await client.delete(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return True
    except Exception:
        logger.exception("Error clearing token revocation for user %s", user_id)
        return False
