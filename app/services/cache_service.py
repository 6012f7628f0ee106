"""
Redis Cache Service for Suno Machine.

Holds the sign-out token denylist. A Redis outage degrades to "nothing is
revoked" rather than failing every authenticated request.
"""
import logging
from datetime import datetime, timezone

import redis.asyncio as redis

from app.config import get_settings

logger = logging.getLogger(__name__)


# Cache key prefixes
class CacheKeys:
    REVOKED_TOKEN = "auth:revoked:"  # TTL: remaining token lifetime
    REVOKED_SESSION = "auth:signed-out:"  # TTL: refresh token lifetime


class CacheService:
    """Redis cache service with async support."""

    _client: redis.Redis | None = None

    @classmethod
    async def get_client(cls) -> redis.Redis:
        """Get or create Redis client connection."""
        if cls._client is None:
            settings = get_settings()
            cls._client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return cls._client

    @classmethod
    async def get(cls, key: str) -> str | None:
        try:
            client = await cls.get_client()
            return await client.get(key)
        except Exception as e:
            logger.warning(f"[CacheService] get {key} failed: {e}")
            return None

    @classmethod
    async def set(cls, key: str, value: str, ttl: int) -> bool:
        try:
            client = await cls.get_client()
            await client.set(key, value, ex=ttl)
            return True
        except Exception as e:
            logger.warning(f"[CacheService] set {key} failed: {e}")
            return False

    @classmethod
    async def revoke_token(cls, jti: str, expires_at: float) -> bool:
        """
        Denylist a token id until the token would have expired anyway.

        Args:
            jti: The token's unique id
            expires_at: The token's `exp` claim (unix seconds)
        """
        ttl = max(int(expires_at - datetime.now(timezone.utc).timestamp()), 1)
        return await cls.set(f"{CacheKeys.REVOKED_TOKEN}{jti}", "1", ttl=ttl)

    @classmethod
    async def is_token_revoked(cls, jti: str) -> bool:
        return await cls.get(f"{CacheKeys.REVOKED_TOKEN}{jti}") is not None

    @classmethod
    async def revoke_session(cls, session_id: str, ttl: int) -> bool:
        """Denylist every token of one sign-in, refresh tokens included."""
        return await cls.set(f"{CacheKeys.REVOKED_SESSION}{session_id}", "1", ttl=ttl)

    @classmethod
    async def is_session_revoked(cls, session_id: str) -> bool:
        return await cls.get(f"{CacheKeys.REVOKED_SESSION}{session_id}") is not None

    @classmethod
    async def close(cls) -> None:
        """Close Redis connection."""
        if cls._client:
            await cls._client.aclose()
            cls._client = None
