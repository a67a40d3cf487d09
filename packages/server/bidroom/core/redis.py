"""
Redis client for the session revocation list.

Revoked session ids are stored as ``jwt:revoked:<jti>`` keys that expire
together with the token they revoke.
"""

from __future__ import annotations

import redis.asyncio as redis

from bidroom.core.config import get_settings

REVOKED_KEY_PREFIX = "jwt:revoked:"

settings = get_settings()

_client: redis.Redis | None = None


def revoked_key(jti: str) -> str:
    return f"{REVOKED_KEY_PREFIX}{jti}"


async def get_redis() -> redis.Redis:
    """Return the shared client, creating it on first use."""
    global _client
    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
        )
    return _client


async def close_redis() -> None:
    global _client
    if _client is None:
        return
    await _client.aclose()
    _client = None
