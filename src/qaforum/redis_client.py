"""Shared Redis client, used by the rate limiter and the readiness check.

Redis is optional: an empty ``QAF_REDIS_URL`` leaves the client unset and
callers that can run without it (the rate limiter) pass requests through.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> bool:
    """Create the client; returns False when no URL is configured."""
    global _client  # noqa: PLW0603
    if not url:
        return False
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    return True


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client:
        await _client.aclose()
        _client = None


def redis_enabled() -> bool:
    return _client is not None


def get_redis() -> redis.Redis:
    """The shared client. Raises RuntimeError before ``init_redis``."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client
