"""Redis async client backing the suggestion cache."""

import redis.asyncio as redis

from app.config import settings

redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client singleton (lazy init, no I/O until first command)."""
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None


async def get_redis() -> redis.Redis:
    """FastAPI dependency returning the shared client; overridden in tests."""
    return get_redis_client()
