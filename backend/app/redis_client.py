from functools import lru_cache

import redis
import redis.asyncio

from app.config import get_settings


@lru_cache
def get_redis() -> redis.Redis:
    """Shared synchronous client, used for enqueue dedup keys."""
    return redis.Redis.from_url(get_settings().redis_url, decode_responses=True)


def create_async_redis() -> redis.asyncio.Redis:
    """New asyncio client. Bound to the running loop, so close it when done."""
    return redis.asyncio.Redis.from_url(get_settings().redis_url, decode_responses=True)
