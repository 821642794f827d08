"""
Enqueue-time deduplication for Celery tasks.

Celery has no job-id uniqueness, so a Redis key taken with ``SET NX EX``
marks a task as outstanding. The key is released by the task itself when it
finishes for good (success, skip, or retries exhausted) and otherwise expires
after ``ttl`` seconds, so a lost task cannot block its alert forever.
"""
import logging
from typing import Optional

from celery import Task
from redis import Redis

from app.config import get_settings
from app.redis_client import get_redis

logger = logging.getLogger(__name__)


def price_check_key(alert_id: int) -> str:
    return f"price-check:pending:{alert_id}"


def acquire(key: str, ttl: Optional[int] = None, redis: Optional[Redis] = None) -> bool:
    redis = redis or get_redis()
    ttl = ttl or get_settings().dedup_ttl_seconds
    return bool(redis.set(key, "1", nx=True, ex=ttl))


def release(key: str, redis: Optional[Redis] = None) -> None:
    redis = redis or get_redis()
    redis.delete(key)


def enqueue_unique(
    task: Task,
    dedup_key: str,
    args: tuple = (),
    redis: Optional[Redis] = None,
    ttl: Optional[int] = None,
    **options,
) -> bool:
    """Send ``task`` unless a task with ``dedup_key`` is still outstanding.

    Returns True if the task was sent.
    """
    redis = redis or get_redis()
    if not acquire(dedup_key, ttl=ttl, redis=redis):
        return False

    try:
        task.apply_async(args=args, **options)
    except Exception:
        release(dedup_key, redis=redis)
        raise
    return True
