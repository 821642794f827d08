"""
Monthly quota for Amadeus search calls.

One Redis counter per calendar month (``amadeus:calls:YYYY-MM``). Every
admission INCRs the counter, so concurrent workers never read-then-write.
The check is advisory: it is not a lock and a brief overshoot under
concurrency is acceptable.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from redis.asyncio import Redis

from app.config import get_settings
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

KEY_PREFIX = "amadeus:calls"

# Longer than any month so a queue draining across a month boundary keeps its count
COUNTER_TTL_SECONDS = 35 * 24 * 60 * 60

WARNING_RATIO = 0.8


def monthly_key(now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    return f"{KEY_PREFIX}:{now:%Y-%m}"


@dataclass
class RateLimitDecision:
    allowed: bool
    current: int
    limit: int


@dataclass
class RateLimitUsage:
    month: str
    current: int
    limit: int

    @property
    def percent(self) -> Optional[float]:
        if not self.limit:
            return None
        return round(self.current / self.limit * 100, 1)


class MonthlyRateLimiter:
    """
    Usage:
        limiter = MonthlyRateLimiter(redis)
        decision = await limiter.admit()
        if not decision.allowed:
            ...
    """

    def __init__(self, redis: Redis, limit: Optional[int] = None):
        self.redis = redis
        self.limit = get_settings().amadeus_monthly_call_limit if limit is None else limit

    async def admit(self, now: Optional[datetime] = None) -> RateLimitDecision:
        """Count one call against this month and decide whether it may go ahead.

        The call that pushes the counter past the limit is itself denied.
        Denied calls still increment the counter.
        """
        if self.limit == 0:
            return RateLimitDecision(allowed=True, current=0, limit=0)

        key = monthly_key(now)
        current = await self.redis.incr(key)
        if current == 1:
            await self.redis.expire(key, COUNTER_TTL_SECONDS)

        if int(self.limit * WARNING_RATIO) <= current < self.limit:
            logger.warning(
                f"Amadeus API usage at {current}/{self.limit} "
                f"({round(current / self.limit * 100)}%)"
            )

        if current > self.limit:
            logger.error(f"Amadeus monthly limit exceeded: {current}/{self.limit}. Skipping API call.")
            return RateLimitDecision(allowed=False, current=current, limit=self.limit)

        return RateLimitDecision(allowed=True, current=current, limit=self.limit)

    async def usage(self, now: Optional[datetime] = None) -> RateLimitUsage:
        """Read this month's counter without consuming a call."""
        key = monthly_key(now)
        value = await self.redis.get(key)
        return RateLimitUsage(
            month=key.rsplit(":", 1)[-1],
            current=int(value) if value else 0,
            limit=self.limit,
        )
