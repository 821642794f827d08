from typing import AsyncIterator

from fastapi import Header, HTTPException

from app.redis_client import create_async_redis
from app.services.flight_search import FlightSearchGateway
from app.services.rate_limiter import MonthlyRateLimiter


async def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Owner id forwarded by the authenticating gateway in front of this API."""
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user id")
    return user_id


async def get_search_gateway() -> AsyncIterator[FlightSearchGateway]:
    gateway = FlightSearchGateway()
    try:
        yield gateway
    finally:
        await gateway.close()


async def get_rate_limiter() -> AsyncIterator[MonthlyRateLimiter]:
    redis = create_async_redis()
    try:
        yield MonthlyRateLimiter(redis)
    finally:
        await redis.aclose()
