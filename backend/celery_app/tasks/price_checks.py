import asyncio

from celery import shared_task
from celery.utils.log import get_task_logger

from app.config import get_settings
from app.database import SessionLocal
from app.redis_client import create_async_redis
from app.services.flight_search import FlightSearchGateway
from app.services.price_check import run_price_check, PriceCheckResult
from app.services.rate_limiter import MonthlyRateLimiter
from celery_app import dedup
from celery_app.celery import PRICE_CHECK_QUEUE

logger = get_task_logger(__name__)
settings = get_settings()


def backoff_countdown(retries: int) -> int:
    """Seconds before the next attempt: 1 min, 5 min, then capped at 15 min."""
    return min(
        settings.price_check_backoff_seconds * 5 ** retries,
        settings.price_check_backoff_max_seconds,
    )


async def _check(db, alert_id: int) -> PriceCheckResult:
    redis = create_async_redis()
    try:
        async with FlightSearchGateway() as gateway:
            return await run_price_check(db, alert_id, gateway, MonthlyRateLimiter(redis))
    finally:
        await redis.aclose()


@shared_task(bind=True, max_retries=settings.price_check_max_retries, acks_late=True)
def check_alert_price(self, alert_id: int):
    db = SessionLocal()
    # Held across retries so the scanner does not enqueue a second copy
    release_key = True

    try:
        result = asyncio.run(_check(db, alert_id))
        return result.as_dict()

    except Exception as e:
        attempt = self.request.retries + 1
        if self.request.retries < self.max_retries:
            release_key = False
            countdown = backoff_countdown(self.request.retries)
            logger.warning(
                f"Price check for alert {alert_id} failed (attempt {attempt}), "
                f"retrying in {countdown}s: {e}"
            )
            raise self.retry(exc=e, countdown=countdown)

        logger.error(f"Price check for alert {alert_id} abandoned after {attempt} attempts: {e}")
        raise

    finally:
        db.close()
        if release_key:
            dedup.release(dedup.price_check_key(alert_id))


def enqueue_price_check(alert_id: int) -> bool:
    """Queue a price check unless one is already outstanding for this alert."""
    return dedup.enqueue_unique(
        check_alert_price,
        dedup.price_check_key(alert_id),
        args=(alert_id,),
        queue=PRICE_CHECK_QUEUE,
    )
