"""
Price check for a single alert.

One invocation loads the alert, spends one unit of the monthly quota, asks
the search gateway for offers, keeps the ones matching the alert's
preferences, stores them, and pushes ``next_check_at`` forward.

Recoverable conditions (alert no longer active, quota exhausted, provider
4xx) come back as a skipped ``PriceCheckResult`` with the alert rescheduled.
Provider 5xx and transport failures are re-raised so the task queue retries
them; the alert is rescheduled before re-raising so a failing route is not
hammered while the queue backs off.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models.flight_alert import AlertStatus, check_interval
from app.services import alert_store
from app.services.amadeus_client import is_client_error
from app.services.flight_search import FlightSearchGateway
from app.services.offer_filter import filter_offers
from app.services.rate_limiter import MonthlyRateLimiter
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

NOT_ACTIVE_REASON = "alert not active"


@dataclass
class PriceCheckResult:
    alert_id: int
    skipped: bool = False
    reason: Optional[str] = None
    error: Optional[str] = None
    offers_found: int = 0
    offers_stored: int = 0
    next_check_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        data = asdict(self)
        if self.next_check_at:
            data["next_check_at"] = self.next_check_at.isoformat()
        return data


def _reschedule(db: Session, alert_id: int, next_check_at: datetime, **fields) -> None:
    # Guarded by status so a pause/delete that raced this check is not undone
    updated = alert_store.update_alert(
        db,
        alert_id,
        only_if_status=AlertStatus.ACTIVE,
        next_check_at=next_check_at,
        **fields,
    )
    if not updated:
        logger.info(f"Alert {alert_id} left ACTIVE during its check; schedule not updated")


async def run_price_check(
    db: Session,
    alert_id: int,
    gateway: FlightSearchGateway,
    limiter: MonthlyRateLimiter,
    now: Optional[datetime] = None,
) -> PriceCheckResult:
    now = now or utcnow()

    alert = alert_store.find_alert_by_id(db, alert_id)
    if alert is None or alert.status != AlertStatus.ACTIVE:
        logger.debug(f"Alert {alert_id} is missing or not active, skipping")
        return PriceCheckResult(alert_id=alert_id, skipped=True, reason=NOT_ACTIVE_REASON)

    next_check_at = now + check_interval(alert.check_frequency)

    decision = await limiter.admit(now)
    if not decision.allowed:
        _reschedule(db, alert_id, next_check_at)
        return PriceCheckResult(
            alert_id=alert_id,
            skipped=True,
            reason=f"Monthly API limit exceeded ({decision.current}/{decision.limit})",
            next_check_at=next_check_at,
        )

    try:
        offers = await gateway.search_flights(
            origin=alert.departure_airport_code,
            destination=alert.destination_airport_code,
            departure_date=alert.departure_date,
            return_date=alert.return_date,
        )
    except Exception as e:
        _reschedule(db, alert_id, next_check_at, last_checked_at=now)
        if is_client_error(e):
            logger.warning(f"Alert {alert_id} ({alert.route_name}): provider rejected search: {e}")
            return PriceCheckResult(
                alert_id=alert_id,
                skipped=True,
                error=str(e),
                next_check_at=next_check_at,
            )
        logger.error(f"Alert {alert_id} ({alert.route_name}): search failed, will retry: {e}")
        raise

    matching = filter_offers(offers, alert)
    stored = alert_store.insert_price_records(db, alert_id, matching, checked_at=now)

    _reschedule(db, alert_id, next_check_at, last_checked_at=now)

    logger.info(
        f"Alert {alert_id} ({alert.route_name}): {len(offers)} offers, "
        f"{stored} stored, next check {next_check_at.isoformat()}"
    )
    return PriceCheckResult(
        alert_id=alert_id,
        offers_found=len(offers),
        offers_stored=stored,
        next_check_at=next_check_at,
    )
