"""
Persistence operations used by the scheduler and the price-check worker.

Scheduling fields are last-write-wins: both writers recompute
``next_check_at`` from "now", so a duplicate write lands on a near-identical
deadline.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.models.flight_alert import FlightAlert, AlertStatus
from app.models.price_record import PriceRecord
from app.services.flight_search import NormalizedFlightOffer
from app.utils.clock import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


def find_alert_by_id(db: Session, alert_id: int) -> Optional[FlightAlert]:
    return db.get(FlightAlert, alert_id)


def find_alerts_due_for_check(db: Session, now: datetime) -> List[int]:
    """Ids of active alerts whose next check time has passed."""
    rows = db.query(FlightAlert.id).filter(
        FlightAlert.status == AlertStatus.ACTIVE,
        FlightAlert.next_check_at.isnot(None),
        FlightAlert.next_check_at <= now,
    ).order_by(FlightAlert.next_check_at).all()
    return [row.id for row in rows]


def update_alert(
    db: Session,
    alert_id: int,
    only_if_status: Optional[AlertStatus] = None,
    **fields,
) -> bool:
    """Apply a partial update and commit.

    With ``only_if_status`` the write only lands while the alert still has
    that status. Returns False when no row was updated.
    """
    stmt = update(FlightAlert).where(FlightAlert.id == alert_id)
    if only_if_status is not None:
        stmt = stmt.where(FlightAlert.status == only_if_status)
    result = db.execute(stmt.values(**fields).execution_options(synchronize_session="fetch"))
    db.commit()
    return result.rowcount > 0


def insert_price_records(
    db: Session,
    alert_id: int,
    offers: Iterable[NormalizedFlightOffer],
    checked_at: Optional[datetime] = None,
) -> int:
    """Append one PriceRecord per offer. No dedup, the series is cumulative.

    ``checked_at`` is naive UTC; it defaults to now.
    """
    checked_at = checked_at or utcnow()
    records = [
        PriceRecord(
            alert_id=alert_id,
            price=offer.price,
            currency=offer.currency,
            airline=offer.airline,
            flight_number=offer.flight_number,
            departure_time=parse_timestamp(offer.departure_time),
            arrival_time=parse_timestamp(offer.arrival_time),
            duration=offer.duration,
            stops=offer.stops,
            booking_link=None,
            checked_at=checked_at,
        )
        for offer in offers
    ]
    if records:
        db.add_all(records)
        db.commit()
    return len(records)


def daily_lowest_prices(db: Session, alert_id: int) -> List[dict]:
    """Minimum recorded price per calendar day of ``checked_at``, oldest first."""
    day = func.date(PriceRecord.checked_at)
    rows = db.query(
        day.label("day"),
        func.min(PriceRecord.price).label("lowest_price"),
    ).filter(
        PriceRecord.alert_id == alert_id
    ).group_by(day).order_by(day).all()

    points = []
    for row in rows:
        # SQLite returns the day as a string, PostgreSQL as a date
        value = row.day if isinstance(row.day, date) else date.fromisoformat(str(row.day))
        points.append({"date": value, "lowest_price": Decimal(str(row.lowest_price))})
    return points
