from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func

from app.database import get_db
from app.models.flight_alert import FlightAlert, AlertStatus
from app.services.rate_limiter import MonthlyRateLimiter
from app.api.deps import get_rate_limiter
from app.utils.clock import utcnow

router = APIRouter()


@router.get("/amadeus-usage")
async def amadeus_usage(limiter: MonthlyRateLimiter = Depends(get_rate_limiter)):
    """Current month's Amadeus call count against the configured limit."""
    usage = await limiter.usage()
    return {
        "month": usage.month,
        "current": usage.current,
        "limit": usage.limit,
        "percent": usage.percent,
        "limited": usage.limit > 0,
    }


@router.get("/scheduler")
async def scheduler_status(db: Session = Depends(get_db)):
    """Alert counts by status and how many active alerts are overdue."""
    counts = dict(
        db.query(FlightAlert.status, func.count(FlightAlert.id))
        .group_by(FlightAlert.status)
        .all()
    )
    overdue = db.query(func.count(FlightAlert.id)).filter(
        FlightAlert.status == AlertStatus.ACTIVE,
        FlightAlert.next_check_at <= utcnow(),
    ).scalar()

    return {
        "alerts": {status.value: counts.get(status, 0) for status in AlertStatus},
        "due_now": overdue or 0,
    }
