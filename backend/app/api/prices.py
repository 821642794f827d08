from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Literal

from app.api.deps import get_current_user_id
from app.database import get_db
from app.models.flight_alert import FlightAlert, AlertStatus
from app.models.price_record import PriceRecord
from app.schemas import PriceHistoryResponse, DailyLowestResponse
from app.services.alert_store import daily_lowest_prices

router = APIRouter()


def _check_ownership(db: Session, user_id: str, alert_id: int) -> FlightAlert:
    alert = db.get(FlightAlert, alert_id)
    if not alert or alert.user_id != user_id or alert.status == AlertStatus.DELETED:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.get("/{alert_id}/prices", response_model=PriceHistoryResponse)
async def get_price_history(
    alert_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    sort: Literal["recent", "cheapest"] = "recent",
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _check_ownership(db, user_id, alert_id)

    query = db.query(PriceRecord).filter(PriceRecord.alert_id == alert_id)
    total = query.count()

    if sort == "cheapest":
        query = query.order_by(PriceRecord.price.asc(), PriceRecord.id.asc())
    else:
        query = query.order_by(PriceRecord.checked_at.desc(), PriceRecord.id.desc())

    records = query.offset(offset).limit(limit).all()
    return {"records": records, "total": total}


@router.get("/{alert_id}/prices/daily", response_model=DailyLowestResponse)
async def get_daily_lowest_prices(
    alert_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    _check_ownership(db, user_id, alert_id)
    return {"points": daily_lowest_prices(db, alert_id)}
