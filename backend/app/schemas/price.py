from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


class PriceRecordResponse(BaseModel):
    id: int
    alert_id: int
    price: Decimal
    currency: str
    airline: str
    flight_number: str
    departure_time: datetime
    arrival_time: datetime
    duration: int
    stops: int
    booking_link: Optional[str] = None
    checked_at: datetime

    class Config:
        from_attributes = True


class PriceHistoryResponse(BaseModel):
    records: List[PriceRecordResponse]
    total: int


class DailyLowestPoint(BaseModel):
    date: date
    lowest_price: Decimal


class DailyLowestResponse(BaseModel):
    points: List[DailyLowestPoint]
