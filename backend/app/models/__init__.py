# SQLAlchemy models
from app.models.flight_alert import (
    FlightAlert,
    TripType,
    DayShift,
    CheckFrequency,
    AlertStatus,
    check_interval,
)
from app.models.price_record import PriceRecord

__all__ = [
    "FlightAlert",
    "PriceRecord",
    # Enums
    "TripType",
    "DayShift",
    "CheckFrequency",
    "AlertStatus",
    "check_interval",
]
