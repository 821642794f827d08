from datetime import timedelta
from typing import Optional, Union

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
import enum


class TripType(str, enum.Enum):
    ONE_WAY = "ONE_WAY"
    ROUND_TRIP = "ROUND_TRIP"


class DayShift(str, enum.Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    NIGHT = "NIGHT"


class CheckFrequency(str, enum.Enum):
    HOURS_1 = "HOURS_1"
    HOURS_3 = "HOURS_3"
    HOURS_6 = "HOURS_6"
    HOURS_12 = "HOURS_12"
    HOURS_24 = "HOURS_24"


class AlertStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    DELETED = "DELETED"


CHECK_INTERVALS = {
    CheckFrequency.HOURS_1: timedelta(hours=1),
    CheckFrequency.HOURS_3: timedelta(hours=3),
    CheckFrequency.HOURS_6: timedelta(hours=6),
    CheckFrequency.HOURS_12: timedelta(hours=12),
    CheckFrequency.HOURS_24: timedelta(hours=24),
}

DEFAULT_CHECK_INTERVAL = CHECK_INTERVALS[CheckFrequency.HOURS_6]


def check_interval(frequency: Optional[Union[CheckFrequency, str]]) -> timedelta:
    """Interval between checks; unknown or missing values fall back to 6 hours."""
    try:
        return CHECK_INTERVALS[CheckFrequency(frequency)]
    except (ValueError, KeyError):
        return DEFAULT_CHECK_INTERVAL


class FlightAlert(Base):
    """
    A user's standing request to monitor a route for a price drop.

    Scheduling state lives on the row: ``next_check_at`` is set while the alert
    is ACTIVE and cleared when it is paused or deleted. The scanner picks up any
    active alert whose ``next_check_at`` has passed.
    """
    __tablename__ = "flight_alerts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    # Route
    departure_city = Column(String(100), nullable=False)
    departure_airport_code = Column(String(3), nullable=True)  # IATA code
    destination_city = Column(String(100), nullable=False)
    destination_airport_code = Column(String(3), nullable=True)  # IATA code

    trip_type = Column(SQLEnum(TripType), default=TripType.ONE_WAY, nullable=False)

    # Outbound dates; departure_date_end marks a flexible range
    departure_date = Column(Date, nullable=False)
    departure_date_end = Column(Date, nullable=True)
    departure_day_shift = Column(JSON, default=list, nullable=False)  # e.g. ["MORNING", "NIGHT"]

    # Return leg, round trips only
    return_date = Column(Date, nullable=True)
    return_date_end = Column(Date, nullable=True)
    return_day_shift = Column(JSON, default=list, nullable=False)

    price_threshold = Column(Numeric(10, 2), nullable=False)
    airlines = Column(JSON, default=list, nullable=False)  # carrier codes, empty = any
    max_flight_duration = Column(Integer, nullable=True)  # minutes, outbound only

    check_frequency = Column(SQLEnum(CheckFrequency), default=CheckFrequency.HOURS_6, nullable=False)
    status = Column(SQLEnum(AlertStatus), default=AlertStatus.ACTIVE, nullable=False, index=True)

    last_checked_at = Column(DateTime, nullable=True)
    next_check_at = Column(DateTime, nullable=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    price_records = relationship(
        "PriceRecord",
        back_populates="alert",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def check_interval(self) -> timedelta:
        return check_interval(self.check_frequency)

    @property
    def route_name(self) -> str:
        origin = self.departure_airport_code or self.departure_city
        destination = self.destination_airport_code or self.destination_city
        return f"{origin}-{destination}"

    def __repr__(self) -> str:
        return f"<FlightAlert {self.id}: {self.route_name} ({self.status.value if self.status else None})>"
