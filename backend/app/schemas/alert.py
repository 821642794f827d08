from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from app.models.flight_alert import TripType, DayShift, CheckFrequency, AlertStatus


def _airport_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().upper()
    if len(value) != 3:
        raise ValueError("Airport code must be 3 characters")
    return value


class AlertCreate(BaseModel):
    departure_city: str = Field(..., min_length=1)
    departure_airport_code: str
    destination_city: str = Field(..., min_length=1)
    destination_airport_code: str
    trip_type: TripType
    departure_date: date
    departure_date_end: Optional[date] = None
    departure_day_shift: List[DayShift] = Field(..., min_length=1)
    return_date: Optional[date] = None
    return_date_end: Optional[date] = None
    return_day_shift: List[DayShift] = Field(default_factory=list)
    price_threshold: Decimal = Field(..., gt=0, le=99999999)
    airlines: List[str] = Field(default_factory=list)
    max_flight_duration: Optional[int] = Field(None, gt=0)
    check_frequency: CheckFrequency = CheckFrequency.HOURS_6

    normalize_codes = field_validator("departure_airport_code", "destination_airport_code")(_airport_code)

    @field_validator("airlines")
    @classmethod
    def normalize_airlines(cls, value: List[str]) -> List[str]:
        return [code.strip().upper() for code in value if code.strip()]

    @model_validator(mode="after")
    def check_return_date(self) -> "AlertCreate":
        if self.trip_type == TripType.ROUND_TRIP and not self.return_date:
            raise ValueError("Return date is required for round-trip flights")
        return self


class AlertUpdate(BaseModel):
    departure_city: Optional[str] = Field(None, min_length=1)
    departure_airport_code: Optional[str] = None
    destination_city: Optional[str] = Field(None, min_length=1)
    destination_airport_code: Optional[str] = None
    trip_type: Optional[TripType] = None
    departure_date: Optional[date] = None
    departure_date_end: Optional[date] = None
    departure_day_shift: Optional[List[DayShift]] = Field(None, min_length=1)
    return_date: Optional[date] = None
    return_date_end: Optional[date] = None
    return_day_shift: Optional[List[DayShift]] = None
    price_threshold: Optional[Decimal] = Field(None, gt=0, le=99999999)
    airlines: Optional[List[str]] = None
    max_flight_duration: Optional[int] = Field(None, gt=0)
    check_frequency: Optional[CheckFrequency] = None

    normalize_codes = field_validator("departure_airport_code", "destination_airport_code")(_airport_code)

    @field_validator(
        "departure_city",
        "destination_city",
        "trip_type",
        "departure_date",
        "price_threshold",
        "check_frequency",
    )
    @classmethod
    def reject_null(cls, value):
        # Omit the field to leave it unchanged; these columns are NOT NULL
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @field_validator("airlines")
    @classmethod
    def normalize_airlines(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return [code.strip().upper() for code in value if code.strip()]


class AlertResponse(BaseModel):
    id: int
    departure_city: str
    departure_airport_code: Optional[str] = None
    destination_city: str
    destination_airport_code: Optional[str] = None
    trip_type: TripType
    departure_date: date
    departure_date_end: Optional[date] = None
    departure_day_shift: List[DayShift]
    return_date: Optional[date] = None
    return_date_end: Optional[date] = None
    return_day_shift: List[DayShift]
    price_threshold: Decimal
    airlines: List[str]
    max_flight_duration: Optional[int] = None
    check_frequency: CheckFrequency
    status: AlertStatus
    last_checked_at: Optional[datetime] = None
    next_check_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    lowest_price: Optional[Decimal] = None
    price_record_count: int = 0

    class Config:
        from_attributes = True
