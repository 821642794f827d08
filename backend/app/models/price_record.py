from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Text, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class PriceRecord(Base):
    """
    One matching offer observed for an alert at a point in time.

    Append-only: records are never updated, they form the time series behind
    the lowest-price and daily-minimum reports.
    """
    __tablename__ = "price_records"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    alert_id = Column(
        Integer,
        ForeignKey("flight_alerts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    airline = Column(String(3), nullable=False)  # carrier code
    flight_number = Column(String(10), nullable=False)
    departure_time = Column(DateTime, nullable=False)
    arrival_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    stops = Column(Integer, default=0, nullable=False)
    booking_link = Column(Text, nullable=True)

    checked_at = Column(DateTime, server_default=func.now(), nullable=False)

    alert = relationship("FlightAlert", back_populates="price_records")

    __table_args__ = (
        Index("ix_price_records_alert_checked", "alert_id", "checked_at"),
    )

    def __repr__(self) -> str:
        return f"<PriceRecord {self.id}: {self.price} {self.currency} {self.flight_number}>"
