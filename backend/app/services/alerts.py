"""
Alert lifecycle: create, edit, pause, resume and delete.

Keeps the scheduling invariants on every write: ``next_check_at`` is set only
while an alert is ACTIVE, and DELETED is terminal.
"""
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.flight_alert import FlightAlert, AlertStatus, TripType, check_interval
from app.models.price_record import PriceRecord
from app.schemas.alert import AlertCreate, AlertUpdate, AlertResponse
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class AlertValidationError(ValueError):
    pass


class AlertService:
    def __init__(self, db: Session):
        self.db = db

    def _owned(self, user_id: str, alert_id: int) -> Optional[FlightAlert]:
        alert = self.db.get(FlightAlert, alert_id)
        if not alert or alert.user_id != user_id or alert.status == AlertStatus.DELETED:
            return None
        return alert

    def _price_summaries(self, alert_ids: List[int]) -> Dict[int, Tuple]:
        if not alert_ids:
            return {}
        rows = self.db.query(
            PriceRecord.alert_id,
            func.min(PriceRecord.price),
            func.count(PriceRecord.id),
        ).filter(
            PriceRecord.alert_id.in_(alert_ids)
        ).group_by(PriceRecord.alert_id).all()
        return {alert_id: (lowest, count) for alert_id, lowest, count in rows}

    def serialize(self, alert: FlightAlert, summary: Optional[Tuple] = None) -> AlertResponse:
        if summary is None:
            summary = self._price_summaries([alert.id]).get(alert.id)
        lowest, count = summary or (None, 0)
        response = AlertResponse.model_validate(alert)
        response.lowest_price = lowest
        response.price_record_count = count
        return response

    def list_alerts(self, user_id: str, status: Optional[AlertStatus] = None) -> List[AlertResponse]:
        query = self.db.query(FlightAlert).filter(FlightAlert.user_id == user_id)
        if status:
            query = query.filter(FlightAlert.status == status)
        else:
            query = query.filter(FlightAlert.status != AlertStatus.DELETED)
        alerts = query.order_by(FlightAlert.created_at.desc(), FlightAlert.id.desc()).all()

        summaries = self._price_summaries([a.id for a in alerts])
        return [self.serialize(a, summaries.get(a.id)) for a in alerts]

    def get_alert(self, user_id: str, alert_id: int) -> Optional[AlertResponse]:
        alert = self._owned(user_id, alert_id)
        return self.serialize(alert) if alert else None

    def create_alert(self, user_id: str, data: AlertCreate) -> AlertResponse:
        values = data.model_dump()
        if data.trip_type == TripType.ONE_WAY:
            values.update(return_date=None, return_date_end=None, return_day_shift=[])

        alert = FlightAlert(
            user_id=user_id,
            status=AlertStatus.ACTIVE,
            next_check_at=utcnow(),
            **values,
        )
        self.db.add(alert)
        self.db.commit()
        self.db.refresh(alert)

        logger.info(f"Created alert {alert.id} ({alert.route_name}) for user {user_id}")
        return self.serialize(alert, (None, 0))

    def update_alert(self, user_id: str, alert_id: int, data: AlertUpdate) -> Optional[AlertResponse]:
        alert = self._owned(user_id, alert_id)
        if not alert:
            return None

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is None and field in ("departure_day_shift", "return_day_shift", "airlines"):
                value = []
            setattr(alert, field, value)

        if alert.trip_type == TripType.ONE_WAY:
            alert.return_date = None
            alert.return_date_end = None
            alert.return_day_shift = []
        elif not alert.return_date:
            self.db.rollback()
            raise AlertValidationError("Return date is required for round-trip flights")

        if "check_frequency" in update_data and alert.status == AlertStatus.ACTIVE:
            alert.next_check_at = utcnow() + check_interval(alert.check_frequency)

        self.db.commit()
        self.db.refresh(alert)
        return self.serialize(alert)

    def delete_alert(self, user_id: str, alert_id: int) -> bool:
        alert = self._owned(user_id, alert_id)
        if not alert:
            return False

        alert.status = AlertStatus.DELETED
        alert.next_check_at = None
        self.db.commit()
        logger.info(f"Deleted alert {alert_id}")
        return True

    def pause_alert(self, user_id: str, alert_id: int) -> Optional[AlertResponse]:
        alert = self._owned(user_id, alert_id)
        if not alert or alert.status != AlertStatus.ACTIVE:
            return None

        alert.status = AlertStatus.PAUSED
        alert.next_check_at = None
        self.db.commit()
        self.db.refresh(alert)
        return self.serialize(alert)

    def resume_alert(self, user_id: str, alert_id: int) -> Optional[AlertResponse]:
        alert = self._owned(user_id, alert_id)
        if not alert or alert.status != AlertStatus.PAUSED:
            return None

        alert.status = AlertStatus.ACTIVE
        alert.next_check_at = utcnow()
        self.db.commit()
        self.db.refresh(alert)
        return self.serialize(alert)
