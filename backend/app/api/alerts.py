from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from app.api.deps import get_current_user_id
from app.database import get_db
from app.models.flight_alert import AlertStatus
from app.schemas import AlertCreate, AlertUpdate, AlertResponse
from app.services.alerts import AlertService, AlertValidationError

router = APIRouter()


@router.get("", response_model=List[AlertResponse])
async def list_alerts(
    status: Optional[AlertStatus] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if status == AlertStatus.DELETED:
        raise HTTPException(status_code=400, detail="Deleted alerts cannot be listed")
    return AlertService(db).list_alerts(user_id, status)


@router.post("", response_model=AlertResponse, status_code=201)
async def create_alert(
    alert: AlertCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return AlertService(db).create_alert(user_id, alert)


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    alert = AlertService(db).get_alert(user_id, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.put("/{alert_id}", response_model=AlertResponse)
async def update_alert(
    alert_id: int,
    alert_update: AlertUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        alert = AlertService(db).update_alert(user_id, alert_id, alert_update)
    except AlertValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.delete("/{alert_id}")
async def delete_alert(
    alert_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not AlertService(db).delete_alert(user_id, alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"status": "deleted", "id": alert_id}


@router.post("/{alert_id}/pause", response_model=AlertResponse)
async def pause_alert(
    alert_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    alert = AlertService(db).pause_alert(user_id, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found or not active")
    return alert


@router.post("/{alert_id}/resume", response_model=AlertResponse)
async def resume_alert(
    alert_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    alert = AlertService(db).resume_alert(user_id, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found or not paused")
    return alert
