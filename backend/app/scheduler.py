"""
Due-alert scanner.

Runs on a fixed interval (Celery beat, see ``celery_app.celery``). Selects
active alerts whose ``next_check_at`` has passed and hands each id to
``enqueue``. No offers are computed here.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.services.alert_store import find_alerts_due_for_check
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Returns False when a task for the alert is already outstanding
EnqueueFn = Callable[[int], bool]


def scan_due_alerts(db: Session, enqueue: EnqueueFn, now: Optional[datetime] = None) -> int:
    """Enqueue one price check per due alert. Returns how many were enqueued."""
    now = now or utcnow()
    due_ids = find_alerts_due_for_check(db, now)

    if not due_ids:
        logger.debug("No alerts due for checking")
        return 0

    enqueued = 0
    for alert_id in due_ids:
        if enqueue(alert_id):
            enqueued += 1
        else:
            logger.debug(f"Alert {alert_id} already has a pending price check")

    logger.info(f"Due-alert scan: {len(due_ids)} due, {enqueued} enqueued")
    return enqueued
