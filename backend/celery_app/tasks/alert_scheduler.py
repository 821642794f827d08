from celery import shared_task

from app.database import SessionLocal
from app.scheduler import scan_due_alerts as scan
from celery_app.tasks.price_checks import enqueue_price_check


@shared_task
def scan_due_alerts():
    db = SessionLocal()

    try:
        enqueued = scan(db, enqueue_price_check)
        return {"enqueued": enqueued}

    finally:
        db.close()
