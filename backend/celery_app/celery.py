from celery import Celery
from kombu import Queue
from app.config import get_settings

settings = get_settings()

SCHEDULER_QUEUE = "alert-scheduler"
PRICE_CHECK_QUEUE = "price-check"

app = Celery(
    "farewatch",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "celery_app.tasks.alert_scheduler",
        "celery_app.tasks.price_checks",
    ]
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,
    # At-least-once: ack after the task body runs, requeue if the worker dies
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.price_check_concurrency,
    result_expires=3600,
    task_queues=(
        Queue(SCHEDULER_QUEUE),
        Queue(PRICE_CHECK_QUEUE),
    ),
    task_routes={
        "celery_app.tasks.alert_scheduler.*": {"queue": SCHEDULER_QUEUE},
        "celery_app.tasks.price_checks.*": {"queue": PRICE_CHECK_QUEUE},
    },
)

app.conf.beat_schedule = {
    "scan-due-alerts": {
        "task": "celery_app.tasks.alert_scheduler.scan_due_alerts",
        "schedule": float(settings.scheduler_interval_seconds),
        "options": {"expires": settings.scheduler_interval_seconds},
    },
}
