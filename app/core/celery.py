from celery import Celery
import structlog

from app.core.config import settings

logger = structlog.get_logger(__name__)

celery_app = Celery(
    "branch_booking",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.services.notification_service"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    task_routes={
        "app.services.notification_service.*": {"queue": "notifications"},
    },
    # Notifications are fire-and-forget; nobody reads their results
    task_ignore_result=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,
)
