"""
Celery worker for uploaded invoices

Start with:
    celery -A services.worker.celery_app worker -Q invoices
"""
import structlog
from celery import Celery
from celery.signals import worker_process_init

from packages.common.config import get_settings
from packages.common.logging_config import configure_logging

logger = structlog.get_logger()
settings = get_settings()

app = Celery(
    "finance_insight_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

app.conf.update(
    # Stage payloads are plain JSON dicts
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,

    # One invoice per task; redeliver if the worker dies mid-run
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # Per-invoice deadline
    task_time_limit=300,
    task_soft_time_limit=270,

    result_expires=24 * 3600,
    task_default_queue="invoices",
    task_routes={
        "services.worker.tasks.process_invoice.*": {"queue": "invoices"},
    },
)

# Registers process_invoice_task on the app
from services.worker.tasks import process_invoice  # noqa: E402,F401


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    configure_logging(settings.log_level)
    logger.info("invoice_worker_process_started",
                environment=settings.environment,
                queue="invoices")
