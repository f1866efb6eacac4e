"""Queue client for the invoice worker (task names only, no worker imports)."""
from celery import Celery

from packages.common.config import get_settings

PROCESS_INVOICE_TASK = "services.worker.tasks.process_invoice.process_invoice_task"

settings = get_settings()

queue_client = Celery(
    "finance_insight_api",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)


def queue_invoice_processing(bucket_name: str, object_key: str) -> str:
    """Send one uploaded object to the worker; returns the Celery task id."""
    result = queue_client.send_task(
        PROCESS_INVOICE_TASK,
        args=[bucket_name, object_key],
        queue="invoices",
    )
    return result.id
