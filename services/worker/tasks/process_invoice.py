"""
Invoice processing task

Flow for one uploaded object:
1. Extract: Textract AnalyzeExpense → summary + line items
2. Classify: vendor category, per-item categories for grocery vendors
3. Save: invoice record with products and vendor category

Stages run in order and each takes the previous stage's payload. A
classification failure comes back as {"status": "Error", ...} and stops
the run before anything is saved.
"""
import asyncio
from typing import Any, Dict, Optional
from urllib.parse import unquote_plus

import structlog

from packages.common.config import Settings, get_settings
from packages.common.database import DatabaseSessionManager
from packages.common.invoice_repository import InvoiceRepository
from packages.common.schemas.invoice import SourceObject, is_error_payload
from packages.domain.classification import ClassificationService, build_classification_service
from packages.parsers.textract_expense import TextractExpenseProvider
from services.worker.celery_app import app

logger = structlog.get_logger()


def file_id_from_object_key(object_key: str) -> str:
    """
    Derive the invoice id from an uploaded object key.

    Keys arrive URL-encoded in S3 notifications ("+" for spaces); the id is
    everything before the first ".".
    """
    decoded = unquote_plus(object_key)
    return decoded.split(".")[0]


class InvoicePipeline:
    """
    Runs extract → classify → save for uploaded objects.

    Usage:
        pipeline = InvoicePipeline(extractor, classification_service, repository)
        result = await pipeline.process_uploaded_object("uploads", "abc.jpg")
    """

    def __init__(
        self,
        extractor: TextractExpenseProvider,
        classification_service: ClassificationService,
        repository: InvoiceRepository,
    ):
        self.extractor = extractor
        self.classification_service = classification_service
        self.repository = repository

    async def process_uploaded_object(self, bucket_name: str, object_key: str) -> Dict[str, Any]:
        """
        Process one uploaded receipt.

        Returns:
            The saved event, or the classification error payload

        Raises:
            ExtractionError: If Textract failed
            ValidationError: If the classified event cannot be saved
        """
        # Notification keys are URL-encoded; each value below decodes the raw key once
        source_object = SourceObject(
            bucket_name=bucket_name,
            object_key=unquote_plus(object_key),
            file_id=file_id_from_object_key(object_key),
        )
        object_key = source_object.object_key

        logger.info("invoice_processing_started",
                   bucket=bucket_name,
                   key=object_key,
                   file_id=source_object.file_id)

        # Step 1: Extract fields (boto3 is blocking)
        extracted_event = await asyncio.to_thread(self.extractor.extract_invoice, source_object)

        # Step 2: Classify
        classified = await self.classification_service.classify_event(extracted_event.to_payload())
        if is_error_payload(classified):
            logger.error("invoice_processing_stopped",
                        file_id=source_object.file_id,
                        error=classified.get("errorMessage"))
            return classified

        # Step 3: Save
        saved = await self.repository.save_classified(classified)

        logger.info("invoice_processing_complete",
                   file_id=source_object.file_id,
                   vendor_category=saved.get("vendorCategory"),
                   line_items=len(saved["extractedData"]["lineItems"]))
        return saved


async def run_invoice_pipeline(
    bucket_name: str,
    object_key: str,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Build the pipeline for this run, process one object, release resources"""
    settings = settings or get_settings()

    sessionmanager = DatabaseSessionManager()
    await sessionmanager.init(settings.database_url, echo=settings.sql_echo)
    try:
        pipeline = InvoicePipeline(
            extractor=TextractExpenseProvider(aws_region=settings.aws_region),
            classification_service=build_classification_service(settings, sessionmanager),
            repository=InvoiceRepository(sessionmanager),
        )
        return await pipeline.process_uploaded_object(bucket_name, object_key)
    finally:
        await sessionmanager.close()


@app.task(name="services.worker.tasks.process_invoice.process_invoice_task")
def process_invoice_task(bucket_name: str, object_key: str) -> Dict[str, Any]:
    """Celery entry point for one uploaded object"""
    return asyncio.run(run_invoice_pipeline(bucket_name, object_key))
