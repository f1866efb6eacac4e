"""
Invoices API Router
Issues upload URLs and accepts upload notifications
"""
import json
import uuid
from typing import Any, Dict

import structlog
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from apps.api.tasks import queue_invoice_processing
from packages.common.config import get_settings
from packages.common.errors import ConfigurationError
from packages.common.invoice_repository import InvoiceRepository

logger = structlog.get_logger()
router = APIRouter()
settings = get_settings()


def get_invoice_repository(request: Request) -> InvoiceRepository:
    """Repository bound to the app's session manager"""
    return InvoiceRepository(request.app.state.sessionmanager)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@router.post("/upload-url")
async def create_upload_url(
    request: Request,
    repository: InvoiceRepository = Depends(get_invoice_repository),
):
    """
    Issue a presigned S3 upload URL for a new receipt

    - **format**: file extension of the image to upload (e.g. "jpg")

    Creates the invoice record and returns its id with the upload URL.
    Uploading to the URL starts processing.
    """
    raw_body = await request.body()
    if not raw_body:
        return _message(status.HTTP_400_BAD_REQUEST, "Request body is empty.")

    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError:
        return _message(status.HTTP_400_BAD_REQUEST, "Request body is not valid JSON.")

    file_format = body.get("format") if isinstance(body, dict) else None
    if not file_format:
        return _message(status.HTTP_400_BAD_REQUEST, "The format of the file to upload is required.")

    file_id = str(uuid.uuid4())
    object_key = f"{file_id}.{file_format}"

    try:
        if not settings.upload_bucket_name:
            raise ConfigurationError("UPLOAD_BUCKET_NAME is not set")

        # 1. Invoice record
        await repository.create_pending(file_id)

        # 2. Presigned upload URL
        upload_url = request.app.state.s3.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": settings.upload_bucket_name,
                "Key": object_key,
                "ContentType": "image/jpeg",
            },
            ExpiresIn=settings.upload_url_expires_seconds,
        )
    except (ConfigurationError, SQLAlchemyError, ClientError, BotoCoreError) as e:
        logger.error("upload_url_failed",
                    file_id=file_id,
                    error=str(e),
                    exc_info=True)
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error.")

    logger.info("upload_url_issued", file_id=file_id, key=object_key)
    return {"uploadUrl": upload_url, "fileId": file_id}


@router.post("/uploaded", status_code=status.HTTP_202_ACCEPTED)
async def object_uploaded(notification: Dict[str, Any]):
    """
    S3 ObjectCreated notification: queue processing for each uploaded object
    """
    queued = []
    for record in notification.get("Records") or []:
        s3_info = record.get("s3") or {}
        bucket_name = (s3_info.get("bucket") or {}).get("name")
        object_key = (s3_info.get("object") or {}).get("key")
        if not bucket_name or not object_key:
            logger.warning("upload_notification_record_skipped", record=record)
            continue

        task_id = queue_invoice_processing(bucket_name, object_key)
        logger.info("invoice_processing_queued",
                   bucket=bucket_name,
                   key=object_key,
                   task_id=task_id)
        queued.append({"objectKey": object_key, "taskId": task_id})

    return {"queued": queued}
