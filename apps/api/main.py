"""
Finance Insight API

Issues presigned upload URLs, receives S3 upload notifications and exposes
health and Prometheus metrics. Processing itself runs on the Celery worker.

Run locally:
    uvicorn apps.api.main:app --reload
"""
from contextlib import asynccontextmanager

import boto3
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from apps.api.routers import invoices
from packages.common.config import get_settings
from packages.common.database import DatabaseSessionManager
from packages.common.errors import FinanceInsightError, ValidationError
from packages.common.logging_config import configure_logging

API_VERSION = "0.1.0"

settings = get_settings()
configure_logging(settings.log_level)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and the S3 client for the lifetime of the app"""
    logger.info("finance_insight_api_starting",
                environment=settings.environment,
                version=API_VERSION)

    sessionmanager = DatabaseSessionManager()
    await sessionmanager.init(settings.database_url, echo=settings.sql_echo)
    if settings.environment in ("development", "testing"):
        await sessionmanager.create_tables()

    app.state.sessionmanager = sessionmanager
    app.state.s3 = boto3.client("s3", region_name=settings.aws_region)

    try:
        yield
    finally:
        logger.info("finance_insight_api_stopping")
        await sessionmanager.close()


app = FastAPI(
    title="Finance Insight API",
    description="Receipt upload and spending classification",
    version=API_VERSION,
    lifespan=lifespan,
    openapi_url=None if settings.environment == "production" else "/openapi.json",
)

# Mobile and web clients call the API from any origin and upload to S3 directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(invoices.router, prefix="/api/v1/invoices", tags=["Invoices"])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("request_rejected",
                   path=request.url.path,
                   errors=exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request.", "errors": exc.errors()},
    )


@app.exception_handler(ValidationError)
async def payload_validation_handler(request: Request, exc: ValidationError):
    logger.warning("payload_rejected",
                   path=request.url.path,
                   missing=exc.missing)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": str(exc), "missing": exc.missing},
    )


@app.exception_handler(FinanceInsightError)
async def pipeline_error_handler(request: Request, exc: FinanceInsightError):
    logger.error("request_failed",
                 path=request.url.path,
                 error_type=type(exc).__name__,
                 error=str(exc),
                 exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error."},
    )


@app.get("/health", tags=["System"])
async def health(request: Request):
    """Liveness plus a database round trip"""
    try:
        async with request.app.state.sessionmanager.session() as db:
            await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.error("health_check_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unreachable", "error": str(e)},
        )

    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": API_VERSION,
        "database": "connected",
        "uploadBucket": settings.upload_bucket_name,
    }


@app.get("/metrics", tags=["System"])
async def metrics():
    """Prometheus scrape endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
