"""
Composition root for the classification pipeline

Builds the inference client, cache and classifiers once per process and
wires them together. Nothing in this package keeps module-level clients.
"""
from typing import Optional

import structlog

from packages.common.config import Settings
from packages.common.database import DatabaseSessionManager
from packages.common.product_cache import CategoryCache
from packages.domain.classification.classification_service import ClassificationService
from packages.domain.classification.inference_client import (
    BedrockInferenceClient,
    InferenceClient,
)
from packages.domain.classification.product_classifier import ProductClassifier
from packages.domain.classification.vendor_classifier import VendorClassifier

logger = structlog.get_logger()


def build_classification_service(
    settings: Settings,
    sessionmanager: DatabaseSessionManager,
    inference_client: Optional[InferenceClient] = None,
) -> ClassificationService:
    """
    Wire a ClassificationService.

    Args:
        settings: Application settings
        sessionmanager: Initialized session manager backing the category cache
        inference_client: Override for the Bedrock client (tests)

    Raises:
        ConfigurationError: If BEDROCK_MODEL_ID is not configured
    """
    if inference_client is None:
        inference_client = BedrockInferenceClient(
            model_id=settings.bedrock_model_id,
            aws_region=settings.aws_region,
            max_tokens=settings.inference_max_tokens,
        )

    cache = CategoryCache(sessionmanager)

    service = ClassificationService(
        vendor_classifier=VendorClassifier(inference_client),
        product_classifier=ProductClassifier(inference_client, cache),
    )
    logger.info("classification_service_built")
    return service
