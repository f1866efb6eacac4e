"""
Classification Service - vendor first, then line items

Flow:
1. Vendor classification (one AI call, never raises)
2a. Grocery vendor: every line item classified concurrently
    (cache first, AI on miss), all-or-nothing
2b. Other vendor: vendor category applied to every line, no AI calls
3. Vendor category attached to the document

Example:
- "Super Abarrotes SA" (CL) → {"category": "Supermercado", "isGrocery": true}
- "Pan" → cache miss → AI → "Panadería" → cached as "pan"
- "Tornillo" → cache miss → AI → "Otros" → not cached
"""
import asyncio
from typing import Any, Dict, List, Optional

import structlog

from packages.common.metrics import invoice_classifications
from packages.common.schemas.invoice import (
    CATEGORY,
    ITEM,
    ClassifiedDocument,
    ErrorPayload,
    ExtractedDocument,
    InvoiceEvent,
)
from packages.domain.classification.product_classifier import ProductClassifier
from packages.domain.classification.schemas import (
    CategorizationSource,
    ProductClassification,
)
from packages.domain.classification.vendor_classifier import VendorClassifier

logger = structlog.get_logger()


class ClassificationService:
    """
    Orchestrates vendor and product classification for one invoice.

    Usage:
        service = ClassificationService(vendor_classifier, product_classifier)
        classified = await service.classify(extracted_document)
        print(classified.vendor_category, classified.line_items)
    """

    def __init__(self, vendor_classifier: VendorClassifier, product_classifier: ProductClassifier):
        self.vendor_classifier = vendor_classifier
        self.product_classifier = product_classifier

    async def classify(self, document: ExtractedDocument) -> ClassifiedDocument:
        """
        Classify every line item of an extracted document.

        Args:
            document: Summary and line items from the extraction stage

        Returns:
            ClassifiedDocument where every line item carries CATEGORY

        Raises:
            InferenceError: If any line item of a grocery invoice failed;
                no partially classified document is returned
        """
        vendor_name = document.vendor_name
        country = document.country

        logger.info("classification_started",
                   vendor=vendor_name,
                   country=country,
                   item_count=len(document.line_items))

        vendor_info = await self.vendor_classifier.classify_vendor(vendor_name, country)

        if vendor_info.is_grocery:
            logger.info("classifying_items_individually",
                       vendor=vendor_name,
                       vendor_category=vendor_info.category)
            results = await self._classify_line_items(document.line_items, vendor_name, country)
            line_items = [
                {**line, CATEGORY: result.category}
                for line, result in zip(document.line_items, results)
            ]
        else:
            logger.info("applying_vendor_category",
                       vendor=vendor_name,
                       vendor_category=vendor_info.category)
            line_items = [
                {**line, CATEGORY: vendor_info.category}
                for line in document.line_items
            ]

        logger.info("classification_complete",
                   vendor=vendor_name,
                   vendor_category=vendor_info.category,
                   is_grocery=vendor_info.is_grocery,
                   item_count=len(line_items))

        return ClassifiedDocument(
            summary=dict(document.summary),
            line_items=line_items,
            vendor_category=vendor_info.category,
        )

    async def _classify_line_items(
        self,
        line_items: List[Dict[str, str]],
        vendor_name: Optional[str],
        country: Optional[str],
    ) -> List[ProductClassification]:
        """
        Fan out one classification per line item and join on all of them.

        The first failure cancels the remaining calls and is re-raised.
        Results keep the order of line_items.
        """
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(
                        self.product_classifier.classify_item(
                            line.get(ITEM, ""), vendor_name, country
                        )
                    )
                    for line in line_items
                ]
        except ExceptionGroup as eg:
            first_error = eg.exceptions[0]
            logger.error("line_item_classification_failed",
                        vendor=vendor_name,
                        failed=len(eg.exceptions),
                        error=str(first_error))
            raise first_error from eg

        results = [task.result() for task in tasks]

        cache_hits = sum(1 for r in results if r.source == CategorizationSource.CACHE)
        ai_calls = sum(1 for r in results if r.source == CategorizationSource.AI)
        logger.info("batch_classification_complete",
                   vendor=vendor_name,
                   total_items=len(results),
                   cache_hits=cache_hits,
                   ai_calls=ai_calls)

        return results

    async def classify_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Classification stage handler.

        Args:
            payload: {"sourceObject": {...}, "extractedData": {...}}

        Returns:
            The event with classified extractedData and vendorCategory, or
            {"status": "Error", "errorMessage": ...} if classification failed
        """
        try:
            event = InvoiceEvent.from_payload(payload)
            classified = await self.classify(event.extracted_data)
        except Exception as e:
            invoice_classifications.labels(outcome="error").inc()
            logger.error("classification_stage_failed",
                        error=str(e),
                        exc_info=True)
            return ErrorPayload(error_message=str(e) or type(e).__name__).to_payload()

        invoice_classifications.labels(outcome="success").inc()
        result = dict(payload)
        result["extractedData"] = {
            "summary": classified.summary,
            "lineItems": classified.line_items,
        }
        result["vendorCategory"] = classified.vendor_category
        return result
