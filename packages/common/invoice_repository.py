"""
Invoice Repository - invoice records for uploaded documents

Lifecycle:
1. Upload URL issued → create_pending() stores id + created_at
2. Pipeline finished → save_classified() fills date, total, store,
   products (with categories) and vendor category

Unlike classification, persistence failures are raised so the run is
marked failed.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from packages.common.database import DatabaseSessionManager
from packages.common.errors import ValidationError
from packages.common.models import Invoice
from packages.common.schemas.invoice import (
    CATEGORY,
    DEFAULT_VENDOR_CATEGORY,
    INVOICE_RECEIPT_DATE,
    ITEM,
    PRICE,
    QUANTITY,
    TOTAL,
    VENDOR_NAME,
)

logger = structlog.get_logger()


def parse_amount(value: Optional[str]) -> Optional[float]:
    """
    Parse an extracted amount ("$1,234.50", "CLP 990") into a float.

    Returns None when nothing numeric is present.
    """
    if value is None:
        return None
    cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in ".-")
    if not cleaned or cleaned in {".", "-"}:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


class InvoiceRepository:
    """Database operations for invoice records"""

    def __init__(self, sessionmanager: DatabaseSessionManager):
        self.sessionmanager = sessionmanager

    async def create_pending(self, file_id: str) -> None:
        """Create the invoice record for a freshly issued upload"""
        async with self.sessionmanager.session() as db:
            db.add(Invoice(id=file_id, created_at=datetime.now(timezone.utc)))

        logger.info("invoice_created", file_id=file_id)

    async def get(self, file_id: str) -> Optional[Invoice]:
        async with self.sessionmanager.session() as db:
            return await db.get(Invoice, file_id)

    async def save_classified(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persistence stage: store the classified invoice.

        Args:
            event: {"sourceObject": {"fileId": ...}, "extractedData":
                {"summary": ..., "lineItems": ...}, "vendorCategory": ...}

        Returns:
            The event, unchanged

        Raises:
            ValidationError: If fileId, summary or lineItems is missing
        """
        file_id = (event.get("sourceObject") or {}).get("fileId")
        extracted = event.get("extractedData") or {}
        summary = extracted.get("summary")
        line_items = extracted.get("lineItems")

        missing = []
        if not file_id:
            missing.append("fileId")
        if summary is None:
            missing.append("summary")
        if line_items is None:
            missing.append("lineItems")
        if missing:
            raise ValidationError(
                f"Event is missing required data: {', '.join(missing)}",
                missing=missing,
            )

        values = {
            "receipt_date": summary.get(INVOICE_RECEIPT_DATE),
            "total": parse_amount(summary.get(TOTAL)),
            "store": (summary.get(VENDOR_NAME) or "").replace("\n", " "),
            "products": self._build_products(line_items),
            "vendor_category": event.get("vendorCategory") or DEFAULT_VENDOR_CATEGORY,
        }

        async with self.sessionmanager.session() as db:
            invoice = await db.get(Invoice, file_id)
            if invoice is None:
                invoice = Invoice(id=file_id, created_at=datetime.now(timezone.utc))
                db.add(invoice)
            for column, value in values.items():
                setattr(invoice, column, value)

        logger.info("invoice_saved",
                   file_id=file_id,
                   store=values["store"],
                   total=values["total"],
                   products=len(values["products"]),
                   vendor_category=values["vendor_category"])
        return event

    @staticmethod
    def _build_products(line_items: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        return [
            {
                ITEM: item.get(ITEM),
                PRICE: parse_amount(item.get(PRICE)),
                QUANTITY: item.get(QUANTITY) or "1",
                CATEGORY: item.get(CATEGORY),
            }
            for item in line_items
        ]
