"""
Invoice pipeline schemas (Pydantic models)

Stage payloads travel between extract -> classify -> save as JSON with
camelCase keys (sourceObject, extractedData, lineItems, vendorCategory).
Models accept either the alias or the field name and dump by alias.
"""
from typing import Any, Dict, List, Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from packages.common.errors import ValidationError

# Summary field names produced by Textract AnalyzeExpense
VENDOR_NAME = "VENDOR_NAME"
COUNTRY = "COUNTRY"
TOTAL = "TOTAL"
INVOICE_RECEIPT_DATE = "INVOICE_RECEIPT_DATE"

# Line item field names
ITEM = "ITEM"
PRICE = "PRICE"
QUANTITY = "QUANTITY"
CATEGORY = "CATEGORY"

DEFAULT_VENDOR_CATEGORY = "General"


class PipelineModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-compatible dict with camelCase keys"""
        return self.model_dump(by_alias=True, exclude_none=True)


class SourceObject(PipelineModel):
    """Uploaded object that started the pipeline"""
    bucket_name: str = Field(..., alias="bucketName")
    object_key: str = Field(..., alias="objectKey")
    file_id: Optional[str] = Field(None, alias="fileId")


class ExtractedDocument(PipelineModel):
    """
    Fields extracted from one receipt.

    summary: field type -> detected text (VENDOR_NAME, COUNTRY, TOTAL, ...)
    line_items: one mapping per purchased row (ITEM, PRICE, QUANTITY, ...)
    """
    summary: Dict[str, str] = Field(default_factory=dict)
    line_items: List[Dict[str, str]] = Field(default_factory=list, alias="lineItems")

    @property
    def vendor_name(self) -> Optional[str]:
        return self.summary.get(VENDOR_NAME)

    @property
    def country(self) -> Optional[str]:
        return self.summary.get(COUNTRY)


class ClassifiedDocument(PipelineModel):
    """ExtractedDocument after classification: every line item carries CATEGORY"""
    summary: Dict[str, str] = Field(default_factory=dict)
    line_items: List[Dict[str, str]] = Field(default_factory=list, alias="lineItems")
    vendor_category: str = Field(..., alias="vendorCategory")


class InvoiceEvent(PipelineModel):
    """Payload handed from one pipeline stage to the next"""
    source_object: SourceObject = Field(..., alias="sourceObject")
    extracted_data: ExtractedDocument = Field(..., alias="extractedData")
    vendor_category: Optional[str] = Field(None, alias="vendorCategory")

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "InvoiceEvent":
        """
        Validate a raw stage payload.

        Raises:
            ValidationError: If required fields are missing or malformed
        """
        try:
            return cls.model_validate(payload)
        except pydantic.ValidationError as e:
            missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ValidationError(
                f"Event is missing required data: {', '.join(missing)}",
                missing=missing,
            ) from e


class ErrorPayload(PipelineModel):
    """Structured failure returned by a stage instead of a raw exception"""
    status: Literal["Error"] = "Error"
    error_message: str = Field(..., alias="errorMessage")


def is_error_payload(payload: Dict[str, Any]) -> bool:
    """True if a stage returned an ErrorPayload"""
    return payload.get("status") == "Error"
