"""
Data schemas for classification module
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from packages.common.schemas.invoice import DEFAULT_VENDOR_CATEGORY

# Returned when a product cannot be classified; never cached
FALLBACK_PRODUCT_CATEGORY = "Otros"


class CategorizationSource(str, Enum):
    """Source of a line item's category"""
    CACHE = "cache"      # Found in product_categories cache
    AI = "ai"            # Inference call
    DEFAULT = "default"  # No item name to classify


class VendorInfo(BaseModel):
    """
    Vendor classification for one invoice.

    Never persisted; lives for one pipeline run.
    """
    model_config = ConfigDict(populate_by_name=True)

    category: str = Field(..., description="Vendor category (e.g. 'Supermercado')")
    is_grocery: bool = Field(..., alias="isGrocery",
                             description="Line items are classified individually when true")

    @classmethod
    def default(cls) -> "VendorInfo":
        return cls(category=DEFAULT_VENDOR_CATEGORY, is_grocery=False)


class ProductClassification(BaseModel):
    """Category decided for one line item and where it came from"""
    item_name: str
    category: str
    source: CategorizationSource
