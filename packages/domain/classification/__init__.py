"""
Classification Module - vendor and line-item spending categories

Two-level process:
1. Vendor (AI, once per invoice): category + grocery flag
2. Line items (grocery vendors only): cache lookup, AI on miss

Cache strategy:
- First time seeing an item name → AI call
- Subsequent times → Cache hit (free)
- Non-grocery vendors → vendor category for every line, no item calls

Example flow:
- "Super Abarrotes SA" → AI → Supermercado, grocery
- "Pan" → AI → "Panadería" → cached as "pan"
- "Ferretería El Clavo" → AI → Ferretería, not grocery → every line "Ferretería"
"""

from packages.domain.classification.classification_service import ClassificationService
from packages.domain.classification.factory import build_classification_service
from packages.domain.classification.inference_client import (
    BedrockInferenceClient,
    InferenceClient,
)
from packages.domain.classification.product_classifier import ProductClassifier
from packages.domain.classification.schemas import (
    CategorizationSource,
    ProductClassification,
    VendorInfo,
)
from packages.domain.classification.vendor_classifier import VendorClassifier

__all__ = [
    'BedrockInferenceClient',
    'CategorizationSource',
    'ClassificationService',
    'InferenceClient',
    'ProductClassification',
    'ProductClassifier',
    'VendorClassifier',
    'VendorInfo',
    'build_classification_service',
]
