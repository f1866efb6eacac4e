"""
Product Classifier - per line item, cache first, AI on miss

Caching Strategy:
- First time seeing an item name → AI call → cache write
- Subsequent times (any vendor, any invoice) → cache hit, no AI call
- "Otros" replies are returned but not cached, so the item is retried later

Inference errors are NOT absorbed here; they go to the caller.
"""
from typing import Optional

import structlog

from packages.common.product_cache import CategoryCache, is_cacheable
from packages.domain.classification.inference_client import InferenceClient
from packages.domain.classification.schemas import (
    FALLBACK_PRODUCT_CATEGORY,
    CategorizationSource,
    ProductClassification,
)

logger = structlog.get_logger()


class ProductClassifier:
    """
    Classify purchased items into spending categories.

    Usage:
        classifier = ProductClassifier(inference_client, category_cache)
        category = await classifier.classify_product("Leche Entera", "Lider", "CL")
    """

    def __init__(self, inference_client: InferenceClient, cache: CategoryCache):
        self.inference = inference_client
        self.cache = cache

    async def classify_product(
        self,
        item_name: str,
        vendor_name: Optional[str],
        country: Optional[str],
    ) -> str:
        """
        Category for one item.

        Raises:
            InferenceError: If the item missed the cache and inference failed
        """
        result = await self.classify_item(item_name, vendor_name, country)
        return result.category

    async def classify_item(
        self,
        item_name: str,
        vendor_name: Optional[str],
        country: Optional[str],
    ) -> ProductClassification:
        """
        Category for one item, with the source it came from.

        Args:
            item_name: ITEM field of the line
            vendor_name: Vendor, for prompt context
            country: Country, for prompt context

        Returns:
            ProductClassification (source CACHE or AI)

        Raises:
            InferenceError: If the item missed the cache and inference failed
        """
        if not item_name or not item_name.strip():
            logger.warning("product_name_missing", vendor=vendor_name)
            return ProductClassification(
                item_name=item_name or "",
                category=FALLBACK_PRODUCT_CATEGORY,
                source=CategorizationSource.DEFAULT,
            )

        # Step 1: Check cache first
        cached = await self.cache.get(item_name)
        if cached:
            logger.info("product_cache_hit",
                       item=item_name,
                       category=cached)
            return ProductClassification(
                item_name=item_name,
                category=cached,
                source=CategorizationSource.CACHE,
            )

        # Step 2: Cache miss - call AI
        logger.info("product_cache_miss",
                   item=item_name,
                   vendor=vendor_name,
                   message="Calling AI for classification")

        prompt = self._build_product_prompt(item_name, vendor_name, country)
        category = await self.inference.infer(prompt)

        # Step 3: Cache informative answers only
        if is_cacheable(category):
            await self.cache.put(item_name, category)

        return ProductClassification(
            item_name=item_name,
            category=category or FALLBACK_PRODUCT_CATEGORY,
            source=CategorizationSource.AI,
        )

    def _build_product_prompt(
        self,
        item_name: str,
        vendor_name: Optional[str],
        country: Optional[str],
    ) -> str:
        return f"""Asigna una única categoría de compra al siguiente producto de supermercado.

PRODUCTO: "{item_name}"
TIENDA: "{vendor_name or ''}"
PAÍS: "{country or ''}"

La categoría debe ser una sola palabra, en singular y con mayúscula inicial
(ej: Lácteo, Panadería, Bebida, Limpieza). Si no es posible determinarla,
responde "{FALLBACK_PRODUCT_CATEGORY}".
Responde únicamente con el nombre de la categoría, sin explicaciones."""
