"""
Vendor Classifier - one inference call per invoice

Decides the merchant's spending category and whether it is a grocery-type
vendor (line items classified one by one) or not (vendor category applied
to every line). Not cached.

A failure here never aborts the invoice. Backend errors, non-JSON replies
and missing keys all degrade to VendorInfo("General", is_grocery=False).
"""
import json
from typing import Any, Dict, Optional

import structlog

from packages.common.errors import InferenceError
from packages.domain.classification.inference_client import InferenceClient
from packages.domain.classification.schemas import VendorInfo

logger = structlog.get_logger()


class VendorClassifier:
    """Classify a merchant from its name and country"""

    def __init__(self, inference_client: InferenceClient):
        self.inference = inference_client

    async def classify_vendor(self, vendor_name: Optional[str], country: Optional[str]) -> VendorInfo:
        """
        Classify a vendor.

        Args:
            vendor_name: VENDOR_NAME from the receipt summary
            country: COUNTRY from the receipt summary

        Returns:
            VendorInfo; VendorInfo.default() on any failure
        """
        prompt = self._build_vendor_prompt(vendor_name, country)

        try:
            response_text = await self.inference.infer(prompt)
            vendor_info = self._parse_vendor_response(response_text)
        except Exception as e:
            logger.warning("vendor_classification_failed",
                           vendor=vendor_name,
                           country=country,
                           error_type=type(e).__name__,
                           error=str(e))
            return VendorInfo.default()

        logger.info("vendor_classified",
                   vendor=vendor_name,
                   country=country,
                   category=vendor_info.category,
                   is_grocery=vendor_info.is_grocery)
        return vendor_info

    def _build_vendor_prompt(self, vendor_name: Optional[str], country: Optional[str]) -> str:
        return f"""Clasifica el siguiente comercio a partir de su nombre.

COMERCIO: "{vendor_name or ''}"
PAÍS: "{country or ''}"

Responde ÚNICAMENTE con un objeto JSON con dos claves:
- "category": categoría del comercio (ej: Supermercado, Restaurante, Ferretería, Farmacia)
- "isGrocery": true si vende principalmente abarrotes o alimentos, false en otro caso

Ejemplo:
{{"category": "Supermercado", "isGrocery": true}}
"""

    def _parse_vendor_response(self, response_text: str) -> VendorInfo:
        """
        Parse the JSON reply.

        Raises:
            InferenceError: If the reply is not JSON or lacks the expected keys
        """
        # Model may wrap JSON in a markdown fence
        if "```json" in response_text:
            response_text = response_text.split("```json")[1].split("```")[0].strip()
        elif "```" in response_text:
            response_text = response_text.split("```")[1].split("```")[0].strip()

        try:
            data: Dict[str, Any] = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise InferenceError(f"Vendor classification reply is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise InferenceError("Vendor classification reply is not a JSON object")

        category = data.get("category")
        if not isinstance(category, str) or not category.strip() or "isGrocery" not in data:
            raise InferenceError(f"Vendor classification reply missing keys: {sorted(data)}")

        return VendorInfo(category=category.strip(), is_grocery=data["isGrocery"] is True)
