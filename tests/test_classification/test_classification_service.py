"""Tests for the classification orchestrator and stage handler."""

import pytest

from packages.common.errors import InferenceError
from packages.common.models import ProductCategory
from packages.common.schemas.invoice import ExtractedDocument
from packages.domain.classification import (
    ClassificationService,
    ProductClassifier,
    VendorClassifier,
)
from tests.fakes import FakeInferenceClient


def build_service(inference, cache) -> ClassificationService:
    return ClassificationService(
        vendor_classifier=VendorClassifier(inference),
        product_classifier=ProductClassifier(inference, cache),
    )


def document(*items, vendor="Super Abarrotes SA", country="CL") -> ExtractedDocument:
    return ExtractedDocument(
        summary={"VENDOR_NAME": vendor, "COUNTRY": country},
        line_items=[{"ITEM": item, "PRICE": "1.000"} for item in items],
    )


class TestClassify:
    """Test cases for ClassificationService.classify."""

    async def test_grocery_receipt_end_to_end(self, category_cache):
        inference = FakeInferenceClient(product_replies={"Pan": "Panadería", "Tornillo": "Otros"})
        service = build_service(inference, category_cache)

        result = await service.classify(document("Pan", "Tornillo"))

        assert result.vendor_category == "Supermercado"
        assert [item["CATEGORY"] for item in result.line_items] == ["Panadería", "Otros"]
        assert result.line_items[0] == {"ITEM": "Pan", "PRICE": "1.000", "CATEGORY": "Panadería"}
        assert await category_cache.get("pan") == "Panadería"
        assert await category_cache.get("tornillo") is None

    async def test_non_grocery_assigns_vendor_category_without_item_calls(self, category_cache):
        inference = FakeInferenceClient(vendor_reply='{"category": "Ferretería", "isGrocery": false}')
        service = build_service(inference, category_cache)

        result = await service.classify(document("Martillo", "Clavo", "Tornillo", "Lija", "Pintura",
                                                 vendor="Ferretería El Clavo"))

        assert result.vendor_category == "Ferretería"
        assert len(result.line_items) == 5
        assert all(item["CATEGORY"] == "Ferretería" for item in result.line_items)
        assert inference.product_prompts == []
        assert len(inference.vendor_prompts) == 1

    async def test_vendor_failure_falls_back_to_general(self, category_cache):
        inference = FakeInferenceClient(vendor_reply=InferenceError("timeout"))
        service = build_service(inference, category_cache)

        result = await service.classify(document("Pan"))

        assert result.vendor_category == "General"
        assert result.line_items[0]["CATEGORY"] == "General"
        assert inference.product_prompts == []

    async def test_grocery_item_failure_fails_whole_document(self, category_cache):
        inference = FakeInferenceClient(
            product_replies={"Pan": "Panadería", "Queso": "Lácteo"},
            fail_on={"Leche"},
        )
        service = build_service(inference, category_cache)

        with pytest.raises(InferenceError):
            await service.classify(document("Pan", "Leche", "Queso"))

    async def test_items_classified_concurrently_and_in_order(self, category_cache):
        replies = {"Pan": "Panadería", "Leche": "Lácteo", "Manzana": "Fruta", "Arroz": "Abarrote"}
        inference = FakeInferenceClient(product_replies=replies, delay=0.01)
        service = build_service(inference, category_cache)

        result = await service.classify(document(*replies))

        assert [item["CATEGORY"] for item in result.line_items] == list(replies.values())
        assert inference.max_in_flight == len(replies)

    async def test_cached_items_skip_inference(self, category_cache):
        await category_cache.put("Pan", "Panadería")
        inference = FakeInferenceClient(product_replies={"Leche": "Lácteo"})
        service = build_service(inference, category_cache)

        result = await service.classify(document("  PAN ", "Leche"))

        assert [item["CATEGORY"] for item in result.line_items] == ["Panadería", "Lácteo"]
        assert [inference.item_from_prompt(p) for p in inference.product_prompts] == ["Leche"]

    async def test_duplicate_items_classified_concurrently(self, category_cache, sessionmanager):
        inference = FakeInferenceClient(product_replies={"Pan": "Panadería", "pan": "Panadería"}, delay=0.01)
        service = build_service(inference, category_cache)

        result = await service.classify(document("Pan", "pan", "Pan"))

        assert [item["CATEGORY"] for item in result.line_items] == ["Panadería"] * 3
        assert len(inference.product_prompts) == 3
        async with sessionmanager.session() as db:
            entry = await db.get(ProductCategory, "pan")
        assert entry.category == "Panadería"

    async def test_empty_document(self, classification_service):
        result = await classification_service.classify(ExtractedDocument())

        assert result.line_items == []
        assert result.summary == {}

    async def test_input_document_is_not_mutated(self, classification_service):
        extracted = document("Pan")

        await classification_service.classify(extracted)

        assert "CATEGORY" not in extracted.line_items[0]


class TestClassifyEvent:
    """Test cases for the classification stage handler."""

    @pytest.fixture
    def event(self):
        return {
            "sourceObject": {"bucketName": "uploads", "objectKey": "abc.jpg", "fileId": "abc"},
            "extractedData": {
                "summary": {"VENDOR_NAME": "Super Abarrotes SA", "COUNTRY": "CL"},
                "lineItems": [{"ITEM": "Pan", "PRICE": "990"}, {"ITEM": "Tornillo", "PRICE": "150"}],
            },
        }

    async def test_success_returns_event_with_categories(self, category_cache, event):
        inference = FakeInferenceClient(product_replies={"Pan": "Panadería"})
        service = build_service(inference, category_cache)

        result = await service.classify_event(event)

        assert result["sourceObject"] == event["sourceObject"]
        assert result["vendorCategory"] == "Supermercado"
        assert result["extractedData"]["lineItems"] == [
            {"ITEM": "Pan", "PRICE": "990", "CATEGORY": "Panadería"},
            {"ITEM": "Tornillo", "PRICE": "150", "CATEGORY": "Otros"},
        ]
        assert "status" not in result

    async def test_item_failure_returns_error_payload(self, category_cache, event):
        inference = FakeInferenceClient(fail_on={"Tornillo"})
        service = build_service(inference, category_cache)

        result = await service.classify_event(event)

        assert result["status"] == "Error"
        assert "Tornillo" in result["errorMessage"]
        assert "extractedData" not in result

    async def test_malformed_event_returns_error_payload(self, classification_service):
        result = await classification_service.classify_event({"extractedData": {}})

        assert result["status"] == "Error"
        assert "sourceObject" in result["errorMessage"]
