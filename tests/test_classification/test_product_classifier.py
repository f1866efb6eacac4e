"""Tests for per-item product classification."""

import pytest

from packages.common.errors import InferenceError
from packages.domain.classification import CategorizationSource, ProductClassifier
from tests.fakes import FakeInferenceClient


@pytest.fixture
def inference():
    return FakeInferenceClient(product_replies={
        "Pan": "Panadería",
        "Leche Entera": "Lácteo",
        "  Leche Entera  ": "Lácteo",
        "Vacío": "",
    })


@pytest.fixture
def classifier(inference, category_cache):
    return ProductClassifier(inference, category_cache)


class TestProductClassifier:
    """Test cases for ProductClassifier."""

    async def test_cache_miss_calls_inference_and_caches(self, classifier, inference, category_cache):
        category = await classifier.classify_product("Pan", "Super Abarrotes SA", "CL")

        assert category == "Panadería"
        assert len(inference.product_prompts) == 1
        prompt = inference.product_prompts[0]
        assert 'PRODUCTO: "Pan"' in prompt
        assert "Super Abarrotes SA" in prompt
        assert "CL" in prompt
        assert await category_cache.get("pan") == "Panadería"

    async def test_second_call_is_cache_hit(self, classifier, inference):
        first = await classifier.classify_item("Pan", "Super Abarrotes SA", "CL")
        second = await classifier.classify_item("Pan", "Otro Super", "CL")

        assert first.category == second.category == "Panadería"
        assert first.source == CategorizationSource.AI
        assert second.source == CategorizationSource.CACHE
        assert len(inference.product_prompts) == 1

    async def test_normalized_names_share_cache_entry(self, classifier, inference):
        await classifier.classify_product("  Leche Entera  ", "Lider", "CL")
        category = await classifier.classify_product("leche entera", "Lider", "CL")

        assert category == "Lácteo"
        assert len(inference.product_prompts) == 1

    async def test_cached_category_short_circuits_inference(self, classifier, inference, category_cache):
        await category_cache.put("Tornillo", "Ferretería")

        category = await classifier.classify_product("TORNILLO", "Super Abarrotes SA", "CL")

        assert category == "Ferretería"
        assert inference.prompts == []

    async def test_sentinel_reply_is_not_cached(self, classifier, inference, category_cache):
        first = await classifier.classify_product("Tornillo", "Super Abarrotes SA", "CL")
        second = await classifier.classify_product("Tornillo", "Super Abarrotes SA", "CL")

        assert first == second == "Otros"
        assert await category_cache.get("tornillo") is None
        assert len(inference.product_prompts) == 2

    async def test_empty_reply_falls_back_to_otros(self, classifier, inference, category_cache):
        category = await classifier.classify_product("Vacío", "Super Abarrotes SA", "CL")

        assert category == "Otros"
        assert await category_cache.get("vacío") is None

    async def test_inference_error_propagates(self, category_cache):
        classifier = ProductClassifier(FakeInferenceClient(fail_on={"Pan"}), category_cache)

        with pytest.raises(InferenceError):
            await classifier.classify_product("Pan", "Super Abarrotes SA", "CL")

        assert await category_cache.get("pan") is None

    async def test_blank_item_name_is_not_sent_to_inference(self, classifier, inference):
        result = await classifier.classify_item("   ", "Super Abarrotes SA", "CL")

        assert result.category == "Otros"
        assert result.source == CategorizationSource.DEFAULT
        assert inference.prompts == []
