"""
Tests for the catalog write side: id assignment, embedding on insert, removal.
"""
import pytest
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from conftest import FakeCatalog, FakeEmbedder, build_service
from shopsearch.domain.models.product import FilterSet
from shopsearch.domain.services.catalog_svc import add_product, remove_product

PAYLOAD = {
    "name": "Linen Shirt",
    "category": "men",
    "description": "breathable summer shirt",
    "new_price": 890,
    "tags": ["linen", "summer"],
}


class RacingCatalog(FakeCatalog):
    """First insert loses the race for its id."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.attempts = 0

    async def insert(self, doc):
        self.attempts += 1
        if self.attempts == 1:
            raise DuplicateKeyError("E11000 duplicate key error")
        await super().insert(doc)


class TestAddProduct:
    async def test_empty_catalog_gets_id_one(self):
        added = await add_product(FakeCatalog(), FakeEmbedder(), PAYLOAD)
        assert added.product.id == 1

    async def test_next_id_is_max_plus_one(self, fake_catalog):
        added = await add_product(fake_catalog, FakeEmbedder(), PAYLOAD)
        assert added.product.id == 6

    async def test_stores_embedding(self):
        catalog, embedder = FakeCatalog(), FakeEmbedder()
        added = await add_product(catalog, embedder, PAYLOAD)

        assert added.has_vector is True
        doc = catalog.inserted[0]
        assert len(doc["product_embedding"]) == 1536
        assert doc["available"] is True
        assert doc["date"] is not None
        assert embedder.texts == ["Linen Shirt breathable summer shirt men linen summer"]

    async def test_embedding_failure_still_persists(self):
        catalog = FakeCatalog()
        added = await add_product(catalog, FakeEmbedder(fail=True), PAYLOAD)
        assert added.has_vector is False
        assert "product_embedding" not in catalog.inserted[0]
        assert 1 in catalog.products

    async def test_client_supplied_id_ignored(self, fake_catalog):
        added = await add_product(fake_catalog, FakeEmbedder(), {**PAYLOAD, "id": 1})
        assert added.product.id == 6
        assert fake_catalog.products[1].name == "Black Jacket"

    async def test_category_stored_lower_case_and_filterable(self):
        catalog = FakeCatalog()
        added = await add_product(catalog, FakeEmbedder(), {**PAYLOAD, "name": "Wool Coat", "category": "Women"})
        assert catalog.inserted[0]["category"] == "women"

        svc = build_service(catalog)
        outcome = await svc.hybrid_search("coat", limit=10, filters=FilterSet(category="Women"))
        assert [r.id for r in outcome.results] == [added.product.id]

    async def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            await add_product(FakeCatalog(), FakeEmbedder(), {**PAYLOAD, "category": "unisex-stuff"})

    async def test_retries_on_duplicate_id(self):
        catalog = RacingCatalog()
        added = await add_product(catalog, FakeEmbedder(), PAYLOAD)
        assert catalog.attempts == 2
        assert added.product.id == 1


class TestRemoveProduct:
    async def test_remove_existing(self, fake_catalog):
        assert await remove_product(fake_catalog, 2) is True
        assert 2 not in fake_catalog.products

    async def test_remove_missing(self, fake_catalog):
        assert await remove_product(fake_catalog, 99) is False
