"""
Pytest configuration and shared fixtures for the search service tests.
"""
import os
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

# Settings requires these; set before anything imports shopsearch.core.config
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "shopsearch_test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from shopsearch.domain.models.product import FilterSet, Product
from shopsearch.domain.services.constants import EMBEDDING_DIM, LEXICAL_FIELDS
from shopsearch.domain.services.llm_svc import LLMError


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

def make_product(id: int, name: str = None, category: str = "women", **kwargs) -> Product:
    data = {
        "id": id,
        "name": name or f"Product {id}",
        "category": category,
        "new_price": 500.0,
        "available": True,
    }
    data.update(kwargs)
    return Product.model_validate(data)


@pytest.fixture
def product_factory() -> Callable[..., Product]:
    return make_product


@pytest.fixture
def sample_catalog() -> List[Product]:
    return [
        make_product(1, "Black Jacket", "women", tags=["jacket", "black"], new_price=1200),
        make_product(2, "Red Jacket", "men", tags=["jacket", "red"], new_price=900),
        make_product(3, "NIKE 運動鞋", "men", description="輕量 跑步 運動鞋", tags=["nike", "運動鞋"], new_price=2500),
        make_product(4, "黑色上衣", "women", description="舒適 棉質 上衣", categories=["上衣"], tags=["黑色"], new_price=590),
        make_product(5, "Hidden Jacket", "women", available=False),
    ]


# ============================================================================
# Fakes: providers
# ============================================================================

class FakeCatalog:
    """In-memory stand-in for ProductRepo with the same matching rules as its MQL."""

    def __init__(self, products: Sequence[Product] = ()):
        self.products: Dict[int, Product] = {p.id: p for p in products}
        self.inserted: List[dict] = []
        self.error: Optional[Exception] = None

    @staticmethod
    def _field_text(product: Product, field: str) -> List[str]:
        v = getattr(product, field)
        return list(v) if isinstance(v, list) else [v or ""]

    def _matches(self, product: Product, filters: Optional[FilterSet], keywords: Sequence[str]) -> bool:
        if not product.available:
            return False
        if filters:
            if filters.category and product.category != filters.category:
                return False
            if not filters.price_ok(product.new_price):
                return False
            if filters.categories and not set(filters.categories) & set(product.categories):
                return False
        for tok in keywords:
            rx = re.compile(re.escape(tok), re.IGNORECASE)
            if not any(rx.search(s) for f in LEXICAL_FIELDS for s in self._field_text(product, f)):
                return False
        return True

    async def find_available(self, filters=None, keywords=(), limit=10) -> List[Product]:
        if self.error:
            raise self.error
        hits = [p for p in sorted(self.products.values(), key=lambda p: p.id) if self._matches(p, filters, keywords)]
        return hits[:limit]

    async def get_by_id(self, product_id, *, available_only=True, with_embedding=False):
        p = self.products.get(product_id)
        if p is None or (available_only and not p.available):
            return None
        return p

    async def find_by_exact_name(self, name):
        return next((p for p in sorted(self.products.values(), key=lambda p: p.id)
                     if p.name == name and p.available), None)

    async def suggest_names(self, query, limit=5):
        if self.error:
            raise self.error
        rx = re.compile(re.escape(query), re.IGNORECASE)
        out = []
        for p in sorted(self.products.values(), key=lambda p: p.id):
            if p.available and (rx.search(p.name) or any(rx.search(s) for s in p.categories + p.tags)):
                out.append(p.name)
        return out[:limit]

    async def find_related_candidates(self, product, limit):
        labels = set(product.categories) | set(product.tags)
        out = [
            p for p in sorted(self.products.values(), key=lambda p: p.id)
            if p.available and p.id != product.id
            and (p.category == product.category or labels & (set(p.categories) | set(p.tags)))
        ]
        return out[:limit]

    async def next_id(self) -> int:
        return max(self.products, default=0) + 1

    async def insert(self, doc: dict) -> None:
        self.inserted.append(doc)
        self.products[doc["id"]] = Product.model_validate(doc)

    async def delete(self, product_id: int) -> bool:
        return self.products.pop(product_id, None) is not None


class FakeVectorIndex:
    """Returns preset (product, score) pairs; records the last call."""

    def __init__(self, pairs: Sequence[Tuple[Product, float]] = (), error: Optional[Exception] = None):
        self.pairs = list(pairs)
        self.error = error
        self.calls: List[dict] = []

    async def find_by_embedding_neighbors(self, query_vector, k, filters=None, num_candidates=None, exclude_id=None):
        self.calls.append({"k": k, "filters": filters, "num_candidates": num_candidates, "exclude_id": exclude_id})
        if self.error:
            raise self.error
        pairs = self.pairs
        if filters and filters.category:
            pairs = [(p, s) for p, s in pairs if p.category == filters.category]
        return pairs[:k]


class FakeEmbedder:
    def __init__(self, vector: Optional[List[float]] = None, fail: bool = False):
        self.vector = vector if vector is not None else [0.01] * EMBEDDING_DIM
        self.fail = fail
        self.texts: List[str] = []

    async def embed(self, text: str) -> Optional[List[float]]:
        self.texts.append(text)
        return None if self.fail or not text.strip() else list(self.vector)


class FakeLLM:
    """Replies from a queue; an Exception instance in the queue is raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: List[str] = []

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise LLMError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_catalog(sample_catalog) -> FakeCatalog:
    return FakeCatalog(sample_catalog)


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


# ============================================================================
# Fixtures: Search service wired with fakes
# ============================================================================

def build_service(catalog, pairs=(), *, llm=None, embedder=None, index_error=None, availability=None):
    from shopsearch.domain.services.fusion import FusionEngine
    from shopsearch.domain.services.intent_classifier import IntentClassifier
    from shopsearch.domain.services.lexical_retriever import LexicalRetriever
    from shopsearch.domain.services.query_normalizer import QueryNormalizer
    from shopsearch.domain.services.recommender import LLMRecommender
    from shopsearch.domain.services.search_svc import HybridSearchService
    from shopsearch.domain.services.semantic_retriever import SemanticRetriever

    # An LLM with no scripted replies raises LLMError on every call
    llm = llm if llm is not None else FakeLLM()
    return HybridSearchService(
        normalizer=QueryNormalizer(llm),
        classifier=IntentClassifier(),
        embedder=embedder if embedder is not None else FakeEmbedder(),
        lexical=LexicalRetriever(catalog, timeout_s=1.0),
        semantic=SemanticRetriever(FakeVectorIndex(pairs, error=index_error), availability=availability, timeout_s=1.0),
        fusion=FusionEngine(),
        recommender=LLMRecommender(llm),
        catalog=catalog,
    )


@pytest.fixture
def service_factory():
    return build_service
