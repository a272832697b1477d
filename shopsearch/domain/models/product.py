from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

from shopsearch.domain.services.constants import EMBEDDING_PATH
from shopsearch.domain.services.vocabulary import CATEGORY_TERMS


def normalize_category(v):
    """Lower-cased member of the closed category set (men / women / kids)."""
    if not isinstance(v, str):
        raise ValueError("category must be a string")
    v = v.strip().lower()
    if v not in CATEGORY_TERMS:
        raise ValueError(f"category must be one of: {', '.join(sorted(CATEGORY_TERMS))}")
    return v


class Product(BaseModel):
    id: int
    name: str
    description: str = ""
    category: str
    categories: List[str] = []
    tags: List[str] = []
    image: Optional[str] = None
    new_price: Optional[float] = None
    old_price: Optional[float] = None
    available: bool = True
    date: Optional[datetime] = None
    # Stored as product_embedding; absent = invisible to semantic retrieval
    embedding: Optional[List[float]] = Field(default=None, alias=EMBEDDING_PATH, exclude=True, repr=False)

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return normalize_category(v)

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v):
        return v or ""

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _none_list(cls, v):
        return v or []

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class SearchType(str, Enum):
    LEXICAL = "lexical"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class SearchResult(Product):
    """
    A Product view as returned by search. Built once per retrieval branch,
    then copied (never mutated) by fusion and by the recommender.
    """
    search_type: SearchType
    raw_score: float = 0.0  # branch-native score (baseline for lexical, vectorSearchScore for semantic)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    lexical_confidence: Optional[float] = None
    semantic_confidence: Optional[float] = None
    recommended: bool = False
    recommendation_reason: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product, search_type: SearchType, raw_score: float) -> "SearchResult":
        data = product.model_dump(exclude={"embedding"})
        return cls(**data, search_type=search_type, raw_score=raw_score)


def _to_price(v) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(str(v).strip().replace(",", "")) if isinstance(v, str) else float(v)
    except (TypeError, ValueError):
        return None
    return f if f >= 0 else None


class FilterSet(BaseModel):
    """Structured filters. Invalid values are normalized away instead of rejected."""
    category: Optional[str] = None
    min_price: Optional[float] = Field(default=None, alias="minPrice")
    max_price: Optional[float] = Field(default=None, alias="maxPrice")
    categories: Optional[List[str]] = None

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    @field_validator("category", mode="before")
    @classmethod
    def _clean_category(cls, v):
        if not isinstance(v, str):
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def _clean_price(cls, v):
        return _to_price(v)

    @field_validator("categories", mode="before")
    @classmethod
    def _clean_categories(cls, v):
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return None
        cleaned = [str(c).strip() for c in v if str(c).strip()]
        return cleaned or None

    @model_validator(mode="after")
    def _order_range(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            lo, hi = self.max_price, self.min_price
            object.__setattr__(self, "min_price", lo)
            object.__setattr__(self, "max_price", hi)
        return self

    @property
    def has_price(self) -> bool:
        return self.min_price is not None or self.max_price is not None

    def is_empty(self) -> bool:
        return not (self.category or self.has_price or self.categories)

    def merged_with(self, override: Optional["FilterSet"]) -> "FilterSet":
        """Fields set on `override` win."""
        if override is None:
            return self
        data = self.model_dump()
        data.update(override.model_dump(exclude_none=True))
        return FilterSet(**data)

    def price_ok(self, price: Optional[float]) -> bool:
        if not self.has_price:
            return True
        if price is None:
            return False
        if self.min_price is not None and price < self.min_price:
            return False
        if self.max_price is not None and price > self.max_price:
            return False
        return True
