# api/v1/schemas/search.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from shopsearch.domain.models.product import FilterSet, SearchResult, normalize_category
from shopsearch.domain.models.search import SearchOutcome


class SearchRequest(BaseModel):
    query: Optional[str] = None
    limit: int = Field(10, ge=0, le=50)
    filters: Optional[FilterSet] = None


class ExactSearchRequest(BaseModel):
    query: Optional[str] = None


class SuggestionRequest(BaseModel):
    query: Optional[str] = None
    limit: int = Field(5, ge=0, le=20)


class LLMRecommendationOut(BaseModel):
    product_id: int
    product_name: str
    reason: Optional[str] = None


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    searchType: str
    status: str
    totalResults: int
    breakdown: Dict[str, Any]
    llm_recommendation: Optional[LLMRecommendationOut] = None
    results: List[Dict[str, Any]]

    @classmethod
    def from_outcome(cls, query: str, search_type: str, outcome: SearchOutcome) -> "SearchResponse":
        rec: Optional[SearchResult] = outcome.recommendation
        return cls(
            query=query,
            searchType=search_type,
            status=outcome.status.value,
            totalResults=len(outcome.results),
            breakdown=outcome.breakdown.model_dump(mode="json"),
            llm_recommendation=(
                LLMRecommendationOut(product_id=rec.id, product_name=rec.name, reason=rec.recommendation_reason)
                if rec else None
            ),
            results=[r.model_dump(mode="json") for r in outcome.results],
        )


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    new_price: Optional[float] = Field(default=None, ge=0)
    old_price: Optional[float] = Field(default=None, ge=0)
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    available: bool = True

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return normalize_category(v)


class ProductAddedOut(BaseModel):
    success: bool = True
    id: int
    name: str
    hasVector: bool
    message: str
