from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from shopsearch.domain.models.product import FilterSet, SearchResult


class QueryIntent(str, Enum):
    BRAND = "brand"
    CATEGORY = "category"
    DESCRIPTIVE = "descriptive"
    DEFAULT = "default"
    VECTOR_ONLY = "vector_only"


class IntentWeights(BaseModel):
    vector_weight: float = Field(ge=0.0, le=1.0)
    lexical_weight: float = Field(ge=0.0, le=1.0)
    intent: QueryIntent = QueryIntent.DEFAULT
    signals: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _sums_to_one(self):
        if abs(self.vector_weight + self.lexical_weight - 1.0) > 1e-9:
            raise ValueError("vector_weight + lexical_weight must equal 1.0")
        return self

    @classmethod
    def of(cls, pair: Tuple[float, float], intent: QueryIntent, signals=()) -> "IntentWeights":
        return cls(vector_weight=pair[0], lexical_weight=pair[1], intent=intent, signals=tuple(signals))


class NormalizationSource(str, Enum):
    LLM = "llm"
    REGEX = "regex"
    RAW = "raw"


class NormalizedQuery(BaseModel):
    keywords: str
    filters: FilterSet = FilterSet()
    source: NormalizationSource = NormalizationSource.RAW

    model_config = {"frozen": True}


class BranchStatus(str, Enum):
    OK = "ok"
    NO_MATCH = "no_match"        # branch ran, nothing matched
    UNAVAILABLE = "unavailable"  # provider/index down, timed out or misconfigured
    SKIPPED = "skipped"          # not requested (vector-only search)


class BranchResult(BaseModel):
    results: List[SearchResult] = []
    status: BranchStatus
    reason: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def ok(cls, results: List[SearchResult]) -> "BranchResult":
        if not results:
            return cls(results=[], status=BranchStatus.NO_MATCH, reason="no_match")
        return cls(results=results, status=BranchStatus.OK)

    @classmethod
    def no_match(cls, reason: str = "no_match") -> "BranchResult":
        return cls(results=[], status=BranchStatus.NO_MATCH, reason=reason)

    @classmethod
    def unavailable(cls, reason: str) -> "BranchResult":
        return cls(results=[], status=BranchStatus.UNAVAILABLE, reason=reason)

    @classmethod
    def skipped(cls) -> "BranchResult":
        return cls(results=[], status=BranchStatus.SKIPPED, reason="skipped")

    @property
    def is_unavailable(self) -> bool:
        return self.status == BranchStatus.UNAVAILABLE


class SearchStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"  # served, but a branch was unavailable
    EMPTY = "empty"        # nothing to serve; still a successful response


class SearchBreakdown(BaseModel):
    search_method: str
    total_results: int = 0
    lexical_count: int = 0
    semantic_count: int = 0
    hybrid_count: int = 0
    merged_count: int = 0
    weights: Dict[str, float] = {}
    intent: Optional[str] = None
    lexical_status: Optional[BranchStatus] = None
    semantic_status: Optional[BranchStatus] = None
    degraded_reasons: List[str] = []
    normalizer: Optional[NormalizationSource] = None
    keywords: Optional[str] = None

    model_config = {"frozen": True}


class SearchOutcome(BaseModel):
    status: SearchStatus
    results: List[SearchResult] = []
    breakdown: SearchBreakdown
    reason: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def recommendation(self) -> Optional[SearchResult]:
        return next((r for r in self.results if r.recommended), None)

    @classmethod
    def empty(cls, method: str, reason: str) -> "SearchOutcome":
        return cls(
            status=SearchStatus.EMPTY,
            results=[],
            breakdown=SearchBreakdown(search_method=method, degraded_reasons=[reason]),
            reason=reason,
        )
