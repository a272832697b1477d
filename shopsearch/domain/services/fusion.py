"""
Fusion & ranking of the lexical and semantic branches.

Scoring law (the only one used anywhere in the pipeline):
    confidence_b = step function of the branch-native score (per-branch bands)
    final        = sum over branches the product appeared in of confidence_b * weight_b

A product found by both branches is a single `hybrid` entry. Ordering is
final score descending, then product id ascending.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from pydantic import BaseModel

from shopsearch.domain.models.product import SearchResult, SearchType
from shopsearch.domain.models.search import (
    BranchResult,
    BranchStatus,
    IntentWeights,
    SearchBreakdown,
    SearchStatus,
)
from shopsearch.domain.services.constants import (
    LEXICAL_CONFIDENCE_BANDS,
    METHOD_HYBRID,
    METHOD_LEXICAL_ONLY,
    METHOD_NO_RESULTS,
    METHOD_UNAVAILABLE,
    METHOD_VECTOR_ONLY,
    SEMANTIC_CONFIDENCE_BANDS,
)

logger = logging.getLogger(__name__)

Bands = Sequence[Tuple[float, float]]


def to_confidence(raw: float, bands: Bands) -> float:
    """Monotonic step function: confidence of the first band whose threshold raw reaches."""
    for threshold, confidence in bands:
        if raw >= threshold:
            return confidence
    return 0.0


class FusionOutput(BaseModel):
    results: List[SearchResult]
    breakdown: SearchBreakdown
    status: SearchStatus

    model_config = {"frozen": True}


def _method_and_status(lexical: BranchResult, semantic: BranchResult, n_results: int) -> Tuple[str, SearchStatus]:
    lex_down = lexical.status in (BranchStatus.UNAVAILABLE, BranchStatus.SKIPPED)
    sem_down = semantic.status in (BranchStatus.UNAVAILABLE, BranchStatus.SKIPPED)

    if lex_down and sem_down:
        return METHOD_UNAVAILABLE, SearchStatus.EMPTY
    if sem_down:
        method = METHOD_LEXICAL_ONLY
    elif lex_down:
        method = METHOD_VECTOR_ONLY
    else:
        method = METHOD_HYBRID if n_results else METHOD_NO_RESULTS

    if n_results == 0:
        return (METHOD_NO_RESULTS if method == METHOD_HYBRID else method), SearchStatus.EMPTY
    degraded = lexical.is_unavailable or semantic.is_unavailable
    return method, (SearchStatus.DEGRADED if degraded else SearchStatus.OK)


class FusionEngine:
    def __init__(self, semantic_bands: Bands = SEMANTIC_CONFIDENCE_BANDS,
                 lexical_bands: Bands = LEXICAL_CONFIDENCE_BANDS):
        self.semantic_bands = semantic_bands
        self.lexical_bands = lexical_bands

    def fuse(
        self,
        lexical: BranchResult,
        semantic: BranchResult,
        weights: IntentWeights,
        limit: int,
    ) -> FusionOutput:
        # product id -> [first result seen, lexical confidence, semantic confidence]
        merged: Dict[int, List] = {}

        for r in lexical.results:
            conf = to_confidence(r.raw_score, self.lexical_bands)
            entry = merged.setdefault(r.id, [r, None, None])
            entry[1] = conf if entry[1] is None else max(entry[1], conf)

        for r in semantic.results:
            conf = to_confidence(r.raw_score, self.semantic_bands)
            entry = merged.setdefault(r.id, [r, None, None])
            entry[2] = conf if entry[2] is None else max(entry[2], conf)

        fused: List[SearchResult] = []
        for base, lex_c, sem_c in merged.values():
            if not base.available:
                continue
            if lex_c is not None and sem_c is not None:
                score = lex_c * weights.lexical_weight + sem_c * weights.vector_weight
                search_type = SearchType.HYBRID
            elif lex_c is not None:
                score = lex_c * weights.lexical_weight
                search_type = SearchType.LEXICAL
            else:
                score = sem_c * weights.vector_weight
                search_type = SearchType.SEMANTIC

            fused.append(base.model_copy(update={
                "search_type": search_type,
                "confidence": min(max(score, 0.0), 1.0),
                "lexical_confidence": lex_c,
                "semantic_confidence": sem_c,
            }))

        fused.sort(key=lambda r: (-r.confidence, r.id))
        hybrid_count = sum(1 for r in fused if r.search_type == SearchType.HYBRID)
        results = fused[: max(limit, 0)]

        method, status = _method_and_status(lexical, semantic, len(results))
        reasons = [b.reason for b in (lexical, semantic) if b.is_unavailable and b.reason]
        breakdown = SearchBreakdown(
            search_method=method,
            total_results=len(results),
            lexical_count=len(lexical.results),
            semantic_count=len(semantic.results),
            hybrid_count=hybrid_count,
            merged_count=len(fused),
            weights={"vector": weights.vector_weight, "lexical": weights.lexical_weight},
            intent=weights.intent.value,
            lexical_status=lexical.status,
            semantic_status=semantic.status,
            degraded_reasons=reasons,
        )
        logger.info(
            f"Fusion method={method} lexical={len(lexical.results)} semantic={len(semantic.results)} "
            f"hybrid={hybrid_count} returned={len(results)} weights=({weights.vector_weight}, {weights.lexical_weight})"
        )
        return FusionOutput(results=results, breakdown=breakdown, status=status)
