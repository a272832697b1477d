import asyncio
import logging
from typing import List, Optional, Set

from shopsearch.domain.models.product import FilterSet, Product, SearchResult, SearchType
from shopsearch.domain.models.search import (
    BranchResult,
    IntentWeights,
    NormalizationSource,
    QueryIntent,
    SearchBreakdown,
    SearchOutcome,
    SearchStatus,
)
from shopsearch.domain.services.constants import (
    METHOD_EMPTY_QUERY,
    METHOD_EXACT,
    METHOD_RELATED_TAGS,
    METHOD_RELATED_VECTOR,
    METHOD_NO_RESULTS,
    RELATED_FALLBACK_POOL,
    WEIGHTS_VECTOR_ONLY,
)
from shopsearch.domain.services.embedding_svc import Embedder
from shopsearch.domain.services.fusion import FusionEngine
from shopsearch.domain.services.intent_classifier import IntentClassifier
from shopsearch.domain.services.lexical_retriever import LexicalRetriever
from shopsearch.domain.services.query_normalizer import QueryNormalizer, regex_normalize, strip_price_phrases
from shopsearch.domain.services.recommender import LLMRecommender
from shopsearch.domain.services.semantic_retriever import SemanticRetriever

logger = logging.getLogger(__name__)


def _clean(query: Optional[str]) -> str:
    return " ".join((query or "").split())


def _label_set(product: Product) -> Set[str]:
    labels = {product.category} | set(product.categories) | set(product.tags)
    return {s.strip().lower() for s in labels if s and s.strip()}


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


class HybridSearchService:
    """
    Orchestrates one search request:

      normalize ──┐                 ┌── lexical ──┐
                  ├── classify ─────┤             ├── fuse ── recommend
      embed ──────┘                 └── semantic ─┘

    Components are injected; the service holds no per-request state, so one
    instance serves concurrent requests.
    """

    def __init__(
        self,
        *,
        normalizer: QueryNormalizer,
        classifier: IntentClassifier,
        embedder: Embedder,
        lexical: LexicalRetriever,
        semantic: SemanticRetriever,
        fusion: FusionEngine,
        recommender: Optional[LLMRecommender] = None,
        catalog=None,
    ):
        self.normalizer = normalizer
        self.classifier = classifier
        self.embedder = embedder
        self.lexical = lexical
        self.semantic = semantic
        self.fusion = fusion
        self.recommender = recommender
        self.catalog = catalog

    async def _embed(self, text: str) -> Optional[List[float]]:
        try:
            return await self.embedder.embed(text)
        except Exception as e:
            logger.error(f"Query embedding failed: {e}")
            return None

    # ---- Hybrid ----------------------------------------------------------------

    async def hybrid_search(
        self,
        query: str,
        limit: int = 10,
        filters: Optional[FilterSet] = None,
        recommend: bool = True,
    ) -> SearchOutcome:
        raw = _clean(query)
        if not raw:
            return SearchOutcome.empty(METHOD_EMPTY_QUERY, "empty_query")

        # Price phrases carry no meaning for the embedding
        semantic_text = strip_price_phrases(raw) or raw
        normalized, vector = await asyncio.gather(
            self.normalizer.normalize(raw),
            self._embed(semantic_text),
        )

        effective = normalized.filters.merged_with(filters)
        weights = self.classifier.classify(raw, effective)
        logger.info(
            f"Search {raw!r}: keywords={normalized.keywords!r} source={normalized.source.value} "
            f"intent={weights.intent.value} weights=({weights.vector_weight}, {weights.lexical_weight}) "
            f"filters={effective.model_dump(exclude_none=True)}"
        )

        lexical, semantic = await asyncio.gather(
            self.lexical.search(normalized.keywords, limit, effective),
            self.semantic.search(vector, limit, effective),
        )
        return await self._finish(raw, lexical, semantic, weights, limit, recommend,
                                  source=normalized.source, keywords=normalized.keywords)

    # ---- Vector only -----------------------------------------------------------

    async def vector_only_search(
        self,
        query: str,
        limit: int = 10,
        filters: Optional[FilterSet] = None,
        recommend: bool = False,
    ) -> SearchOutcome:
        raw = _clean(query)
        if not raw:
            return SearchOutcome.empty(METHOD_EMPTY_QUERY, "empty_query")

        # Deterministic filter extraction only; no LLM round-trip on this path
        parsed = regex_normalize(raw)
        effective = (parsed[1] if parsed else FilterSet()).merged_with(filters)
        vector = await self._embed(strip_price_phrases(raw) or raw)
        semantic = await self.semantic.search(vector, limit, effective)

        weights = IntentWeights.of(WEIGHTS_VECTOR_ONLY, QueryIntent.VECTOR_ONLY)
        return await self._finish(raw, BranchResult.skipped(), semantic, weights, limit, recommend,
                                  source=NormalizationSource.REGEX if parsed else NormalizationSource.RAW,
                                  keywords=None)

    async def _finish(self, raw, lexical, semantic, weights, limit, recommend, *, source, keywords) -> SearchOutcome:
        fused = self.fusion.fuse(lexical, semantic, weights, limit)
        results = fused.results
        if recommend and self.recommender is not None and results:
            results = await self.recommender.annotate(results, raw)

        breakdown = fused.breakdown.model_copy(update={"normalizer": source, "keywords": keywords})
        reason = breakdown.degraded_reasons[0] if breakdown.degraded_reasons else None
        if fused.status == SearchStatus.DEGRADED:
            logger.warning(f"Search {raw!r} served degraded: {breakdown.degraded_reasons}")
        return SearchOutcome(status=fused.status, results=results, breakdown=breakdown, reason=reason)

    # ---- Exact name ------------------------------------------------------------

    async def exact_search(self, name: str) -> SearchOutcome:
        name = (name or "").strip()
        if not name:
            return SearchOutcome.empty(METHOD_EMPTY_QUERY, "empty_query")

        product = await self.catalog.find_by_exact_name(name)
        if product is None:
            logger.info(f"Exact search {name!r}: no match")
            return SearchOutcome(
                status=SearchStatus.EMPTY,
                breakdown=SearchBreakdown(search_method=METHOD_EXACT),
                reason="no_match",
            )

        hit = SearchResult.from_product(product, SearchType.LEXICAL, 1.0).model_copy(
            update={"confidence": 1.0, "lexical_confidence": 1.0}
        )
        return SearchOutcome(
            status=SearchStatus.OK,
            results=[hit],
            breakdown=SearchBreakdown(search_method=METHOD_EXACT, total_results=1, lexical_count=1, merged_count=1),
        )

    # ---- Related products ------------------------------------------------------

    async def related_products(self, product_id: int, limit: int = 5) -> Optional[SearchOutcome]:
        """
        Products close to `product_id`. Uses the product's stored embedding;
        falls back to category/tag overlap when it has none or the index is down.
        None when the product does not exist.
        """
        product = await self.catalog.get_by_id(product_id, with_embedding=True)
        if product is None:
            return None

        if product.has_embedding:
            branch = await self.semantic.search(product.embedding, limit, exclude_id=product.id)
            if branch.results:
                results = [
                    r.model_copy(update={"confidence": min(max(r.raw_score, 0.0), 1.0),
                                         "semantic_confidence": r.raw_score})
                    for r in branch.results
                ]
                return SearchOutcome(
                    status=SearchStatus.OK,
                    results=results,
                    breakdown=SearchBreakdown(search_method=METHOD_RELATED_VECTOR, total_results=len(results),
                                              semantic_count=len(results), merged_count=len(results),
                                              semantic_status=branch.status),
                )
            logger.info(f"Related products for id={product_id}: vector branch {branch.status.value}, using tag fallback")

        return await self._related_by_labels(product, limit)

    async def _related_by_labels(self, product: Product, limit: int) -> SearchOutcome:
        source = _label_set(product)
        candidates = await self.catalog.find_related_candidates(product, RELATED_FALLBACK_POOL)

        scored = []
        for c in candidates:
            if c.id == product.id or not c.available:
                continue
            score = jaccard(source, _label_set(c))
            if score > 0:
                scored.append((c, score))
        scored.sort(key=lambda cs: (-cs[1], cs[0].id))

        results: List[SearchResult] = [
            SearchResult.from_product(c, SearchType.LEXICAL, s).model_copy(
                update={"confidence": s, "lexical_confidence": s}
            )
            for c, s in scored[: max(limit, 0)]
        ]
        method = METHOD_RELATED_TAGS if results else METHOD_NO_RESULTS
        return SearchOutcome(
            status=SearchStatus.OK if results else SearchStatus.EMPTY,
            results=results,
            breakdown=SearchBreakdown(search_method=method, total_results=len(results),
                                      lexical_count=len(results), merged_count=len(results)),
        )

    # ---- Suggestions -----------------------------------------------------------

    async def suggestions(self, query: str, limit: int = 5) -> List[str]:
        q = _clean(query)
        if len(q) < 2 or limit <= 0:
            return []
        try:
            names = await self.catalog.suggest_names(q, limit)
        except Exception as e:
            logger.warning(f"Suggestions failed for {q!r}: {e}")
            return []
        return list(dict.fromkeys(names))[:limit]
