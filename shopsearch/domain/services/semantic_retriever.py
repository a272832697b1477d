import asyncio
import logging
from typing import List, Optional, Protocol, Tuple

from pymongo.errors import OperationFailure

from shopsearch.domain.models.product import FilterSet, Product, SearchResult, SearchType
from shopsearch.domain.models.search import BranchResult
from shopsearch.domain.services.constants import CANDIDATE_FLOOR, CANDIDATE_MULTIPLIER, SIMILARITY_FLOOR

logger = logging.getLogger(__name__)

# OperationFailure codes meaning "this deployment cannot run $vectorSearch at all"
_CONFIG_ERROR_CODES = {40324, 6047401}
_CONFIG_ERROR_HINTS = ("unrecognized pipeline stage", "only allowed on mongodb atlas", "index not found")


class VectorIndex(Protocol):
    async def find_by_embedding_neighbors(
        self,
        query_vector: List[float],
        k: int,
        filters: Optional[FilterSet] = None,
        num_candidates: Optional[int] = None,
        exclude_id: Optional[int] = None,
    ) -> List[Tuple[Product, float]]: ...


class SemanticAvailability:
    """
    Process-wide latch for the semantic branch. Once a configuration failure is seen
    (missing index, no Atlas Search) the branch stays off for the life of the process
    so requests do not pay for a doomed call.
    """

    def __init__(self):
        self.enabled = True
        self.reason: Optional[str] = None

    def disable(self, reason: str) -> None:
        if self.enabled:
            logger.error(f"Semantic search disabled for this process: {reason}")
        self.enabled = False
        self.reason = reason


def is_config_error(exc: Exception) -> bool:
    if not isinstance(exc, OperationFailure):
        return False
    msg = str(exc).lower()
    return exc.code in _CONFIG_ERROR_CODES or any(h in msg for h in _CONFIG_ERROR_HINTS)


def candidate_pool(limit: int) -> int:
    return max(limit * CANDIDATE_MULTIPLIER, CANDIDATE_FLOOR)


class SemanticRetriever:
    """
    Nearest-neighbour search over product embeddings.
    available/category are pre-filters inside the index query; price and
    `categories` are post-filters. Scores below `similarity_floor` never leave here.
    """

    def __init__(
        self,
        index: VectorIndex,
        *,
        availability: Optional[SemanticAvailability] = None,
        similarity_floor: float = SIMILARITY_FLOOR,
        timeout_s: float = 6.0,
    ):
        self.index = index
        self.availability = availability or SemanticAvailability()
        self.similarity_floor = similarity_floor
        self.timeout_s = timeout_s

    async def search(
        self,
        query_vector: Optional[List[float]],
        limit: int,
        filters: Optional[FilterSet] = None,
        exclude_id: Optional[int] = None,
    ) -> BranchResult:
        if not self.availability.enabled:
            return BranchResult.unavailable(self.availability.reason or "vector_index_unavailable")
        if not query_vector:
            return BranchResult.unavailable("embedding_unavailable")
        if limit <= 0:
            return BranchResult.no_match("zero_limit")

        pool = candidate_pool(limit)
        try:
            pairs = await asyncio.wait_for(
                self.index.find_by_embedding_neighbors(
                    query_vector, k=pool, filters=filters, num_candidates=pool, exclude_id=exclude_id
                ),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Vector search timed out after {self.timeout_s}s")
            return BranchResult.unavailable("vector_timeout")
        except Exception as e:
            if is_config_error(e):
                self.availability.disable(f"vector_index_unavailable: {e}")
                return BranchResult.unavailable("vector_index_unavailable")
            logger.error(f"Vector search failed: {e}")
            return BranchResult.unavailable("vector_error")

        kept: List[Tuple[Product, float]] = []
        below_floor = 0
        for product, score in pairs:
            if not product.available or product.id == exclude_id:
                continue
            if filters:
                if filters.category and product.category != filters.category:
                    continue
                if not filters.price_ok(product.new_price):
                    continue
                if filters.categories and not set(filters.categories) & set(product.categories):
                    continue
            if score < self.similarity_floor:
                below_floor += 1
                continue
            kept.append((product, score))

        kept.sort(key=lambda ps: (-ps[1], ps[0].id))
        results = [SearchResult.from_product(p, SearchType.SEMANTIC, s) for p, s in kept[:limit]]
        logger.info(
            f"Vector search pool={pool} candidates={len(pairs)} below_floor={below_floor} "
            f"returned={len(results)} floor={self.similarity_floor}"
        )
        return BranchResult.ok(results)
