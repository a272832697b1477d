import asyncio
import logging
import re
from typing import List, Optional, Protocol, Sequence

from shopsearch.domain.models.product import FilterSet, Product, SearchResult, SearchType
from shopsearch.domain.models.search import BranchResult
from shopsearch.domain.services.constants import LEXICAL_BASELINE_SCORE

logger = logging.getLogger(__name__)

_TOKEN_SPLIT_RE = re.compile(r"[\s,，、;；/|。!！?？:：()（）\[\]\"'“”]+")


class Catalog(Protocol):
    async def find_available(
        self, filters: Optional[FilterSet] = None, keywords: Sequence[str] = (), limit: int = 10
    ) -> List[Product]: ...


def tokenize(query: str) -> List[str]:
    """Lower-cased keyword tokens, split on whitespace/punctuation, de-duplicated in order."""
    tokens = [t for t in _TOKEN_SPLIT_RE.split((query or "").lower()) if t]
    return list(dict.fromkeys(tokens))


class LexicalRetriever:
    """
    Multi-keyword substring match over name, description, category, categories, tags.
    Every token must match somewhere (fields may differ per token). Hits are unranked:
    all carry LEXICAL_BASELINE_SCORE and come back in id order.
    """

    def __init__(self, catalog: Catalog, *, timeout_s: float = 6.0):
        self.catalog = catalog
        self.timeout_s = timeout_s

    async def search(self, query: str, limit: int, filters: Optional[FilterSet] = None) -> BranchResult:
        tokens = tokenize(query)
        if not tokens:
            logger.debug("Lexical search skipped: empty keyword set")
            return BranchResult.no_match("empty_keywords")
        if limit <= 0:
            return BranchResult.no_match("zero_limit")

        try:
            products = await asyncio.wait_for(
                self.catalog.find_available(filters=filters, keywords=tokens, limit=limit),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Lexical search timed out after {self.timeout_s}s tokens={tokens}")
            return BranchResult.unavailable("lexical_timeout")
        except Exception as e:
            logger.error(f"Lexical search failed tokens={tokens}: {e}")
            return BranchResult.unavailable("lexical_error")

        results = [
            SearchResult.from_product(p, SearchType.LEXICAL, LEXICAL_BASELINE_SCORE)
            for p in sorted(products, key=lambda p: p.id)
            if p.available
        ][:limit]
        logger.info(f"Lexical search tokens={tokens} returned {len(results)} results")
        return BranchResult.ok(results)
