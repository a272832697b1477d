import logging
from typing import List, Optional

from shopsearch.domain.repositories.trending_repo import TrendingSearchRepo
from shopsearch.domain.services.constants import DEFAULT_TRENDING

logger = logging.getLogger(__name__)


async def record_search(repo: Optional[TrendingSearchRepo], query: str) -> None:
    """Count a served query. No-op without Redis; a Redis error never fails the search."""
    q = " ".join((query or "").split()).lower()
    if repo is None or not q:
        return
    try:
        await repo.record(q)
    except Exception as e:
        logger.warning(f"trending record failed query={q!r} err={e}")


async def get_trending(repo: Optional[TrendingSearchRepo], limit: int = 8) -> List[str]:
    """Most searched queries, or the default list when Redis is absent, failing or empty."""
    limit = max(limit, 0)
    if repo is None:
        return list(DEFAULT_TRENDING[:limit])
    try:
        top = await repo.top(limit)
    except Exception as e:
        logger.warning(f"trending read failed err={e}")
        top = []
    return top[:limit] if top else list(DEFAULT_TRENDING[:limit])
