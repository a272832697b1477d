# shopsearch/domain/repositories/trending_repo.py
from __future__ import annotations
from typing import List
from redis.asyncio import Redis

"""
Note:
    - Adapter for counting search queries in a Redis sorted set.
    - No business logic here, just counter access (record/top).
"""


class TrendingSearchRepo:
    """
    Sorted set of query -> number of times searched.
    """
    def __init__(self, redis: Redis, key: str = "trending:searches"):
        self.redis = redis
        self.key = key

    async def record(self, query: str) -> None:
        """Increment the counter for a (normalized) query."""
        await self.redis.zincrby(self.key, 1, query)

    async def top(self, limit: int) -> List[str]:
        """Most searched queries first."""
        members = await self.redis.zrevrange(self.key, 0, max(limit, 1) - 1)
        return [m.decode("utf-8") if isinstance(m, bytes) else m for m in members]
