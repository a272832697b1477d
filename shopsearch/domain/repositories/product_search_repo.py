# shopsearch/domain/repositories/product_search_repo.py
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from shopsearch.domain.models.product import FilterSet, Product
from shopsearch.domain.services.constants import EMBEDDING_PATH

logger = logging.getLogger(__name__)


class ProductSearchRepo:
    """
    MongoDB Atlas Vector Search over products.product_embedding.
    Only equality filters (available, category) are pushed into $vectorSearch.filter;
    both paths must be declared as `filter` fields in the Atlas index definition.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products",
                 index_name: str = "vector_index"):
        self.col: AsyncIOMotorCollection = db[collection_name]
        self.index_name = index_name

    # ---------- Utils ----------
    @staticmethod
    def _prefilter(filters: Optional[FilterSet], exclude_id: Optional[int]) -> Dict[str, Any]:
        clauses: List[Dict[str, Any]] = [{"available": {"$eq": True}}]
        if filters and filters.category:
            clauses.append({"category": {"$eq": filters.category}})
        if exclude_id is not None:
            clauses.append({"id": {"$ne": exclude_id}})
        return clauses[0] if len(clauses) == 1 else {"$and": clauses}

    # ---------- Vector search ----------
    async def find_by_embedding_neighbors(
        self,
        query_vector: List[float],
        k: int,
        filters: Optional[FilterSet] = None,
        num_candidates: Optional[int] = None,
        exclude_id: Optional[int] = None,
    ) -> List[Tuple[Product, float]]:
        """
        Approximate nearest neighbours via $vectorSearch, pre-filtered on
        available/category. Returns (product, vectorSearchScore) pairs.
        """
        pipeline: List[Dict[str, Any]] = [
            {
                "$vectorSearch": {
                    "index": self.index_name,
                    "path": EMBEDDING_PATH,
                    "queryVector": query_vector,
                    "numCandidates": max(num_candidates or k, k),
                    "limit": k,
                    "filter": self._prefilter(filters, exclude_id),
                }
            },
            {"$addFields": {"score": {"$meta": "vectorSearchScore"}}},
            {"$project": {"_id": 0, EMBEDDING_PATH: 0}},
        ]

        cursor = self.col.aggregate(pipeline)
        out: List[Tuple[Product, float]] = []
        async for doc in cursor:
            score = float(doc.pop("score", 0.0))
            out.append((Product.model_validate(doc), score))
        return out

    async def has_vector_index(self) -> bool:
        """
        True if the Atlas search index exists. Raises on deployments without
        Atlas Search (list_search_indexes unsupported); callers treat that as absent.
        """
        cursor = self.col.list_search_indexes(self.index_name)
        async for idx in cursor:
            logger.debug(f"Vector index found: {idx.get('name')} status={idx.get('status')}")
            return True
        return False
