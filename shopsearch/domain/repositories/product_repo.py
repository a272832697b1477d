# shopsearch/domain/repositories/product_repo.py

from __future__ import annotations
import re
from typing import Any, Dict, List, Optional, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ASCENDING
from shopsearch.domain.models.product import FilterSet, Product
from shopsearch.domain.services.constants import EMBEDDING_PATH, LEXICAL_FIELDS

# Never ship vectors back unless explicitly asked for
_NO_VECTOR = {"_id": 0, EMBEDDING_PATH: 0}


def filter_clauses(filters: Optional[FilterSet]) -> Dict[str, Any]:
    """MQL for `available` plus the structured filters."""
    mql: Dict[str, Any] = {"available": True}
    if not filters:
        return mql
    if filters.category:
        mql["category"] = filters.category
    if filters.has_price:
        price: Dict[str, float] = {}
        if filters.min_price is not None:
            price["$gte"] = filters.min_price
        if filters.max_price is not None:
            price["$lte"] = filters.max_price
        mql["new_price"] = price
    if filters.categories:
        mql["categories"] = {"$in": list(filters.categories)}
    return mql


def keyword_clause(keywords: Sequence[str]) -> Optional[Dict[str, Any]]:
    """
    Cross-field AND of per-token OR-across-fields substring matches.
    Array fields (categories, tags) match when any element matches.
    """
    per_token = [
        {"$or": [{f: {"$regex": re.escape(tok), "$options": "i"}} for f in LEXICAL_FIELDS]}
        for tok in keywords
    ]
    if not per_token:
        return None
    return per_token[0] if len(per_token) == 1 else {"$and": per_token}


class ProductRepo:
    """
    Product catalog backed by the 'products' collection.
    Read side is consumed by the search core; write side by the catalog service.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    # ----- Read ----------------------------------------------------------------

    async def get_by_id(self, product_id: int, *, available_only: bool = True,
                        with_embedding: bool = False) -> Optional[Product]:
        query: Dict[str, Any] = {"id": product_id}
        if available_only:
            query["available"] = True
        proj = {"_id": 0} if with_embedding else _NO_VECTOR
        doc = await self.col.find_one(query, proj)
        return Product.model_validate(doc) if doc else None

    async def find_available(
        self,
        filters: Optional[FilterSet] = None,
        keywords: Sequence[str] = (),
        limit: int = 10,
    ) -> List[Product]:
        """Available products matching filters and keywords, ordered by id."""
        mql = filter_clauses(filters)
        kw = keyword_clause(keywords)
        if kw:
            mql = {"$and": [mql, kw]}
        cursor = self.col.find(mql, _NO_VECTOR).sort("id", ASCENDING).limit(limit)
        return [Product.model_validate(doc) async for doc in cursor]

    async def find_by_exact_name(self, name: str) -> Optional[Product]:
        doc = await self.col.find_one({"name": name, "available": True}, _NO_VECTOR)
        return Product.model_validate(doc) if doc else None

    async def suggest_names(self, query: str, limit: int = 5) -> List[str]:
        rx = {"$regex": re.escape(query), "$options": "i"}
        cursor = self.col.find(
            {"available": True, "$or": [{"name": rx}, {"categories": rx}, {"tags": rx}]},
            {"_id": 0, "name": 1},
        ).sort("id", ASCENDING).limit(limit)
        return [doc["name"] async for doc in cursor if doc.get("name")]

    async def find_related_candidates(self, product: Product, limit: int) -> List[Product]:
        """Same category or any shared category/tag, excluding the product itself."""
        ors: List[Dict[str, Any]] = [{"category": product.category}]
        if product.categories:
            ors.append({"categories": {"$in": list(product.categories)}})
        if product.tags:
            ors.append({"tags": {"$in": list(product.tags)}})
        cursor = self.col.find(
            {"available": True, "id": {"$ne": product.id}, "$or": ors}, _NO_VECTOR
        ).sort("id", ASCENDING).limit(limit)
        return [Product.model_validate(doc) async for doc in cursor]

    # ----- Write ---------------------------------------------------------------

    async def next_id(self) -> int:
        """max(id) + 1, or 1 for an empty catalog."""
        last = await self.col.find_one({}, {"_id": 0, "id": 1}, sort=[("id", DESCENDING)])
        return int(last["id"]) + 1 if last and last.get("id") is not None else 1

    async def insert(self, doc: Dict[str, Any]) -> None:
        await self.col.insert_one(dict(doc))

    async def delete(self, product_id: int) -> bool:
        res = await self.col.delete_one({"id": product_id})
        return res.deleted_count > 0
