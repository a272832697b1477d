# shopsearch/domain/services/catalog_svc.py
"""
Write side of the catalog: add and remove products.
A product is searchable lexically as soon as it is stored; it joins semantic
retrieval only once it carries an embedding.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

from shopsearch.domain.models.product import Product
from shopsearch.domain.services.constants import EMBEDDING_PATH
from shopsearch.domain.services.embedding_svc import Embedder, product_text

logger = logging.getLogger(__name__)

# Concurrent inserts may race on max(id) + 1 when `id` carries a unique index
_ID_RETRIES = 3


class AddedProduct(BaseModel):
    product: Product
    has_vector: bool


async def add_product(repo, embedder: Embedder, data: Dict[str, Any]) -> AddedProduct:
    """
    Store a new product under max(id) + 1 and embed its searchable text.
    An embedding failure does not block the insert; `has_vector` reports it.
    """
    fields = {k: v for k, v in data.items() if k not in ("id", EMBEDDING_PATH, "embedding")}
    fields.setdefault("available", True)
    fields["date"] = fields.get("date") or datetime.now(timezone.utc)

    # Embed once; the text does not depend on the id
    draft = Product.model_validate({**fields, "id": 0})
    vector = await embedder.embed(product_text(draft))
    if vector is None:
        logger.warning(f"Product {draft.name!r} stored without embedding; semantic search will not see it")

    for attempt in range(_ID_RETRIES):
        product = draft.model_copy(update={"id": await repo.next_id()})
        doc = product.model_dump()
        if vector is not None:
            doc[EMBEDDING_PATH] = vector
            doc["vector_generated_at"] = datetime.now(timezone.utc)
            doc["embedding_model"] = getattr(embedder, "model", None)
        try:
            await repo.insert(doc)
        except DuplicateKeyError:
            if attempt == _ID_RETRIES - 1:
                raise
            logger.warning(f"Product id {product.id} taken, retrying")
            continue
        logger.info(f"Product added id={product.id} name={product.name!r} has_vector={vector is not None}")
        return AddedProduct(product=product, has_vector=vector is not None)

    raise RuntimeError("Unexpected fall-through in add_product")


async def remove_product(repo, product_id: int) -> bool:
    deleted = await repo.delete(product_id)
    if deleted:
        logger.info(f"Product removed id={product_id}")
    else:
        logger.info(f"Product id={product_id} not found, nothing removed")
    return deleted
