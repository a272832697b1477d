# shopsearch/api/v1/routers/products.py

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
import time

from shopsearch.api.deps import embedder, product_repo, search_service
from shopsearch.api.v1.routers.search import server_error
from shopsearch.api.v1.schemas.search import ProductAddedOut, ProductIn
from shopsearch.domain.repositories.product_repo import ProductRepo
from shopsearch.domain.services.catalog_svc import add_product, remove_product
from shopsearch.domain.services.embedding_svc import EmbeddingClient
from shopsearch.domain.services.search_svc import HybridSearchService

import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


def _not_found(product_id: int) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "message": f"Product {product_id} not found or unavailable"})


@router.post("/products", summary="Add a product and embed it for semantic search")
async def create_product(
    body: ProductIn,
    repo: ProductRepo = Depends(product_repo),
    emb: EmbeddingClient = Depends(embedder),
):
    """
    Id is assigned as max(id) + 1. The product is stored even when embedding
    fails; `hasVector: false` then means it is only reachable lexically.
    """
    start_time = time.perf_counter()
    try:
        added = await add_product(repo, emb, body.model_dump())
    except Exception as e:
        logger.exception(f"add_product failed name={body.name!r}")
        return server_error("Failed to add product", e)

    logger.info(f"Response: create_product id={added.product.id} elapsed_time={time.perf_counter() - start_time:.4f}s")
    return ProductAddedOut(
        id=added.product.id,
        name=added.product.name,
        hasVector=added.has_vector,
        message="Product added, AI search enabled" if added.has_vector
        else "Product added, AI search unavailable for it until it is embedded",
    ).model_dump()


@router.delete("/products/{product_id}")
async def delete_product(product_id: int, repo: ProductRepo = Depends(product_repo)):
    try:
        deleted = await remove_product(repo, product_id)
    except Exception as e:
        logger.exception(f"remove_product failed id={product_id}")
        return server_error("Failed to remove product", e)
    if not deleted:
        return _not_found(product_id)
    return {"success": True, "id": product_id}


@router.get("/products/{product_id}")
async def get_product(product_id: int, repo: ProductRepo = Depends(product_repo)):
    product = await repo.get_by_id(product_id)
    if product is None:
        return _not_found(product_id)
    return {"success": True, "product": product.model_dump(mode="json")}


@router.get("/products/{product_id}/related")
async def related_products(
    product_id: int,
    limit: int = Query(4, ge=1, le=20),
    svc: HybridSearchService = Depends(search_service),
):
    """Nearest neighbours of the product's own embedding; category/tag overlap when it has none."""
    logger.info(f"Request: related_products product_id={product_id} limit={limit}")
    try:
        outcome = await svc.related_products(product_id, limit)
    except Exception as e:
        logger.exception(f"related_products failed id={product_id}")
        return server_error("Related products temporarily unavailable", e)
    if outcome is None:
        return _not_found(product_id)

    return {
        "success": True,
        "productId": product_id,
        "totalResults": len(outcome.results),
        "breakdown": outcome.breakdown.model_dump(mode="json"),
        "results": [r.model_dump(mode="json") for r in outcome.results],
    }
