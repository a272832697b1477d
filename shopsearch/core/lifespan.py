# shopsearch/core/lifespan.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from openai import AsyncOpenAI

from shopsearch.db import mongo, redis as r
from shopsearch.core.config import get_settings
from shopsearch.domain.repositories.product_search_repo import ProductSearchRepo
from shopsearch.domain.services.semantic_retriever import SemanticAvailability, is_config_error

logger = logging.getLogger(__name__)


async def probe_vector_index(search_repo: ProductSearchRepo, availability: SemanticAvailability) -> None:
    """
    Turn the semantic branch off for the process when the vector index is
    missing or Atlas Search is not supported. Transient errors leave it on.
    """
    try:
        present = await search_repo.has_vector_index()
    except Exception as e:
        if is_config_error(e):
            availability.disable(f"vector_index_unavailable: {e}")
        else:
            logger.warning(f"Vector index probe failed, keeping semantic search enabled: {e}")
        return
    if not present:
        availability.disable(f"vector_index_missing: {search_repo.index_name}")
    else:
        logger.info(f"Vector index {search_repo.index_name!r} present")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    await mongo.connect()
    # Redis is optional (trending searches only)
    await r.connect()

    app.state.openai = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
    app.state.semantic_availability = SemanticAvailability()
    try:
        db = mongo.get_db()
    except AssertionError:
        app.state.semantic_availability.disable("mongo_unavailable")
    else:
        await probe_vector_index(
            ProductSearchRepo(db, settings.products_collection, settings.vector_index),
            app.state.semantic_availability,
        )

    # Application runs
    yield

    # --- Shutdown ---
    await r.disconnect()
    await mongo.disconnect()
    await app.state.openai.close()
    logger.info("Connections closed")
