# shopsearch/api/deps.py
from typing import Optional

from fastapi import Depends, Request
from openai import AsyncOpenAI

from shopsearch.core.config import Settings, get_settings
from shopsearch.db.mongo import get_db
from shopsearch.db.redis import get_redis
from shopsearch.domain.repositories.product_repo import ProductRepo
from shopsearch.domain.repositories.product_search_repo import ProductSearchRepo
from shopsearch.domain.repositories.trending_repo import TrendingSearchRepo
from shopsearch.domain.services.embedding_svc import EmbeddingClient
from shopsearch.domain.services.fusion import FusionEngine
from shopsearch.domain.services.intent_classifier import IntentClassifier
from shopsearch.domain.services.lexical_retriever import LexicalRetriever
from shopsearch.domain.services.llm_svc import OpenAIChatLLM
from shopsearch.domain.services.query_normalizer import QueryNormalizer
from shopsearch.domain.services.recommender import LLMRecommender
from shopsearch.domain.services.search_svc import HybridSearchService
from shopsearch.domain.services.semantic_retriever import SemanticAvailability, SemanticRetriever


# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db=Depends(get_db)):
    return db


# Redis client or None (trending searches only)
def redis_dep():
    return get_redis()


def openai_client(request: Request) -> AsyncOpenAI:
    return request.app.state.openai


def semantic_availability(request: Request) -> SemanticAvailability:
    return request.app.state.semantic_availability


def product_repo(db=Depends(mongo_db), settings: Settings = Depends(get_settings)) -> ProductRepo:
    return ProductRepo(db, settings.products_collection)


def embedder(client: AsyncOpenAI = Depends(openai_client),
             settings: Settings = Depends(get_settings)) -> EmbeddingClient:
    return EmbeddingClient(client, model=settings.OPENAI_EMBEDDING_MODEL, timeout_s=settings.embedding_timeout_s)


def trending_repo(redis=Depends(redis_dep), settings: Settings = Depends(get_settings)) -> Optional[TrendingSearchRepo]:
    return TrendingSearchRepo(redis, settings.trending_key) if redis is not None else None


def search_service(
    db=Depends(mongo_db),
    repo: ProductRepo = Depends(product_repo),
    emb: EmbeddingClient = Depends(embedder),
    client: AsyncOpenAI = Depends(openai_client),
    availability: SemanticAvailability = Depends(semantic_availability),
    settings: Settings = Depends(get_settings),
) -> HybridSearchService:
    """Wires one HybridSearchService from the process-wide clients; components are stateless."""
    llm = OpenAIChatLLM(client, model=settings.OPENAI_LLM_MODEL, timeout_s=settings.llm_timeout_s)
    return HybridSearchService(
        normalizer=QueryNormalizer(llm),
        classifier=IntentClassifier(),
        embedder=emb,
        lexical=LexicalRetriever(repo, timeout_s=settings.search_timeout_s),
        semantic=SemanticRetriever(
            ProductSearchRepo(db, settings.products_collection, settings.vector_index),
            availability=availability,
            similarity_floor=settings.similarity_floor,
            timeout_s=settings.search_timeout_s,
        ),
        fusion=FusionEngine(),
        recommender=LLMRecommender(llm),
        catalog=repo,
    )
