from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "ShopSearch"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo
    MONGO_URI: str # ✅ declared
    MONGO_DB: str # ✅ declared
    products_collection: str = "products"
    vector_index: str = "vector_index"          # Atlas vector index on product_embedding

    # Redis (trending searches only, optional)
    REDIS_URL: Optional[str] = None
    trending_key: str = "trending:searches"
    trending_limit: int = 8

    # OpenAI
    OPENAI_API_KEY: str # ✅ declared
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-ada-002"
    OPENAI_LLM_MODEL: str = "gpt-4o"

    # Per-call timeouts (seconds); a timeout degrades the branch, never the request
    embedding_timeout_s: float = 8.0
    search_timeout_s: float = 6.0
    llm_timeout_s: float = 12.0

    # Semantic branch
    similarity_floor: float = 0.80

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
