# shopsearch/domain/services/embedding_svc.py

from __future__ import annotations
from typing import List, Optional, Protocol
import asyncio
import logging
import time

from openai import AsyncOpenAI

from shopsearch.domain.services.constants import EMBEDDING_DIM

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    async def embed(self, text: str) -> Optional[List[float]]: ...


# ---------- Text builder ------------------------------------------------------

def product_text(product) -> str:
    """Searchable representation of a product: name, description, category, categories, tags."""
    return " ".join(filter(None, [
        (product.name or "").strip(),
        (product.description or "").strip(),
        (product.category or "").strip(),
        " ".join(product.categories or []).strip(),
        " ".join(product.tags or []).strip(),
    ]))


# ---------- Client ------------------------------------------------------------

class EmbeddingClient:
    """
    Text -> vector through the OpenAI embeddings API.
    Returns None on empty input, provider error, timeout or a wrong-size vector;
    callers read None as "semantic unavailable" and fall back.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = "text-embedding-ada-002",
        timeout_s: float = 8.0,
        dimensions: int = EMBEDDING_DIM,
    ):
        self.client = client
        self.model = model
        self.timeout_s = timeout_s
        self.dimensions = dimensions

    async def embed(self, text: str) -> Optional[List[float]]:
        text = (text or "").strip()
        if not text:
            logger.debug("Skipping embedding for empty text")
            return None

        t0 = time.perf_counter()
        try:
            resp = await asyncio.wait_for(
                self.client.embeddings.create(model=self.model, input=text, encoding_format="float"),
                timeout=self.timeout_s,
            )
            vec = list(resp.data[0].embedding)
        except asyncio.TimeoutError:
            logger.warning(f"Embedding timed out after {self.timeout_s}s for text={text[:60]!r}")
            return None
        except Exception as e:
            logger.error(f"Embedding request failed: {e}")
            return None

        if len(vec) != self.dimensions:
            logger.error(f"Embedding has {len(vec)} dimensions, expected {self.dimensions}")
            return None

        logger.info(f"Embedding ok model={self.model} dim={len(vec)} time_ms={(time.perf_counter() - t0) * 1000:.1f}")
        return vec
