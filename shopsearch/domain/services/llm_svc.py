# shopsearch/domain/services/llm_svc.py

from __future__ import annotations
from typing import Protocol
import asyncio
import logging
from time import monotonic as _now

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Provider failure, timeout or empty completion."""


class LLM(Protocol):
    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str: ...


class OpenAIChatLLM:
    """
    Single-turn chat completion. Raises LLMError; callers own the fallback.
    """

    def __init__(self, client: AsyncOpenAI, *, model: str = "gpt-4o", timeout_s: float = 12.0):
        self.client = client
        self.model = model
        self.timeout_s = timeout_s

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        t0 = _now()
        try:
            resp = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise LLMError(f"LLM call timed out after {self.timeout_s}s") from e
        except Exception as e:
            raise LLMError(f"LLM call failed: {e}") from e

        dt = _now() - t0
        # Best-effort usage logging
        u = getattr(resp, "usage", None)
        logger.info(
            f"LLM call model={getattr(resp, 'model', self.model)} duration={dt:.3f}s "
            f"tokens(prompt={getattr(u, 'prompt_tokens', None)}, completion={getattr(u, 'completion_tokens', None)})"
        )

        content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        if not content:
            raise LLMError("LLM returned an empty completion")
        return content
