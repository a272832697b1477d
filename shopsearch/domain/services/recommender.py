# shopsearch/domain/services/recommender.py

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import re

from pydantic import BaseModel, Field, ValidationError

from shopsearch.domain.models.product import SearchResult
from shopsearch.domain.services.constants import (
    RECOMMEND_DESC_CHARS,
    RECOMMEND_MAX_TOKENS,
    RECOMMEND_MIN_RESULTS,
    RECOMMEND_TEMPERATURE,
    RECOMMEND_TOP_N,
)
from shopsearch.domain.services.llm_svc import LLM
from shopsearch.domain.services.prompts import recommend_prompt

logger = logging.getLogger(__name__)

# =============================================================================
#                               VALIDATION SCHEMA
# =============================================================================

class RecommendationReply(BaseModel):
    """
    Expected LLM output, matching prompts.recommend_prompt:
      {"index": <1-based position in the summary>, "reason": "<why it fits>"}
    """
    index: int = Field(..., ge=1)
    reason: str = Field(default="", max_length=300)


# Regex to strip code fences (``` or ```json) from LLM output
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_LABELED_INDEX_RE = re.compile(r"RECOMMENDED\s*[:：]\s*#?(\d+)", re.IGNORECASE)
_LABELED_REASON_RE = re.compile(r"REASON\s*[:：]\s*(.+)", re.IGNORECASE)


def _strip_fences(s: str) -> str:
    return _CODE_FENCE_RE.sub("", s).strip()


def parse_recommendation(text: str, n_items: int) -> Optional[Tuple[int, str]]:
    """
    (0-based index, reason) or None when the reply is unusable.
    Accepts the JSON object, or the labeled-line form RECOMMENDED: n / REASON: ...
    """
    raw = _strip_fences(text or "")
    reply: Optional[RecommendationReply] = None

    m = _JSON_OBJECT_RE.search(raw)
    if m:
        try:
            reply = RecommendationReply.model_validate(json.loads(m.group(0)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.debug(f"Recommendation reply is not valid JSON: {e}")

    if reply is None:
        mi = _LABELED_INDEX_RE.search(raw)
        if not mi:
            return None
        mr = _LABELED_REASON_RE.search(raw)
        try:
            reply = RecommendationReply(index=int(mi.group(1)), reason=(mr.group(1).strip() if mr else ""))
        except ValidationError:
            return None

    if reply.index > n_items:
        logger.warning(f"Recommendation index {reply.index} out of range 1..{n_items}")
        return None
    return reply.index - 1, reply.reason.strip()


def _summary(results: List[SearchResult]) -> List[Dict[str, Any]]:
    out = []
    for i, r in enumerate(results, start=1):
        out.append({
            "index": i,
            "name": r.name,
            "price": r.new_price,
            "category": r.category,
            "desc": (r.description or "")[:RECOMMEND_DESC_CHARS],
            "confidence": round(r.confidence, 3),
        })
    return out


class LLMRecommender:
    """
    Marks at most one result as the recommended pick, with a short reason.
    Best-effort: any failure leaves the list exactly as it came in.
    """

    def __init__(self, llm: LLM, *, top_n: int = RECOMMEND_TOP_N):
        self.llm = llm
        self.top_n = top_n

    async def annotate(self, results: List[SearchResult], query: str) -> List[SearchResult]:
        if len(results) < RECOMMEND_MIN_RESULTS:
            return results

        head = results[: self.top_n]
        try:
            reply = await self.llm.complete(
                recommend_prompt(query, _summary(head)),
                max_tokens=RECOMMEND_MAX_TOKENS,
                temperature=RECOMMEND_TEMPERATURE,
            )
        except Exception as e:
            logger.warning(f"Recommendation skipped: {e}")
            return results

        parsed = parse_recommendation(reply, len(head))
        if parsed is None:
            logger.warning(f"Recommendation reply unusable: {reply[:200]!r}")
            return results

        idx, reason = parsed
        picked = results[idx]
        logger.info(f"Recommended product id={picked.id} name={picked.name!r}")
        annotated = list(results)
        annotated[idx] = picked.model_copy(update={"recommended": True, "recommendation_reason": reason or None})
        return annotated
