"""
Query normalization: raw shopper text -> (keywords, structured filters).

Three tiers, each a fallback for the one before:
  1. LLM rewrite parsed against a single labeled line
  2. deterministic regex extraction (price bounds, category dictionary)
  3. the raw query with no filters
"""

import logging
import re
from typing import Optional, Tuple

from shopsearch.domain.models.product import FilterSet
from shopsearch.domain.models.search import NormalizationSource, NormalizedQuery
from shopsearch.domain.services.constants import NORMALIZE_MAX_TOKENS, NORMALIZE_TEMPERATURE
from shopsearch.domain.services.llm_svc import LLM
from shopsearch.domain.services.prompts import normalize_prompt
from shopsearch.domain.services import vocabulary as vocab

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# LLM output contract
# ---------------------------------------------------------------------------

_CODE_FENCE_RE = re.compile(r"^```[a-z]*\s*|\s*```$", re.MULTILINE)

_LINE_RE = re.compile(
    r"KEYWORDS\s*[:：]\s*(?P<kw>[^|\n]*)\|"
    r"\s*CATEGORY\s*[:：]\s*(?P<cat>[^|\n]*)\|"
    r"\s*MIN_PRICE\s*[:：]\s*(?P<min>[^|\n]*)\|"
    r"\s*MAX_PRICE\s*[:：]\s*(?P<max>[^|\n]*)",
    re.IGNORECASE,
)

_NONE_VALUES = {"", "none", "null", "n/a", "-", "無"}


def _parse_price_field(raw: str) -> Tuple[bool, Optional[float]]:
    """(ok, value). 'none' is ok with no value; anything non-numeric is a contract violation."""
    s = raw.strip().lower().lstrip("$").replace(",", "")
    if s in _NONE_VALUES:
        return True, None
    try:
        return True, float(s)
    except ValueError:
        return False, None


def parse_llm_line(text: str) -> Optional[Tuple[str, FilterSet]]:
    """Parse the labeled line. None means the reply broke the contract."""
    m = _LINE_RE.search(_CODE_FENCE_RE.sub("", text or ""))
    if not m:
        return None

    keywords = " ".join(m.group("kw").split())
    if keywords.lower() in _NONE_VALUES:
        return None

    category = m.group("cat").strip().lower()
    if category in _NONE_VALUES:
        category = None
    elif category not in vocab.CATEGORY_TERMS:
        return None

    ok_min, min_price = _parse_price_field(m.group("min"))
    ok_max, max_price = _parse_price_field(m.group("max"))
    if not (ok_min and ok_max):
        return None

    return keywords, FilterSet(category=category, min_price=min_price, max_price=max_price)


# ---------------------------------------------------------------------------
# Regex fallback
# ---------------------------------------------------------------------------

_NUM = r"(?:NT\$|\$)?\s*(\d+(?:\.\d+)?)\s*(?:元|塊|块|dollars?)?"

_RANGE_RE = re.compile(_NUM + r"\s*(?:~|～|-|－|–|到|至|to)\s*" + _NUM, re.IGNORECASE)
_MAX_SUFFIX_RE = re.compile(_NUM + r"\s*(?:以下|以內|以内|之內|之内)")
_MAX_PREFIX_RE = re.compile(r"(?:under|below|less than|cheaper than|低於|低于|不超過|不超过)\s*" + _NUM, re.IGNORECASE)
_MIN_SUFFIX_RE = re.compile(_NUM + r"\s*(?:以上|起)")
_MIN_PREFIX_RE = re.compile(r"(?:over|above|more than|高於|高于|超過|超过)\s*" + _NUM, re.IGNORECASE)

_PUNCT_RE = re.compile(r"[，,。.!！?？、;；:：()（）\[\]]+")
_SCRIPT_BOUNDARY_RE = re.compile(r"(?<=[A-Za-z0-9])(?=[一-鿿])|(?<=[一-鿿])(?=[A-Za-z0-9])")


def extract_prices(text: str) -> Tuple[Optional[float], Optional[float], str]:
    """(min_price, max_price, text with the price phrases removed)."""
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    m = _RANGE_RE.search(text)
    if m:
        a, b = float(m.group(1)), float(m.group(2))
        min_price, max_price = min(a, b), max(a, b)
        text = text[:m.start()] + " " + text[m.end():]

    for rx in (_MAX_SUFFIX_RE, _MAX_PREFIX_RE):
        m = rx.search(text)
        if m and max_price is None:
            max_price = float(m.group(1))
            text = text[:m.start()] + " " + text[m.end():]

    for rx in (_MIN_SUFFIX_RE, _MIN_PREFIX_RE):
        m = rx.search(text)
        if m and min_price is None:
            min_price = float(m.group(1))
            text = text[:m.start()] + " " + text[m.end():]

    return min_price, max_price, text


def strip_price_phrases(text: str) -> str:
    _, _, stripped = extract_prices(text or "")
    return " ".join(stripped.split())


def _segment(text: str) -> str:
    """Space out known colour/product-type terms and script changes (NIKE運動鞋 -> NIKE 運動鞋)."""
    found = [t for t in vocab.find_terms(text, vocab.COLOR_TERMS + vocab.PRODUCT_TYPE_TERMS) if not t.isascii()]
    for term in found:
        # 紅色 inside 粉紅色 must stay whole
        if any(term != longer and term in longer for longer in found):
            continue
        text = vocab.term_pattern(term).sub(f" {term} ", text)
    return _SCRIPT_BOUNDARY_RE.sub(" ", text)


def regex_normalize(raw: str) -> Optional[Tuple[str, FilterSet]]:
    """Deterministic extraction. None when it finds neither keywords nor filters."""
    min_price, max_price, text = extract_prices(raw)

    category = None
    detected = vocab.detect_category(text)
    if detected:
        category = detected[0]
        text = vocab.strip_terms(text, vocab.CATEGORY_TERMS[category])

    text = vocab.strip_terms(text, vocab.POLITENESS_TERMS + vocab.QUANTIFIER_TERMS)
    text = _PUNCT_RE.sub(" ", _segment(text))
    keywords = " ".join(text.split())

    filters = FilterSet(category=category, min_price=min_price, max_price=max_price)
    if not keywords and filters.is_empty():
        return None
    return keywords, filters


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class QueryNormalizer:
    def __init__(self, llm: Optional[LLM] = None):
        self.llm = llm

    async def normalize(self, raw_query: str) -> NormalizedQuery:
        raw = " ".join((raw_query or "").split())
        if not raw:
            return NormalizedQuery(keywords="", source=NormalizationSource.RAW)

        # 1) LLM
        if self.llm is not None:
            try:
                reply = await self.llm.complete(
                    normalize_prompt(raw),
                    max_tokens=NORMALIZE_MAX_TOKENS,
                    temperature=NORMALIZE_TEMPERATURE,
                )
                parsed = parse_llm_line(reply)
                if parsed:
                    keywords, filters = parsed
                    logger.info(f"Query normalized by LLM: {raw!r} -> {keywords!r} filters={filters.model_dump(exclude_none=True)}")
                    return NormalizedQuery(keywords=keywords, filters=filters, source=NormalizationSource.LLM)
                logger.warning(f"LLM normalization reply broke the output contract: {reply[:200]!r}")
            except Exception as e:
                logger.warning(f"LLM normalization unavailable, using regex fallback: {e}")

        # 2) Regex
        parsed = regex_normalize(raw)
        if parsed:
            keywords, filters = parsed
            logger.info(f"Query normalized by regex: {raw!r} -> {keywords!r} filters={filters.model_dump(exclude_none=True)}")
            return NormalizedQuery(keywords=keywords, filters=filters, source=NormalizationSource.REGEX)

        # 3) Raw passthrough
        logger.info(f"Query passed through unnormalized: {raw!r}")
        return NormalizedQuery(keywords=raw, filters=FilterSet(), source=NormalizationSource.RAW)
