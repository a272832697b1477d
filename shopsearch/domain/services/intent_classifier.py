"""
Query intent -> fusion weights.

Precedence, first match wins:
- brand token                        -> lexical-heavy (exact names matter)
- only category/type/colour terms,
  or a category filter and no
  descriptive qualifiers             -> balanced
- occasion / descriptive / long text -> vector-heavy
- anything else                      -> moderate vector skew
"""

import re
from typing import List, Optional

from shopsearch.domain.models.product import FilterSet
from shopsearch.domain.models.search import IntentWeights, QueryIntent
from shopsearch.domain.services import vocabulary as vocab
from shopsearch.domain.services.constants import (
    DESCRIPTIVE_MIN_CHARS,
    DESCRIPTIVE_MIN_WORDS,
    WEIGHTS_BRAND,
    WEIGHTS_CATEGORY,
    WEIGHTS_DEFAULT,
    WEIGHTS_DESCRIPTIVE,
    WEIGHTS_OCCASION,
)
from shopsearch.domain.services.query_normalizer import strip_price_phrases


_FILLER_RE = re.compile(r"[\s\W_]+", re.UNICODE)


def _is_long(query: str) -> bool:
    return len(query.split()) >= DESCRIPTIVE_MIN_WORDS or len("".join(query.split())) >= DESCRIPTIVE_MIN_CHARS


def _only_category_terms(query: str) -> Optional[List[str]]:
    """Matched terms if the query is made of category, product-type and colour words alone."""
    terms = vocab.all_category_terms() + list(vocab.PRODUCT_TYPE_TERMS) + list(vocab.COLOR_TERMS)
    found = vocab.find_terms(query, terms)
    if not found:
        return None
    rest = vocab.strip_terms(query, terms)
    return found if not _FILLER_RE.sub("", rest) else None


class IntentClassifier:
    """Pure function of (query, filters); holds no state."""

    def classify(self, query: str, filters: Optional[FilterSet] = None) -> IntentWeights:
        text = strip_price_phrases(query or "")
        filters = filters or FilterSet()

        brand = vocab.detect_brand(text)
        if brand:
            return IntentWeights.of(WEIGHTS_BRAND, QueryIntent.BRAND, [f"brand:{brand}"])

        occasion = vocab.find_terms(text, vocab.OCCASION_TERMS)
        descriptive = vocab.find_terms(text, vocab.DESCRIPTIVE_TERMS)
        colors = vocab.find_terms(text, vocab.COLOR_TERMS)
        color_signals = [f"color:{c}" for c in colors]

        category_terms = _only_category_terms(text)
        if category_terms:
            return IntentWeights.of(WEIGHTS_CATEGORY, QueryIntent.CATEGORY,
                                    [f"term:{t}" for t in category_terms])

        long_query = _is_long(text)
        if filters.category and not (occasion or descriptive or long_query):
            return IntentWeights.of(WEIGHTS_CATEGORY, QueryIntent.CATEGORY,
                                    [f"filter:{filters.category}"] + color_signals)

        if occasion:
            return IntentWeights.of(WEIGHTS_OCCASION, QueryIntent.DESCRIPTIVE,
                                    [f"occasion:{t}" for t in occasion] + color_signals)
        if descriptive or long_query:
            signals = [f"descriptive:{t}" for t in descriptive] + (["long_query"] if long_query else [])
            return IntentWeights.of(WEIGHTS_DESCRIPTIVE, QueryIntent.DESCRIPTIVE, signals + color_signals)

        return IntentWeights.of(WEIGHTS_DEFAULT, QueryIntent.DEFAULT, color_signals)
