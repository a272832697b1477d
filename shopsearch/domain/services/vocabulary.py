"""
Fixed vocabularies shared by the query normalizer and the intent classifier.

Terms are matched case-insensitively. ASCII terms get letter boundaries so that
"men" does not fire inside "women" and "gap" not inside "singapore"; CJK terms
are plain substrings since that script has no word separators.
"""

import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

BRANDS = (
    "nike", "adidas", "uniqlo", "zara", "h&m", "puma", "new balance",
    "gap", "levi's", "levis", "converse", "under armour", "gu", "muji",
)

# category enum -> synonyms. Checked in this order.
CATEGORY_TERMS: Dict[str, Tuple[str, ...]] = {
    "kids": ("童裝", "兒童", "儿童", "小孩", "孩子", "童", "kids", "kid", "children", "child"),
    "women": ("女裝", "女生", "女性", "女士", "女", "women", "womens", "woman", "ladies", "lady"),
    "men": ("男裝", "男生", "男性", "男士", "男", "men", "mens", "man"),
}

PRODUCT_TYPE_TERMS = (
    "外套", "夾克", "上衣", "襯衫", "t恤", "毛衣", "帽t", "洋裝", "連身裙", "裙子", "短裙",
    "長裙", "褲子", "牛仔褲", "短褲", "長褲", "鞋子", "運動鞋", "球鞋", "靴子", "包包", "帽子",
    "jacket", "coat", "shirt", "t-shirt", "tee", "top", "sweater", "hoodie", "dress",
    "skirt", "pants", "jeans", "shorts", "shoes", "sneakers", "boots", "bag", "hat",
)

COLOR_TERMS = (
    "粉紅色", "黑色", "白色", "紅色", "藍色", "綠色", "黃色", "灰色", "紫色", "棕色",
    "米色", "卡其", "black", "white", "red", "blue", "green", "yellow", "grey", "gray",
    "pink", "purple", "brown", "beige", "navy", "khaki",
)

DESCRIPTIVE_TERMS = (
    "舒適", "時尚", "休閒", "正式", "運動", "保暖", "透氣", "防水", "輕便", "優雅", "可愛", "復古",
    "comfortable", "comfy", "stylish", "casual", "formal", "sporty", "warm", "breathable",
    "waterproof", "elegant", "cute", "vintage", "cozy", "lightweight",
)

OCCASION_TERMS = (
    "約會", "婚禮", "面試", "派對", "上班", "通勤", "旅行", "度假", "聚會", "露營",
    "date", "wedding", "interview", "party", "office", "commute", "travel",
    "vacation", "beach", "camping",
)

POLITENESS_TERMS = (
    "我想要買", "我想買", "我想要", "我要買", "我要", "請問", "請給我", "請幫我找", "幫我找",
    "幫我", "有沒有", "有没有", "推薦", "給我", "一下", "嗎", "呢", "please", "show me",
    "i'm looking for", "i am looking for", "looking for", "i want", "find me", "can you",
)

QUANTIFIER_TERMS = (
    "一件", "一雙", "一條", "一個", "一頂", "一些", "幾件", "一套",
    "a pair of", "some", "a couple of",
)


def _is_ascii(term: str) -> bool:
    return all(ord(ch) < 128 for ch in term)


@lru_cache(maxsize=None)
def term_pattern(term: str) -> re.Pattern:
    """Compiled case-insensitive pattern for one vocabulary term."""
    escaped = re.escape(term)
    if _is_ascii(term):
        return re.compile(r"(?<![a-z])" + escaped + r"(?![a-z])", re.IGNORECASE)
    return re.compile(escaped, re.IGNORECASE)


def contains_term(text: str, term: str) -> bool:
    return term_pattern(term).search(text) is not None


def find_terms(text: str, terms: Iterable[str]) -> List[str]:
    """Terms present in text, longest first so overlapping terms resolve greedily."""
    return [t for t in sorted(terms, key=len, reverse=True) if contains_term(text, t)]


def strip_terms(text: str, terms: Iterable[str]) -> str:
    for t in sorted(terms, key=len, reverse=True):
        text = term_pattern(t).sub(" ", text)
    return text


def detect_brand(text: str) -> Optional[str]:
    found = find_terms(text, BRANDS)
    return found[0] if found else None


def detect_category(text: str) -> Optional[Tuple[str, str]]:
    """Return (category, matched term) for the first category whose synonym appears."""
    for category, synonyms in CATEGORY_TERMS.items():
        found = find_terms(text, synonyms)
        if found:
            return category, found[0]
    return None


def all_category_terms() -> List[str]:
    return [t for synonyms in CATEGORY_TERMS.values() for t in synonyms]
