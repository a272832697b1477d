import json
from typing import Any, Dict, List

# Output contract of the normalizer: exactly one labeled line
NORMALIZE_LINE_FORMAT = "KEYWORDS: <tokens> | CATEGORY: <men|women|kids|none> | MIN_PRICE: <number|none> | MAX_PRICE: <number|none>"


def normalize_prompt(query: str) -> str:
    return (
        "You rewrite e-commerce search queries for a clothing store into search keywords.\n\n"
        "RULES:\n"
        "- Remove politeness and filler (我想要, 請給我, 幫我找, I want, show me)\n"
        "- Remove quantifiers (一件, 一雙, a pair of) and price phrases\n"
        "- Keep brand names and colours exactly as written (NIKE, 黑色, black)\n"
        "- Keep product types, map colloquial names to catalog terms (球鞋 -> 運動鞋)\n"
        "- Separate keywords with single spaces\n"
        "- CATEGORY only when the shopper is explicit: 男/men -> men, 女/women -> women, 童/kids -> kids\n"
        "- MIN_PRICE / MAX_PRICE only when a price bound is stated (800以下 -> MAX_PRICE: 800)\n"
        "- Use none for anything not stated\n\n"
        "OUTPUT: one line, nothing else:\n"
        f"{NORMALIZE_LINE_FORMAT}\n\n"
        f"QUERY: {query}"
    )


def recommend_prompt(query: str, summary: List[Dict[str, Any]]) -> str:
    items = "\n".join(json.dumps(s, ensure_ascii=False, separators=(",", ":")) for s in summary)
    return (
        "You are a shopping assistant. Pick the ONE product that best matches the search.\n\n"
        f"SEARCH: {query}\n\n"
        "PRODUCTS (index is 1-based):\n"
        f"{items}\n\n"
        "RULES:\n"
        "- Use ONLY the products listed\n"
        "- Reason: one sentence, at most 50 characters, factual\n"
        "- Format: strict JSON, no code fences\n\n"
        'OUTPUT FORMAT: {"index": <number>, "reason": "<why it fits>"}'
    )
