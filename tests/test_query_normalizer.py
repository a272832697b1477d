"""
Unit tests for query normalization: LLM line contract, regex fallback, raw passthrough.
"""
import pytest

from conftest import FakeLLM
from shopsearch.domain.models.product import FilterSet
from shopsearch.domain.models.search import NormalizationSource
from shopsearch.domain.services.llm_svc import LLMError
from shopsearch.domain.services.query_normalizer import (
    QueryNormalizer,
    extract_prices,
    parse_llm_line,
    regex_normalize,
    strip_price_phrases,
)


class TestParseLLMLine:
    def test_valid_line(self):
        parsed = parse_llm_line("KEYWORDS: NIKE 運動鞋 | CATEGORY: men | MIN_PRICE: none | MAX_PRICE: 3000")
        assert parsed is not None
        keywords, filters = parsed
        assert keywords == "NIKE 運動鞋"
        assert filters.category == "men"
        assert filters.min_price is None
        assert filters.max_price == 3000

    def test_code_fences_are_stripped(self):
        text = "```\nKEYWORDS: 黑色 外套 | CATEGORY: none | MIN_PRICE: none | MAX_PRICE: none\n```"
        keywords, filters = parse_llm_line(text)
        assert keywords == "黑色 外套"
        assert filters.is_empty()

    @pytest.mark.parametrize("text", [
        "Sure! Here are some keywords: black jacket",
        "KEYWORDS: none | CATEGORY: none | MIN_PRICE: none | MAX_PRICE: none",
        "KEYWORDS: jacket | CATEGORY: unisex | MIN_PRICE: none | MAX_PRICE: none",
        "KEYWORDS: jacket | CATEGORY: men | MIN_PRICE: cheap | MAX_PRICE: none",
        "",
    ])
    def test_contract_violations(self, text):
        assert parse_llm_line(text) is None


class TestPriceExtraction:
    @pytest.mark.parametrize("text,expected", [
        ("黑色外套 800以下", (None, 800.0)),
        ("jacket under 800", (None, 800.0)),
        ("外套 300元以上", (300.0, None)),
        ("shoes over 1000", (1000.0, None)),
        ("外套 500-1000元", (500.0, 1000.0)),
        ("洋裝 1000到500", (500.0, 1000.0)),
        ("black jacket", (None, None)),
    ])
    def test_bounds(self, text, expected):
        lo, hi, _ = extract_prices(text)
        assert (lo, hi) == expected

    def test_strip_price_phrases(self):
        assert strip_price_phrases("黑色外套 800以下") == "黑色外套"
        assert strip_price_phrases("no prices here") == "no prices here"


class TestRegexNormalize:
    def test_politeness_price_and_segmentation(self):
        keywords, filters = regex_normalize("我想要黑色外套 800以下")
        assert keywords == "黑色 外套"
        assert filters.max_price == 800
        assert filters.category is None

    def test_category_synonym_becomes_filter(self):
        keywords, filters = regex_normalize("女生 洋裝 1000以下")
        assert filters.category == "women"
        assert keywords == "洋裝"

    def test_english_category_respects_word_boundaries(self):
        keywords, filters = regex_normalize("women shoes")
        assert filters.category == "women"
        assert keywords == "shoes"

    def test_nothing_left_returns_none(self):
        assert regex_normalize("我想要") is None


class TestQueryNormalizer:
    async def test_llm_result_used_when_contract_holds(self):
        llm = FakeLLM("KEYWORDS: 黑色 外套 | CATEGORY: women | MIN_PRICE: none | MAX_PRICE: 800")
        out = await QueryNormalizer(llm).normalize("我想要一件女生的黑色外套 800以下")
        assert out.source == NormalizationSource.LLM
        assert out.keywords == "黑色 外套"
        assert out.filters == FilterSet(category="women", max_price=800)

    async def test_malformed_llm_output_falls_back_to_regex(self):
        llm = FakeLLM("I'm sorry, I can't help with that.")
        out = await QueryNormalizer(llm).normalize("我想要黑色外套 800以下")
        assert out.source == NormalizationSource.REGEX
        assert out.filters.max_price == 800
        assert out.keywords == "黑色 外套"

    async def test_llm_error_falls_back_to_regex(self):
        out = await QueryNormalizer(FakeLLM(LLMError("timeout"))).normalize("jacket under 800")
        assert out.source == NormalizationSource.REGEX
        assert out.filters.max_price == 800
        assert out.keywords == "jacket"

    async def test_raw_passthrough(self):
        out = await QueryNormalizer().normalize("我想要")
        assert out.source == NormalizationSource.RAW
        assert out.keywords == "我想要"
        assert out.filters.is_empty()

    async def test_non_llm_error_falls_back_to_regex(self):
        out = await QueryNormalizer(FakeLLM(ConnectionError("reset"))).normalize("jacket 800以下")
        assert out.source == NormalizationSource.REGEX
        assert out.keywords == "jacket"
        assert out.filters.max_price == 800

    async def test_empty_query(self):
        out = await QueryNormalizer(FakeLLM()).normalize("   ")
        assert out.keywords == ""
        assert out.source == NormalizationSource.RAW
