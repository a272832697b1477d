"""
Unit tests for intent classification -> fusion weights.
"""
import pytest

from shopsearch.domain.models.product import FilterSet
from shopsearch.domain.models.search import IntentWeights, QueryIntent
from shopsearch.domain.services.intent_classifier import IntentClassifier


@pytest.fixture
def classifier():
    return IntentClassifier()


def _pair(w: IntentWeights):
    return (w.vector_weight, w.lexical_weight)


class TestIntentClassifier:
    def test_brand_token_is_lexical_dominant(self, classifier):
        w = classifier.classify("NIKE運動鞋")
        assert w.intent == QueryIntent.BRAND
        assert _pair(w) == (0.3, 0.7)
        assert "brand:nike" in w.signals

    def test_brand_wins_over_category_filter(self, classifier):
        w = classifier.classify("adidas hoodie", FilterSet(category="men"))
        assert w.intent == QueryIntent.BRAND

    def test_brand_needs_word_boundary(self, classifier):
        w = classifier.classify("singapore trip outfit")
        assert w.intent != QueryIntent.BRAND

    def test_category_and_color_terms_only(self, classifier):
        w = classifier.classify("黑色外套")
        assert w.intent == QueryIntent.CATEGORY
        assert _pair(w) == (0.5, 0.5)

    def test_category_filter_without_qualifiers(self, classifier):
        w = classifier.classify("cotton", FilterSet(category="men"))
        assert w.intent == QueryIntent.CATEGORY
        assert _pair(w) == (0.5, 0.5)

    def test_occasion_is_vector_heavy(self, classifier):
        w = classifier.classify("約會穿的洋裝")
        assert w.intent == QueryIntent.DESCRIPTIVE
        assert _pair(w) == (0.8, 0.2)

    def test_descriptive_word(self, classifier):
        w = classifier.classify("舒適的上衣")
        assert _pair(w) == (0.7, 0.3)

    def test_long_query_is_descriptive(self, classifier):
        w = classifier.classify("a light layer for cool evenings")
        assert _pair(w) == (0.7, 0.3)
        assert "long_query" in w.signals

    def test_descriptive_query_ignores_category_filter(self, classifier):
        w = classifier.classify("comfortable sweater", FilterSet(category="women"))
        assert _pair(w) == (0.7, 0.3)

    def test_default(self, classifier):
        w = classifier.classify("hello world")
        assert w.intent == QueryIntent.DEFAULT
        assert _pair(w) == (0.6, 0.4)

    @pytest.mark.parametrize("query", ["NIKE運動鞋", "黑色外套", "約會", "舒適", "xyz", "", "black jacket under 800"])
    def test_weights_sum_to_one(self, classifier, query):
        w = classifier.classify(query)
        assert w.vector_weight + w.lexical_weight == pytest.approx(1.0)

    def test_is_pure(self, classifier):
        assert classifier.classify("黑色外套") == classifier.classify("黑色外套")


class TestIntentWeights:
    def test_rejects_weights_not_summing_to_one(self):
        with pytest.raises(ValueError):
            IntentWeights(vector_weight=0.5, lexical_weight=0.6)
