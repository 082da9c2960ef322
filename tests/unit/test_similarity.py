"""
Tests for feature-based similarity ranking and the similar-item search.
"""

import pytest

from matching.dedupe import CandidateProduct
from matching.providers import ProviderAggregator
from matching.similarity import (
    SimilarProductSearch,
    VisualFeatures,
    feature_queries,
    features_from_text,
    rank_by_similarity,
    search_confidence,
    similarity_score,
)


def product(title, price=100.0, category=None, description=None, source="catalog"):
    attributes = {"description": description} if description else {}
    return CandidateProduct(
        title=title, price=price, category=category, source=source, attributes=attributes,
    )


@pytest.fixture
def features():
    return VisualFeatures(
        dominant_colors=["navy", "cream"],
        category="dress",
        style=["minimalist", "vintage"],
        materials=["linen"],
        patterns=["solid"],
        occasion="evening",
    )


class QueryRecordingProvider:
    name = "catalog"

    def __init__(self, results):
        self.results = results
        self.queries = []

    def search(self, query, limit):
        self.queries.append(query)
        return list(self.results)[:limit]


class TestSimilarityScore:

    def test_weights(self, features):
        assert similarity_score(product("Navy Dress"), features) == 30 + 10
        assert similarity_score(product("Cream midi"), features) == 8
        assert similarity_score(product("Vintage linen slip"), features) == 7 + 5
        assert similarity_score(product("Evening bag"), features) == 4

    def test_matches_category_and_description(self, features):
        candidate = product("Slip", category="Dresses", description="minimalist cut")

        assert similarity_score(candidate, features) == 30 + 8

    def test_user_style_bonus(self, features):
        candidate = product("Oversized knit")

        assert similarity_score(candidate, features, user_style=["oversized", "knit"]) == 6

    def test_empty_features_score_nothing(self):
        assert similarity_score(product("Anything"), VisualFeatures()) == 0

    def test_late_colours_never_subtract(self):
        features = VisualFeatures(dominant_colors=["a1", "a2", "a3", "a4", "a5", "a6", "red"])

        assert similarity_score(product("red top"), features) == 0


class TestRanking:

    def test_sorts_by_score_and_keeps_ties_in_order(self, features):
        ranked = rank_by_similarity([
            product("Plain tee"),
            product("Navy linen dress"),
            product("Another tee"),
            product("Cream dress"),
        ], features)

        assert [p.title for p in ranked] == [
            "Navy linen dress", "Cream dress", "Plain tee", "Another tee",
        ]

    def test_confidence(self, features):
        assert search_confidence(features, 0) == 0
        assert search_confidence(features, 10) == 100
        assert search_confidence(features, 4) == pytest.approx(85)
        assert search_confidence(features, 2) == pytest.approx(100 * 0.7 * 0.85)

    def test_confidence_partial_features(self):
        assert search_confidence(VisualFeatures(category="dress"), 10) == 20


class TestFeatureQueries:

    def test_three_strategies(self, features):
        assert feature_queries(features) == [
            "dress navy cream minimalist vintage linen evening",
            "navy cream minimalist vintage dress",
            "dress midi maxi mini cocktail evening navy minimalist",
        ]

    def test_unknown_category_uses_generic_terms(self):
        queries = feature_queries(VisualFeatures(category="poncho"))

        assert queries == ["poncho", "poncho stylish fashionable"]

    def test_features_from_text(self):
        features = features_from_text("A black leather jacket, classic and casual")

        assert features.category == "jacket"
        assert features.dominant_colors == ["black"]
        assert features.materials == ["leather"]
        assert features.style == ["casual", "classic"]

    def test_features_from_text_defaults(self):
        assert features_from_text("something nice").category == "clothing"


class TestSimilarProductSearch:

    def test_dedupes_across_queries_then_ranks(self, features):
        provider = QueryRecordingProvider([
            product("Striped tee", 30),
            product("Navy linen dress", 120),
            product("Navy linen dress!", 121, source="serper"),
        ])
        search = SimilarProductSearch(ProviderAggregator([provider]))

        result = search.search(features)

        assert provider.queries == feature_queries(features)
        assert [p.title for p in result["products"]] == ["Navy linen dress", "Striped tee"]
        assert result["confidence"] == pytest.approx(100 * 0.7 * 0.85)

    def test_budget_filter_drops_unpriced(self, features):
        provider = QueryRecordingProvider([
            product("Navy dress", 300),
            product("Cream dress", 80),
            product("Vintage dress", None),
        ])
        search = SimilarProductSearch(ProviderAggregator([provider]))

        result = search.search(features, budget=(50, 150))

        assert [p.title for p in result["products"]] == ["Cream dress"]

    def test_limit_and_user_style(self, features):
        provider = QueryRecordingProvider([
            product("Dress A", 10),
            product("Oversized dress", 200),
        ])
        search = SimilarProductSearch(ProviderAggregator([provider]), limit=1)

        result = search.search(features, user_style=["oversized"])

        assert [p.title for p in result["products"]] == ["Oversized dress"]

    def test_all_providers_failing_returns_empty(self, features):
        class Down:
            name = "down"

            def search(self, query, limit):
                raise RuntimeError("boom")

        result = SimilarProductSearch(ProviderAggregator([Down()])).search(features)

        assert result["products"] == []
        assert result["confidence"] == 0
