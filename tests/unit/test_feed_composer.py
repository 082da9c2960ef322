"""
Tests for discovery feed composition.
"""

import pytest

from core.utils import isoformat
from feed.composer import FeedComposer, build_queries
from matching.dedupe import CandidateProduct
from matching.providers import ProviderAggregator
from preferences.models import PreferenceSnapshot


class RecordingProvider:
    name = "catalog"

    def __init__(self, per_query=None):
        self.per_query = per_query or {}
        self.queries = []

    def search(self, query, limit):
        self.queries.append((query, limit))
        return self.per_query.get(query, [
            CandidateProduct(
                title=f"{query} item {i}",
                price=50.0 + i,
                brand="House",
                link=f"https://shop.example.com/{query.replace(' ', '-')}/{i}",
                source=self.name,
            )
            for i in range(limit)
        ])


class TestBuildQueries:

    def test_from_snapshot(self):
        snapshot = PreferenceSnapshot(
            profile_id="p",
            favorite_brands=["Ganni", "Toteme"],
            favorite_categories=["dresses"],
            chat_keywords=["linen"],
        )

        assert build_queries(snapshot) == ["Ganni dresses", "linen fashion", "Toteme style"]

    def test_from_anonymous_clicks(self):
        assert build_queries(None, ["Acne", "Khaite"], ["knitwear"]) == [
            "Acne knitwear", "Khaite fashion",
        ]

    def test_fallback(self):
        assert build_queries(None) == ["designer fashion", "high-end clothing", "luxury brands"]
        assert build_queries(PreferenceSnapshot(profile_id="p")) == [
            "designer fashion", "high-end clothing", "luxury brands",
        ]


class TestFeedComposer:

    @pytest.fixture
    def provider(self):
        return RecordingProvider()

    @pytest.fixture
    def composer(self, provider, preference_repository, event_store, supabase):
        return FeedComposer(
            ProviderAggregator([provider]),
            preference_repository,
            event_store,
            supabase,
        )

    def test_authenticated_feed_uses_snapshot(self, composer, provider, supabase, authenticated_actor):
        supabase.seed("user_preference_cache", {
            "profile_id": "profile-1",
            "favorite_brands": ["Ganni"],
            "favorite_categories": ["dresses"],
            "chat_keywords": [],
            "updated_at": isoformat(),
        })

        feed = composer.compose(authenticated_actor, limit=4)

        assert feed["queries"] == ["Ganni dresses"]
        assert provider.queries == [("Ganni dresses", 6)]
        assert len(feed["items"]) == 4
        assert [item["rank"] for item in feed["items"]] == [0, 1, 2, 3]

    def test_records_session_impression_and_outcomes(self, composer, supabase, authenticated_actor):
        feed = composer.compose(authenticated_actor, limit=3, device="ios")

        sessions = supabase.rows("sessions")
        assert len(sessions) == 1
        assert sessions[0]["device"] == "ios"
        assert feed["session_id"] == sessions[0]["session_id"]

        impressions = supabase.rows("impressions")
        assert impressions[0]["impression_id"] == feed["impression_id"]
        assert [i["score"] for i in impressions[0]["items"]] == [1.0, 0.95, 0.9]

        outcomes = supabase.rows("recommendation_performance")
        assert len(outcomes) == 3
        assert {o["action"] for o in outcomes} == {"impression"}

        catalog = supabase.rows("product_catalog")
        assert {row["product_id"] for row in catalog} == {item["product_id"] for item in feed["items"]}

    def test_existing_session_is_reused(self, composer, supabase, anonymous_actor):
        feed = composer.compose(anonymous_actor, limit=2, session_id="s-existing")

        assert feed["session_id"] == "s-existing"
        assert supabase.rows("sessions") == []

    def test_anonymous_feed_uses_recent_clicks(self, composer, provider, supabase, anonymous_actor):
        supabase.seed(
            "user_events",
            {"anonymous_id": "anon-1", "action": "click", "product_id": "prod-9", "created_at": isoformat()},
        )
        supabase.seed("product_catalog", {"product_id": "prod-9", "brand": "Acne", "category": "knitwear"})

        feed = composer.compose(anonymous_actor, limit=2)

        assert feed["queries"] == ["Acne knitwear"]

    def test_duplicate_links_across_queries_collapse(self, supabase, preference_repository, event_store, anonymous_actor):
        shared = CandidateProduct(title="Shared", price=10, link="https://same", source="catalog")
        provider = RecordingProvider({
            "designer fashion": [shared],
            "high-end clothing": [shared],
            "luxury brands": [],
        })
        composer = FeedComposer(
            ProviderAggregator([provider]), preference_repository, event_store, supabase,
        )

        feed = composer.compose(anonymous_actor, limit=5)

        assert len(feed["items"]) == 1

    def test_snapshot_failure_falls_back(self, composer, supabase, authenticated_actor):
        supabase.fail("user_preference_cache", "select")

        feed = composer.compose(authenticated_actor, limit=1)

        assert feed["queries"] == ["designer fashion", "high-end clothing", "luxury brands"]

    def test_catalog_write_failure_degrades(self, composer, supabase, authenticated_actor):
        supabase.fail("product_catalog", "upsert")

        feed = composer.compose(authenticated_actor, limit=2)

        assert len(feed["items"]) == 2
        assert len(supabase.rows("impressions")) == 1

    def test_impression_failure_raises(self, composer, supabase, authenticated_actor):
        from core.errors import UpstreamUnavailableError
        supabase.fail("impressions", "insert")

        with pytest.raises(UpstreamUnavailableError):
            composer.compose(authenticated_actor, limit=2)
