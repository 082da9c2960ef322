"""
Tests for the HTTP surface, with services wired to the in-memory client.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api import dependencies
from community.service import CommunityFeedService
from conftest import generate_test_jwt
from core.profiles import ProfileDirectory
from feed.composer import FeedComposer
from matching.dedupe import CandidateProduct
from matching.providers import ProviderAggregator
from matching.similarity import SimilarProductSearch
from preferences.aggregator import PreferenceAggregator


class CatalogStub:
    name = "catalog"

    def __init__(self, fail=False):
        self.fail = fail

    def search(self, query, limit):
        if self.fail:
            raise RuntimeError("provider down")
        return [
            CandidateProduct(title=f"{query} {i}", price=20.0 + i, link=f"https://s/{query}/{i}", source="catalog")
            for i in range(limit)
        ]


@pytest.fixture
def wired_app(app, supabase, cache, event_store, preference_repository, settings):
    providers = ProviderAggregator([CatalogStub()], cache=cache)
    overrides = {
        dependencies.get_cache: lambda: cache,
        dependencies.get_profile_directory: lambda: ProfileDirectory(supabase),
        dependencies.get_event_store: lambda: event_store,
        dependencies.get_preference_repository: lambda: preference_repository,
        dependencies.get_preference_aggregator: lambda: PreferenceAggregator(
            event_store, preference_repository, supabase, settings
        ),
        dependencies.get_provider_aggregator: lambda: providers,
        dependencies.get_similar_product_search: lambda: SimilarProductSearch(providers),
        dependencies.get_feed_composer: lambda: FeedComposer(
            providers, preference_repository, event_store, supabase
        ),
        dependencies.get_community_service: lambda: CommunityFeedService(cache, supabase),
    }
    app.dependency_overrides.update(overrides)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api(wired_app):
    with TestClient(wired_app) as test_client:
        yield test_client


class TestHealth:

    def test_health(self, api):
        assert api.get("/health").json()["status"] == "healthy"
        assert api.get("/live").json() == {"status": "alive"}

    def test_detailed_health_reports_cache(self, api, supabase):
        with patch("api.routes.health.get_supabase_client_optional", return_value=supabase):
            body = api.get("/health/detailed").json()

        assert body["checks"]["supabase"]["status"] == "connected"
        assert body["checks"]["cache"]["connected"] is True


class TestTrackEvent:

    def test_anonymous_click(self, api, supabase):
        response = api.post("/api/events/track", json={
            "action": "click", "product_id": "prod-1", "anonymous_id": "anon-1",
        })

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert supabase.rows("user_events")[0]["anonymous_id"] == "anon-1"

    def test_invalid_action_is_400(self, api, supabase):
        response = api.post("/api/events/track", json={"action": "purchase", "anonymous_id": "anon-1"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action: purchase"
        assert supabase.rows("user_events") == []

    def test_missing_identity_is_401(self, api, supabase):
        response = api.post("/api/events/track", json={"action": "click"})

        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"
        assert supabase.rows("user_events") == []

    def test_authenticated_save_creates_profile_and_saved_item(self, api, supabase, auth_headers):
        response = api.post(
            "/api/events/track",
            headers=auth_headers,
            json={"action": "save", "product_id": "prod-1", "payload": {"product_data": {"title": "Tee"}}},
        )

        assert response.status_code == 200
        profile = supabase.rows("profiles")[0]
        assert profile["auth_user_id"] == "test-user-001"
        assert supabase.rows("saved_items")[0]["profile_id"] == profile["id"]
        assert supabase.rows("user_events")[0]["anonymous_id"] is None

    def test_datastore_failure_is_503(self, api, supabase):
        supabase.fail("user_events", "insert")

        response = api.post("/api/events/track", json={"action": "click", "anonymous_id": "anon-1"})

        assert response.status_code == 503

    def test_bad_token_is_401(self, api):
        response = api.post(
            "/api/events/track",
            headers={"Authorization": "Bearer not-a-token"},
            json={"action": "click", "anonymous_id": "anon-1"},
        )

        assert response.status_code == 401


class TestPreferences:

    def test_requires_auth(self, api):
        assert api.get("/api/preferences").status_code == 401

    def test_anonymous_supabase_session_rejected(self, api):
        token = generate_test_jwt(is_anonymous=True)

        response = api.post("/api/preferences/update", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_update_then_read(self, api, supabase, auth_headers):
        supabase.seed("profiles", {"id": "profile-1", "auth_user_id": "test-user-001"})
        supabase.seed("product_catalog", {"product_id": "p1", "brand": "Ganni", "category": "dresses", "price": 150})
        api.post("/api/events/track", headers=auth_headers, json={"action": "save", "product_id": "p1"})

        updated = api.post("/api/preferences/update", headers=auth_headers)
        read = api.get("/api/preferences", headers=auth_headers)

        assert updated.status_code == 200
        assert updated.json()["preferences"]["favorite_brands"] == ["Ganni"]
        assert read.json()["preferences"]["price_min"] == 150

    def test_no_snapshot_yet(self, api, auth_headers):
        assert api.get("/api/preferences", headers=auth_headers).json() == {"preferences": None}


class TestFeed:

    def test_anonymous_feed(self, api, supabase):
        response = api.get("/api/feed", params={"anonymous_id": "anon-1", "limit": 4})

        body = response.json()
        assert response.status_code == 200
        assert len(body["items"]) == 4
        assert body["impression_id"]
        assert supabase.rows("impressions")[0]["impression_id"] == body["impression_id"]

    def test_feed_requires_identity(self, api):
        assert api.get("/api/feed").status_code == 401


class TestProductSearch:

    def test_search(self, api):
        body = api.get("/api/products/search", params={"q": "linen", "limit": 3}).json()

        assert body["count"] == 3
        assert body["products"][0]["source"] == "catalog"

    def test_provider_failure_still_200(self, wired_app):
        wired_app.dependency_overrides[dependencies.get_provider_aggregator] = (
            lambda: ProviderAggregator([CatalogStub(fail=True)])
        )
        with TestClient(wired_app) as client:
            response = client.get("/api/products/search", params={"q": "linen"})

        assert response.status_code == 200
        assert response.json()["products"] == []


class TestSimilarProducts:

    def ranked_titles(self, wired_app, headers=None):
        class Listings:
            name = "catalog"

            def search(self, query, limit):
                return [
                    CandidateProduct(title="Plain dress", price=50.0, source="catalog"),
                    CandidateProduct(title="Zebra print dress", price=60.0, source="catalog"),
                ]

        wired_app.dependency_overrides[dependencies.get_similar_product_search] = (
            lambda: SimilarProductSearch(ProviderAggregator([Listings()]))
        )
        with TestClient(wired_app) as client:
            response = client.post(
                "/api/products/similar",
                headers=headers or {},
                json={"features": {"category": "dress"}},
            )
        assert response.status_code == 200
        return [p["title"] for p in response.json()["products"]]

    def test_description_is_parsed_into_features(self, api):
        response = api.post("/api/products/similar", json={"description": "a navy silk dress", "limit": 5})

        body = response.json()
        assert response.status_code == 200
        assert body["features"]["category"] == "dress"
        assert body["features"]["dominant_colors"] == ["navy"]
        assert 0 < body["count"] <= 5
        assert body["queries"][0].startswith("dress navy")

    def test_requires_features_or_description(self, api):
        response = api.post("/api/products/similar", json={"description": "  "})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    def test_inverted_budget_is_400(self, api):
        response = api.post("/api/products/similar", json={
            "description": "dress", "budget_min": 200, "budget_max": 100,
        })

        assert response.status_code == 400

    def test_anonymous_ranking(self, wired_app):
        assert self.ranked_titles(wired_app) == ["Plain dress", "Zebra print dress"]

    def test_chat_keywords_boost_signed_in_user(self, wired_app, supabase, auth_headers):
        supabase.seed("profiles", {"id": "profile-1", "auth_user_id": "test-user-001"})
        supabase.seed("user_preference_cache", {"profile_id": "profile-1", "chat_keywords": ["zebra"]})

        assert self.ranked_titles(wired_app, auth_headers) == ["Zebra print dress", "Plain dress"]


class TestCommunity:

    def test_create_and_list(self, api, supabase, auth_headers):
        created = api.post(
            "/api/community/posts",
            headers=auth_headers,
            json={"title": "Weekend fit", "description": "Denim on denim"},
        )
        feed = api.get("/api/community/feed").json()

        assert created.status_code == 200
        assert [p["title"] for p in feed["posts"]] == ["Weekend fit"]

    def test_create_requires_auth(self, api):
        response = api.post("/api/community/posts", json={"title": "x"})

        assert response.status_code == 401
