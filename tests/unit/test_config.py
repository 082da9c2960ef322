"""
Tests for the configuration module.
"""

import pytest
from pydantic import ValidationError


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_env(self):
        """Settings load from environment variables with defaults applied."""
        from config.settings import get_settings

        settings = get_settings()

        assert settings.supabase_url is not None
        assert settings.supabase_service_key is not None
        assert settings.host == "0.0.0.0"
        assert settings.port == 8080

    def test_is_development_property(self):
        from config.settings import Settings

        for env in ["development", "dev", "local"]:
            settings = Settings(
                supabase_url="https://test.supabase.co",
                supabase_service_key="test-key",
                environment=env,
            )
            assert settings.is_development is True

        settings = Settings(
            supabase_url="https://test.supabase.co",
            supabase_service_key="test-key",
            environment="production",
        )
        assert settings.is_development is False
        assert settings.is_production is True

    def test_cors_origins_parsing(self):
        """CORS origins can be given as a comma-separated string."""
        from config.settings import Settings

        settings = Settings(
            supabase_url="https://test.supabase.co",
            supabase_service_key="test-key",
            cors_origins="http://localhost:3000,http://localhost:5173",
        )

        assert settings.cors_origins == ["http://localhost:3000", "http://localhost:5173"]

    def test_aggregation_defaults(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing()

        assert settings.aggregation_window_days == 30
        assert settings.aggregation_max_events == 500
        assert settings.aggregation_decay_days == 7.0
        assert settings.aggregation_top_n == 5
        assert settings.chat_keywords_per_message == 5
        assert settings.chat_keywords_max == 10

    def test_cache_defaults(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing()

        assert settings.redis_enabled is False
        assert settings.cache_key_prefix == "flair:"
        assert settings.cache_max_bytes == 1024 * 1024
        assert settings.cache_feed_max_bytes == 256 * 1024
        assert settings.cache_feed_namespace == "community:feed:"

    def test_dedup_thresholds_must_be_unit_interval(self):
        from config.settings import get_settings_for_testing

        with pytest.raises(ValidationError):
            get_settings_for_testing(dedup_title_threshold=1.5)

        settings = get_settings_for_testing(dedup_price_threshold=0.2)
        assert settings.dedup_price_threshold == 0.2

    def test_settings_for_testing(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing(debug=False)

        assert settings.environment == "testing"
        assert settings.debug is False
        assert "test" in settings.supabase_url


class TestConstants:
    """Tests for constants module."""

    def test_action_weights(self):
        from config.constants import ACTION_WEIGHTS, SCORING_ACTIONS

        assert ACTION_WEIGHTS == {"save": 3.0, "like": 2.0, "click": 1.0}
        assert SCORING_ACTIONS == frozenset({"click", "save", "like"})

    def test_outcome_labels(self):
        from config.constants import OUTCOME_LABELS

        assert OUTCOME_LABELS["click"] == "clicked"
        assert OUTCOME_LABELS["save"] == "saved"

    def test_cache_keys(self):
        from config.constants import CacheKeys

        assert CacheKeys.user_preferences("p1") == "user:p1:preferences"
        assert CacheKeys.community_feed(20, 40) == "community:feed:20:40"
        assert CacheKeys.search_results("  Nike Shoes ", 10) == "search:nike shoes:10"

    def test_cache_ttls(self):
        from config.constants import CACHE_TTL

        assert CACHE_TTL.USER_PROFILE == 86400
        assert CACHE_TTL.COMMUNITY_POSTS == 300
        assert CACHE_TTL.SEARCH_RESULTS == 900
