"""
Service singletons for route handlers.

Each factory is cached so one process shares one Supabase client, one
cache connection and one set of projections. Tests swap them out with
`app.dependency_overrides`.
"""

from functools import lru_cache

from caching.manager import CacheManager
from community.service import CommunityFeedService
from config.database import get_supabase_client
from config.settings import get_settings
from core.profiles import ProfileDirectory
from events.dispatcher import EventDispatcher
from events.projectors import OutcomeProjector, SavedItemsProjector, SessionActivityProjector
from events.store import EventStore
from feed.composer import FeedComposer
from matching.dedupe import ProductMatcher
from matching.providers import ProviderAggregator
from matching.similarity import SimilarProductSearch
from preferences.aggregator import PreferenceAggregator
from preferences.incremental import PreferenceIncrementalUpdater
from preferences.repository import PreferenceRepository


@lru_cache()
def get_cache() -> CacheManager:
    return CacheManager.from_settings(get_settings())


@lru_cache()
def get_profile_directory() -> ProfileDirectory:
    return ProfileDirectory(get_supabase_client())


@lru_cache()
def get_preference_repository() -> PreferenceRepository:
    return PreferenceRepository(get_supabase_client(), cache=get_cache())


@lru_cache()
def get_event_store() -> EventStore:
    """Event store with every projection subscribed."""
    supabase = get_supabase_client()
    dispatcher = EventDispatcher([
        SavedItemsProjector(supabase),
        OutcomeProjector(supabase),
        SessionActivityProjector(supabase),
        PreferenceIncrementalUpdater(get_preference_repository(), get_settings()),
    ])
    return EventStore(supabase, dispatcher)


@lru_cache()
def get_preference_aggregator() -> PreferenceAggregator:
    return PreferenceAggregator(
        get_event_store(),
        get_preference_repository(),
        get_supabase_client(),
        get_settings(),
    )


@lru_cache()
def get_provider_aggregator() -> ProviderAggregator:
    return ProviderAggregator.from_settings(get_supabase_client(), get_cache(), get_settings())


@lru_cache()
def get_similar_product_search() -> SimilarProductSearch:
    settings = get_settings()
    return SimilarProductSearch(
        get_provider_aggregator(),
        matcher=ProductMatcher(settings.dedup_title_threshold, settings.dedup_price_threshold),
    )


@lru_cache()
def get_feed_composer() -> FeedComposer:
    return FeedComposer(
        get_provider_aggregator(),
        get_preference_repository(),
        get_event_store(),
        get_supabase_client(),
    )


@lru_cache()
def get_community_service() -> CommunityFeedService:
    return CommunityFeedService(get_cache(), get_supabase_client())
