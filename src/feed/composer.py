"""
Personalized discovery feed.

Pipeline per request:
1. Ensure a session row exists
2. Build up to 3 search queries from the preference snapshot (or, for
   anonymous visitors, from the brands/categories of recent clicks)
3. Fan out to the product providers, dedupe by link, cut to limit
4. Store the products in the catalog (batched upsert)
5. Record an impression and one 'impression' outcome row per item

Only the session and impression writes are required; personalization
reads and catalog/outcome writes degrade with a warning.
"""

import math
from typing import Any, Dict, List, Optional

from supabase import Client

from config.constants import (
    ANONYMOUS_RECENT_CLICKS,
    FALLBACK_FEED_QUERIES,
    IMPRESSION_SCORE_STEP,
    MAX_FEED_QUERIES,
)
from core.auth import Actor
from core.errors import UpstreamUnavailableError
from core.logging import get_logger
from core.utils import isoformat, stable_product_id, unique_preserving_order
from events.store import EventStore
from matching.dedupe import CandidateProduct
from matching.providers import ProviderAggregator
from preferences.models import PreferenceSnapshot
from preferences.repository import PreferenceRepository

logger = get_logger(__name__)


def build_queries(
    snapshot: Optional[PreferenceSnapshot],
    click_brands: Optional[List[str]] = None,
    click_categories: Optional[List[str]] = None,
) -> List[str]:
    """
    Search phrases biased by stored taste.

    Snapshot: "<brand1> <category1>", "<keyword1> fashion", "<brand2> style".
    Anonymous clicks: "<brand1> <category1>", "<brand2> fashion".
    Falls back to generic designer queries.
    """
    queries: List[str] = []

    if snapshot is not None:
        brands = snapshot.favorite_brands[:2]
        categories = snapshot.favorite_categories[:2]
        keywords = snapshot.chat_keywords[:1]
        if brands and categories:
            queries.append(f"{brands[0]} {categories[0]}")
        if keywords:
            queries.append(f"{keywords[0]} fashion")
        if len(brands) > 1:
            queries.append(f"{brands[1]} style")
    elif click_brands:
        brands = click_brands[:2]
        categories = (click_categories or [])[:2]
        if brands and categories:
            queries.append(f"{brands[0]} {categories[0]}")
        if len(brands) > 1:
            queries.append(f"{brands[1]} fashion")

    if not queries:
        queries.extend(FALLBACK_FEED_QUERIES)
    return queries[:MAX_FEED_QUERIES]


class FeedComposer:
    def __init__(
        self,
        aggregator: ProviderAggregator,
        preferences: PreferenceRepository,
        event_store: EventStore,
        supabase: Optional[Client] = None,
    ):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase
        self._aggregator = aggregator
        self._preferences = preferences
        self._events = event_store

    def compose(
        self,
        actor: Actor,
        surface: str = "discovery",
        limit: int = 20,
        session_id: Optional[str] = None,
        device: str = "unknown",
    ) -> Dict[str, Any]:
        """
        Raises:
            UpstreamUnavailableError: session or impression could not be written.
        """
        session_id = session_id or self._create_session(actor, device)
        queries = self._queries_for(actor)

        per_query = math.ceil(limit * 1.5)
        candidates: List[CandidateProduct] = []
        for query in queries:
            candidates.extend(self._aggregator.search(query, per_query))

        products = self._dedupe_by_link(candidates)[:limit]
        items = [
            {
                **product.model_dump(),
                "product_id": stable_product_id(product.model_dump()),
                "rank": rank,
                "rec_type": "content",
            }
            for rank, product in enumerate(products)
        ]

        self._store_catalog(items)
        impression_id = self._record_impression(actor, session_id, surface, queries, items)
        self._record_outcomes(actor, items)

        logger.info(
            "Composed feed",
            surface=surface,
            queries=queries,
            candidates=len(candidates),
            items=len(items),
        )
        return {
            "impression_id": impression_id,
            "session_id": session_id,
            "queries": queries,
            "items": items,
        }

    # =========================================================================
    # Personalization
    # =========================================================================

    def _queries_for(self, actor: Actor) -> List[str]:
        if actor.is_authenticated:
            try:
                snapshot = self._preferences.get(actor.profile_id)
            except UpstreamUnavailableError as e:
                logger.warning("Preference snapshot unavailable, using fallback queries", error=str(e))
                snapshot = None
            return build_queries(snapshot)

        product_ids = self._events.recent_clicked_products(
            actor.anonymous_id, ANONYMOUS_RECENT_CLICKS
        )[:5]
        if not product_ids:
            return build_queries(None)
        try:
            result = (
                self._supabase.table("product_catalog")
                .select("brand, category")
                .in_("product_id", product_ids)
                .execute()
            )
            rows = result.data or []
        except Exception as e:
            logger.warning("Catalog lookup for anonymous clicks failed", error=str(e))
            rows = []
        return build_queries(
            None,
            click_brands=unique_preserving_order(r.get("brand") for r in rows),
            click_categories=unique_preserving_order(r.get("category") for r in rows),
        )

    @staticmethod
    def _dedupe_by_link(candidates: List[CandidateProduct]) -> List[CandidateProduct]:
        seen = set()
        out = []
        for product in candidates:
            if product.link:
                if product.link in seen:
                    continue
                seen.add(product.link)
            out.append(product)
        return out

    # =========================================================================
    # Writes
    # =========================================================================

    def _create_session(self, actor: Actor, device: str) -> str:
        now = isoformat()
        try:
            result = self._supabase.table("sessions").insert({
                "profile_id": actor.profile_id,
                "anonymous_id": actor.anonymous_id,
                "started_at": now,
                "last_activity_at": now,
                "device": device,
            }).execute()
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e
        return result.data[0]["session_id"]

    def _store_catalog(self, items: List[Dict[str, Any]]) -> None:
        if not items:
            return
        rows = [
            {
                "product_id": item["product_id"],
                "source": item["source"],
                "source_key": item["link"],
                "title": item["title"],
                "brand": item["brand"],
                "category": item["category"],
                "price": item["price"],
                "currency": "USD",
                "image_url": item["image_url"],
                "url": item["link"],
            }
            for item in items
        ]
        try:
            self._supabase.table("product_catalog").upsert(rows, on_conflict="product_id").execute()
        except Exception as e:
            logger.warning("Failed to store feed products in catalog", error=str(e))

    def _record_impression(
        self,
        actor: Actor,
        session_id: str,
        surface: str,
        queries: List[str],
        items: List[Dict[str, Any]],
    ) -> str:
        impression_items = [
            {
                "product_id": item["product_id"],
                "rank": item["rank"],
                "rec_type": item["rec_type"],
                "score": round(1 - item["rank"] * IMPRESSION_SCORE_STEP, 4),
            }
            for item in items
        ]
        try:
            result = self._supabase.table("impressions").insert({
                "profile_id": actor.profile_id,
                "session_id": session_id,
                "surface": surface,
                "items": impression_items,
                "context": {"queries": queries, "anonymous_id": actor.anonymous_id},
                "created_at": isoformat(),
            }).execute()
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e
        return result.data[0]["impression_id"]

    def _record_outcomes(self, actor: Actor, items: List[Dict[str, Any]]) -> None:
        if not items:
            return
        now = isoformat()
        rows = [
            {
                "profile_id": actor.profile_id,
                "product_id": item["product_id"],
                "rec_type": item["rec_type"],
                "action": "impression",
                "position": item["rank"],
                "created_at": now,
            }
            for item in items
        ]
        try:
            self._supabase.table("recommendation_performance").insert(rows).execute()
        except Exception as e:
            logger.warning("Failed to record impression outcomes", error=str(e))
