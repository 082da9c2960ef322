"""
Preference Aggregator.

Turns a profile's recent click/save/like events into a preference
snapshot:

    contribution = exp(-days_since_event / decay_days) * action_weight

summed per brand and per category. The top N of each become the
favorites; the 25th/75th percentile (floor index) of resolved prices
becomes the price band. Events outside the trailing window are dropped,
not decayed.

The snapshot upsert is the only write and happens last, so a failed run
never leaves a partial snapshot. Concurrent runs for the same profile
are last-writer-wins.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from supabase import Client

from config.constants import ACTION_WEIGHTS
from config.settings import Settings, get_settings
from core.errors import UpstreamUnavailableError
from core.logging import get_logger
from core.utils import isoformat, parse_timestamp, safe_float, unique_preserving_order, utcnow
from events.store import EventStore
from preferences.models import PreferenceScores, PreferenceSnapshot
from preferences.repository import PreferenceRepository

logger = get_logger(__name__)

CATALOG_TABLE = "product_catalog"
SECONDS_PER_DAY = 24 * 60 * 60


# =============================================================================
# Scoring math
# =============================================================================

def recency_weight(days_since: float, decay_days: float = 7.0) -> float:
    """exp(-days/decay). Future timestamps (clock skew) count as now."""
    return math.exp(-max(0.0, days_since) / decay_days)


def action_weight(action: str) -> float:
    return ACTION_WEIGHTS.get(action, 0.0)


def rank_top(scores: Mapping[str, float], n: int) -> List[str]:
    """
    Keys by descending score, top n. Equal scores keep insertion order
    (the first key seen while scanning newest-first events wins).
    """
    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
    return [key for key, _ in ranked[:n]]


def price_band(prices: Iterable[float]) -> Tuple[Optional[float], Optional[float]]:
    """
    (price_min, price_max) from the floor(n*0.25) and floor(n*0.75)
    indexes of the ascending prices, clamped to the list bounds.

    >>> price_band([40, 10, 30, 20])
    (20, 40)
    """
    ordered = sorted(prices)
    if not ordered:
        return None, None
    n = len(ordered)
    p25 = math.floor(n * 0.25)
    p75 = math.floor(n * 0.75)
    return ordered[max(0, p25)], ordered[min(n - 1, p75)]


def score_events(
    events: Iterable[Mapping[str, Any]],
    products: Mapping[str, Mapping[str, Any]],
    now: datetime,
    window_days: int = 30,
    decay_days: float = 7.0,
) -> PreferenceScores:
    """
    Accumulate decayed, action-weighted scores per brand and category.

    Events whose product isn't in `products`, whose timestamp can't be
    parsed, or that fall outside the window are skipped.
    """
    scores = PreferenceScores()
    window_start = now - timedelta(days=window_days)

    for event in events:
        product = products.get(event.get("product_id"))
        created_at = parse_timestamp(event.get("created_at"))
        if product is None or created_at is None or created_at < window_start:
            scores.events_skipped += 1
            continue

        days_since = (now - created_at).total_seconds() / SECONDS_PER_DAY
        contribution = recency_weight(days_since, decay_days) * action_weight(event.get("action"))

        brand = product.get("brand")
        if brand:
            scores.brand_scores[brand] = scores.brand_scores.get(brand, 0.0) + contribution

        category = product.get("category")
        if category:
            scores.category_scores[category] = scores.category_scores.get(category, 0.0) + contribution

        price = safe_float(product.get("price"))
        if price:
            scores.prices.append(price)

        scores.events_scored += 1

    return scores


# =============================================================================
# Aggregator
# =============================================================================

class PreferenceAggregator:
    """
    Builds and stores the preference snapshot for one profile.

    Invoked on demand from the API or per active profile by the hourly
    batch job (scripts/aggregate_preferences.py).
    """

    def __init__(
        self,
        event_store: EventStore,
        repository: PreferenceRepository,
        supabase: Optional[Client] = None,
        settings: Optional[Settings] = None,
    ):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase
        self._events = event_store
        self._repository = repository
        self._settings = settings or get_settings()

    def aggregate(self, profile_id: str, now: Optional[datetime] = None) -> PreferenceSnapshot:
        """
        Recompute and upsert the snapshot for a profile.

        Raises:
            UpstreamUnavailableError: any datastore read/write failed; no
                snapshot was written.
        """
        now = now or utcnow()
        settings = self._settings
        since = now - timedelta(days=settings.aggregation_window_days)

        events = self._events.scoring_events(
            profile_id, since=since, limit=settings.aggregation_max_events
        )
        products = self._load_products(
            unique_preserving_order(e.get("product_id") for e in events)
        )

        scores = score_events(
            events,
            products,
            now=now,
            window_days=settings.aggregation_window_days,
            decay_days=settings.aggregation_decay_days,
        )
        price_min, price_max = price_band(scores.prices)

        snapshot = self._repository.upsert({
            "profile_id": profile_id,
            "favorite_brands": rank_top(scores.brand_scores, settings.aggregation_top_n),
            "favorite_categories": rank_top(scores.category_scores, settings.aggregation_top_n),
            "price_min": price_min,
            "price_max": price_max,
            "updated_at": isoformat(now),
        })

        logger.info(
            "Aggregated preferences",
            profile_id=profile_id,
            events=len(events),
            events_scored=scores.events_scored,
            events_skipped=scores.events_skipped,
            brands=len(snapshot.favorite_brands),
            categories=len(snapshot.favorite_categories),
            price_min=price_min,
            price_max=price_max,
        )
        return snapshot

    def _load_products(self, product_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """One batched catalog lookup for every product referenced by the events."""
        if not product_ids:
            return {}
        try:
            result = (
                self._supabase.table(CATALOG_TABLE)
                .select("product_id, brand, category, price")
                .in_("product_id", product_ids)
                .execute()
            )
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e
        return {row["product_id"]: row for row in result.data or []}
