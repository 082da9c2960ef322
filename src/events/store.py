"""
Append-only interaction event store.

Writes go to the `user_events` table and are then published to the
projection handlers. Reads serve the aggregator (scoring events per
profile in a trailing window), anonymous feed personalization (recent
clicks) and the batch trigger (recently active profiles).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import Client

from config.constants import SCORING_ACTIONS
from core.errors import UpstreamUnavailableError
from core.logging import get_logger
from core.utils import isoformat, unique_preserving_order
from events.dispatcher import EventDispatcher
from events.models import InteractionEvent

logger = get_logger(__name__)

EVENTS_TABLE = "user_events"


class EventStore:
    """
    Append-only log of InteractionEvents.

    Events are never updated or deleted.
    """

    def __init__(
        self,
        supabase: Optional[Client] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase
        self._dispatcher = dispatcher or EventDispatcher()

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    # =========================================================================
    # Writes
    # =========================================================================

    def record(self, event: InteractionEvent) -> InteractionEvent:
        """
        Append one event, then publish it to projections.

        Raises:
            UpstreamUnavailableError: the insert failed; nothing was published.
        """
        try:
            self._supabase.table(EVENTS_TABLE).insert(event.to_row()).execute()
        except Exception as e:
            logger.error(
                "Failed to record event",
                action=event.action,
                product_id=event.product_id,
                error=str(e),
            )
            raise UpstreamUnavailableError("datastore", str(e)) from e

        logger.info(
            "Recorded event",
            event_id=event.id,
            action=event.action,
            product_id=event.product_id,
            authenticated=event.profile_id is not None,
        )
        self._dispatcher.publish(event)
        return event

    # =========================================================================
    # Reads
    # =========================================================================

    def scoring_events(
        self,
        profile_id: str,
        since: datetime,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """
        Most recent click/save/like events for a profile since `since`,
        newest first, capped at `limit`.

        Raises:
            UpstreamUnavailableError: on datastore failure.
        """
        try:
            result = (
                self._supabase.table(EVENTS_TABLE)
                .select("action, product_id, created_at")
                .eq("profile_id", profile_id)
                .in_("action", sorted(SCORING_ACTIONS))
                .gte("created_at", isoformat(since))
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e
        return result.data or []

    def recent_clicked_products(self, anonymous_id: str, limit: int) -> List[str]:
        """Product ids an anonymous visitor clicked most recently (degrades to [])."""
        try:
            result = (
                self._supabase.table(EVENTS_TABLE)
                .select("product_id")
                .eq("anonymous_id", anonymous_id)
                .eq("action", "click")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.warning("Failed to read anonymous clicks", error=str(e))
            return []
        return unique_preserving_order(row.get("product_id") for row in result.data or [])

    def active_profiles(self, since: datetime) -> List[str]:
        """
        Profiles with at least one scoring event since `since`.

        Raises:
            UpstreamUnavailableError: on datastore failure.
        """
        try:
            result = (
                self._supabase.table(EVENTS_TABLE)
                .select("profile_id")
                .in_("action", sorted(SCORING_ACTIONS))
                .gte("created_at", isoformat(since))
                .execute()
            )
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e
        return unique_preserving_order(row.get("profile_id") for row in result.data or [])
