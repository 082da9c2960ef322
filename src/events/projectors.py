"""
Projections maintained from recorded events.

- SavedItemsProjector: save/unsave -> saved_items (idempotent)
- OutcomeProjector: impression-linked actions -> recommendation_performance
- SessionActivityProjector: touches sessions.last_activity_at

The chat keyword merge lives in preferences.incremental.
"""

from typing import Optional

from supabase import Client

from config.constants import OUTCOME_LABELS
from core.logging import get_logger
from core.utils import isoformat
from events.models import InteractionAction, InteractionEvent, SaveEvent

logger = get_logger(__name__)


def outcome_label(action: str) -> str:
    """Translate an action into a recommendation outcome label."""
    return OUTCOME_LABELS.get(action, action)


class _SupabaseProjector:
    def __init__(self, supabase: Optional[Client] = None):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase


class SavedItemsProjector(_SupabaseProjector):
    """
    Mirrors save/unsave events into the saved_items collection.

    Saving an already-saved product and unsaving a product that isn't
    saved are both no-ops. Anonymous actors have no collection.
    """

    table = "saved_items"

    def handles(self, event: InteractionEvent) -> bool:
        return (
            event.action in (InteractionAction.SAVE.value, InteractionAction.UNSAVE.value)
            and bool(event.product_id)
            and bool(event.profile_id)
        )

    def handle(self, event: InteractionEvent) -> None:
        if event.action == InteractionAction.SAVE.value:
            self._save(event)
        else:
            self._unsave(event)

    def _save(self, event: SaveEvent) -> None:
        # Unique (profile_id, product_id): a repeat save keeps the first row
        (
            self._supabase.table(self.table)
            .upsert(
                {
                    "profile_id": event.profile_id,
                    "product_id": event.product_id,
                    "product_data": event.product_snapshot,
                    "saved_at": isoformat(event.created_at),
                },
                on_conflict="profile_id,product_id",
                ignore_duplicates=True,
            )
            .execute()
        )
        logger.debug("Saved item upserted", product_id=event.product_id)

    def _unsave(self, event: InteractionEvent) -> None:
        (
            self._supabase.table(self.table)
            .delete()
            .eq("profile_id", event.profile_id)
            .eq("product_id", event.product_id)
            .execute()
        )


class OutcomeProjector(_SupabaseProjector):
    """
    Labels the impression-time recommendation row for (profile, product)
    with the outcome of a later action. Rows are created when the feed
    records an impression; without one there is nothing to attribute.
    """

    table = "recommendation_performance"

    def handles(self, event: InteractionEvent) -> bool:
        return bool(event.impression_id and event.product_id and event.profile_id)

    def handle(self, event: InteractionEvent) -> None:
        existing = (
            self._supabase.table(self.table)
            .select("id")
            .eq("profile_id", event.profile_id)
            .eq("product_id", event.product_id)
            .limit(1)
            .execute()
        )
        if not existing.data:
            return

        (
            self._supabase.table(self.table)
            .update({
                "action": outcome_label(event.action),
                "impression_id": event.impression_id,
                "created_at": isoformat(event.created_at),
            })
            .eq("id", existing.data[0]["id"])
            .execute()
        )


class SessionActivityProjector(_SupabaseProjector):
    table = "sessions"

    def handles(self, event: InteractionEvent) -> bool:
        return bool(event.session_id)

    def handle(self, event: InteractionEvent) -> None:
        (
            self._supabase.table(self.table)
            .update({"last_activity_at": isoformat(event.created_at)})
            .eq("session_id", event.session_id)
            .execute()
        )
