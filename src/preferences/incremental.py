"""
Synchronous chat keyword merge at ingestion time.

Runs as an event handler, independent of the hourly aggregation: each
chat message with extractable keywords appends them to the snapshot's
rolling chat_keywords list.
"""

from typing import Optional

from config.settings import Settings, get_settings
from core.logging import get_logger
from core.utils import isoformat
from events.models import InteractionAction, InteractionEvent
from preferences.keywords import extract_keywords, merge_keywords
from preferences.repository import PreferenceRepository

logger = get_logger(__name__)


class PreferenceIncrementalUpdater:
    def __init__(self, repository: PreferenceRepository, settings: Optional[Settings] = None):
        self._repository = repository
        self._settings = settings or get_settings()

    def handles(self, event: InteractionEvent) -> bool:
        return (
            event.action == InteractionAction.CHAT_MESSAGE.value
            and bool(event.profile_id)
            and bool(event.chat_text)
        )

    def handle(self, event: InteractionEvent) -> None:
        keywords = extract_keywords(
            event.chat_text, limit=self._settings.chat_keywords_per_message
        )
        if not keywords:
            return

        existing = self._repository.get_chat_keywords(event.profile_id)
        updated = merge_keywords(existing, keywords, cap=self._settings.chat_keywords_max)
        if updated == existing:
            return

        # Partial upsert: aggregated columns are left as stored
        self._repository.upsert({
            "profile_id": event.profile_id,
            "chat_keywords": updated,
            "updated_at": isoformat(event.created_at),
        })
        logger.debug("Merged chat keywords", added=keywords, total=len(updated))
