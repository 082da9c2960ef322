"""
Preference snapshot persistence (`user_preference_cache` table).

Writes are upserts keyed by profile_id, so there is only ever one row
per profile. Reads go through the cache layer when one is provided.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from supabase import Client

from config.constants import CACHE_TTL, CacheKeys
from core.errors import UpstreamUnavailableError
from core.logging import get_logger
from preferences.models import PreferenceSnapshot

if TYPE_CHECKING:
    from caching.manager import CacheManager

logger = get_logger(__name__)

PREFERENCES_TABLE = "user_preference_cache"


class PreferenceRepository:
    def __init__(
        self,
        supabase: Optional[Client] = None,
        cache: Optional["CacheManager"] = None,
    ):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase
        self._cache = cache

    def get(self, profile_id: str) -> Optional[PreferenceSnapshot]:
        """
        Current snapshot or None.

        Raises:
            UpstreamUnavailableError: on datastore failure.
        """
        cache_key = CacheKeys.user_preferences(profile_id)
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached:
                return PreferenceSnapshot.from_row(cached)

        row = self._fetch_row(profile_id)
        if row is None:
            return None
        if self._cache is not None:
            self._cache.set(cache_key, row, CACHE_TTL.USER_PREFERENCES)
        return PreferenceSnapshot.from_row(row)

    def get_chat_keywords(self, profile_id: str) -> List[str]:
        row = self._fetch_row(profile_id)
        return list((row or {}).get("chat_keywords") or [])

    def upsert(self, values: Dict[str, Any]) -> PreferenceSnapshot:
        """
        Upsert a (possibly partial) row keyed by profile_id. Columns not in
        `values` keep their stored value.

        Raises:
            UpstreamUnavailableError: on datastore failure.
        """
        profile_id = values["profile_id"]
        try:
            result = (
                self._supabase.table(PREFERENCES_TABLE)
                .upsert(values, on_conflict="profile_id")
                .execute()
            )
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e

        self.invalidate(profile_id)
        rows = result.data or [values]
        return PreferenceSnapshot.from_row(rows[0])

    def invalidate(self, profile_id: str) -> None:
        if self._cache is not None:
            self._cache.delete(CacheKeys.user_preferences(profile_id))

    def _fetch_row(self, profile_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self._supabase.table(PREFERENCES_TABLE)
                .select("*")
                .eq("profile_id", profile_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e
        return result.data[0] if result.data else None
