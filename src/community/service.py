"""
Community feed with slim-projection caching.
"""

from typing import Any, Dict, List, Optional

from supabase import Client

from caching.manager import CacheManager
from config.constants import CACHE_TTL, CacheKeys
from core.errors import InvalidInputError, UpstreamUnavailableError
from core.logging import get_logger
from core.utils import isoformat
from community.projection import hydrate_posts, slim_post

logger = get_logger(__name__)

POSTS_TABLE = "community_posts"
FEED_PATTERN = "community:feed:*"


class CommunityFeedService:
    def __init__(self, cache: CacheManager, supabase: Optional[Client] = None):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase
        self._cache = cache

    def get_feed(self, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        """Public posts, newest first. Degrades to [] when the datastore fails."""
        cache_key = CacheKeys.community_feed(limit, offset)

        cached = self._cache.get(cache_key)
        if cached is not None:
            try:
                return hydrate_posts(self._supabase, cached)
            except Exception as e:
                logger.warning("Hydrating cached feed failed, serving slim posts", error=str(e))
                return cached

        try:
            result = (
                self._supabase.table(POSTS_TABLE)
                .select("*")
                .eq("is_public", True)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            posts = hydrate_posts(self._supabase, result.data or [])
        except Exception as e:
            logger.warning("Failed to load community feed", error=str(e))
            return []

        self._cache.set(cache_key, [slim_post(p) for p in posts], CACHE_TTL.COMMUNITY_POSTS)
        return posts

    def create_post(self, profile_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a post and drop every cached feed page.

        Raises:
            InvalidInputError: missing title or collection id for collection posts.
            UpstreamUnavailableError: insert failed.
        """
        title = (data.get("title") or "").strip()
        if not title:
            raise InvalidInputError("Post title is required")
        post_type = data.get("post_type") or "post"
        if post_type == "collection" and not data.get("collection_id"):
            raise InvalidInputError("collection_id is required for collection posts")

        row = {
            "profile_id": profile_id,
            "post_type": post_type,
            "title": title,
            "description": data.get("description"),
            "image_url": data.get("image_url"),
            "collection_id": data.get("collection_id"),
            "is_public": bool(data.get("is_public", True)),
            "likes_count": 0,
            "comments_count": 0,
            "created_at": isoformat(),
        }
        try:
            result = self._supabase.table(POSTS_TABLE).insert(row).execute()
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e

        self._cache.invalidate(FEED_PATTERN)
        logger.info("Created community post", post_type=post_type)
        return result.data[0] if result.data else row
