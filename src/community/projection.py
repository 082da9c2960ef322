"""
Slim projection of community posts for caching, and batched rehydration.

Cached feed pages hold only what is needed to rebuild a post: short
title/description prefixes, counts, ids and a minimal author. On read,
author profiles and collection metadata are re-fetched with one query
per entity type for the whole page.
"""

from typing import Any, Dict, Iterable, List

from supabase import Client

from config.constants import SLIM_DESCRIPTION_CHARS, SLIM_TITLE_CHARS
from core.utils import unique_preserving_order

AUTHOR_FIELDS = "id, username, display_name, profile_picture_url, is_pro"
COLLECTION_FIELDS = "id, name, description, cover_image_url, item_ids"


def _prefix(text: Any, limit: int) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit]


def slim_post(post: Dict[str, Any]) -> Dict[str, Any]:
    author = post.get("author") or {}
    return {
        "id": post["id"],
        "profile_id": post.get("profile_id"),
        "post_type": post.get("post_type"),
        "title": _prefix(post.get("title"), SLIM_TITLE_CHARS),
        "description": _prefix(post.get("description"), SLIM_DESCRIPTION_CHARS),
        "image_url": post.get("image_url"),
        "collection_id": post.get("collection_id"),
        "likes_count": post.get("likes_count") or 0,
        "comments_count": post.get("comments_count") or 0,
        "created_at": post.get("created_at"),
        "author": {
            "id": author.get("id") or post.get("profile_id"),
            "username": author.get("username"),
        },
    }


def _fetch_by_ids(supabase: Client, table: str, fields: str, ids: List[str]) -> Dict[str, Dict[str, Any]]:
    if not ids:
        return {}
    result = supabase.table(table).select(fields).in_("id", ids).execute()
    return {row["id"]: row for row in result.data or []}


def hydrate_posts(supabase: Client, posts: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Attach author profiles and collection metadata to posts.

    Exactly one profiles query and at most one collections query,
    whatever the page size. Posts whose author is gone keep their
    minimal author.
    """
    posts = [dict(p) for p in posts]
    authors = _fetch_by_ids(
        supabase,
        "profiles",
        AUTHOR_FIELDS,
        unique_preserving_order(p.get("profile_id") for p in posts),
    )
    collections = _fetch_by_ids(
        supabase,
        "collections",
        COLLECTION_FIELDS,
        unique_preserving_order(
            p.get("collection_id") for p in posts if p.get("post_type") == "collection"
        ),
    )

    for post in posts:
        author = authors.get(post.get("profile_id"))
        if author is not None:
            post["author"] = author
        else:
            post.setdefault("author", {"id": post.get("profile_id"), "username": None})

        collection_id = post.get("collection_id")
        if post.get("post_type") == "collection" and collection_id in collections:
            post["collection"] = collections[collection_id]
    return posts
