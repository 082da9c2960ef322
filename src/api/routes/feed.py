"""
Personalized discovery feed route.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_feed_composer, get_profile_directory
from core.auth import SupabaseUser, get_current_user, resolve_actor
from core.profiles import ProfileDirectory
from feed.composer import FeedComposer


router = APIRouter(prefix="/api", tags=["Feed"])


@router.get("/feed", summary="Personalized product feed")
def get_feed(
    anonymous_id: Optional[str] = Query(default=None),
    session_id: Optional[str] = Query(default=None),
    surface: str = Query(default="discovery"),
    device: str = Query(default="unknown"),
    limit: int = Query(default=20, ge=1, le=60),
    user: Optional[SupabaseUser] = Depends(get_current_user),
    profiles: ProfileDirectory = Depends(get_profile_directory),
    composer: FeedComposer = Depends(get_feed_composer),
) -> Dict[str, Any]:
    """
    Products biased by the caller's stored preferences (or recent
    anonymous clicks), with an impression id to attach to later events.
    """
    actor = resolve_actor(user, anonymous_id, profiles)
    return composer.compose(
        actor,
        surface=surface,
        limit=limit,
        session_id=session_id,
        device=device,
    )
