"""
Community feed routes.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.dependencies import get_community_service, get_profile_directory
from community.service import CommunityFeedService
from core.auth import SupabaseUser, require_auth, resolve_actor
from core.profiles import ProfileDirectory


router = APIRouter(prefix="/api/community", tags=["Community"])


class CreatePostRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    post_type: str = Field(default="post", pattern="^(post|collection)$")
    image_url: Optional[str] = None
    collection_id: Optional[str] = None
    is_public: bool = True


@router.get("/feed", summary="Public community posts, newest first")
def community_feed(
    limit: int = Query(default=20, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    service: CommunityFeedService = Depends(get_community_service),
) -> Dict[str, Any]:
    posts = service.get_feed(limit=limit, offset=offset)
    return {"posts": posts, "limit": limit, "offset": offset}


@router.post("/posts", summary="Create a community post")
def create_post(
    request: CreatePostRequest,
    user: SupabaseUser = Depends(require_auth),
    profiles: ProfileDirectory = Depends(get_profile_directory),
    service: CommunityFeedService = Depends(get_community_service),
) -> Dict[str, Any]:
    actor = resolve_actor(user, None, profiles)
    post = service.create_post(actor.profile_id, request.model_dump())
    return {"success": True, "post": post}
