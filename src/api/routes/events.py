"""
Interaction tracking routes.

Accepts both authenticated users (Supabase bearer token) and anonymous
visitors (client-generated anonymous_id).
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_event_store, get_profile_directory
from core.auth import SupabaseUser, get_current_user, resolve_actor
from core.logging import bind_context
from core.profiles import ProfileDirectory
from events.models import build_event
from events.store import EventStore


router = APIRouter(prefix="/api/events", tags=["Events"])


class TrackEventRequest(BaseModel):
    """A single user interaction."""
    action: Any = Field(..., description="view, click, save, unsave, like, share, chat_open or chat_message")
    product_id: Optional[str] = None
    impression_id: Optional[str] = None
    session_id: Optional[str] = None
    dwell_time: Optional[float] = Field(default=None, description="Seconds on item (views)")
    payload: Optional[Dict[str, Any]] = None
    anonymous_id: Optional[str] = None


@router.post("/track", summary="Record an interaction event")
def track_event(
    request: TrackEventRequest,
    user: Optional[SupabaseUser] = Depends(get_current_user),
    profiles: ProfileDirectory = Depends(get_profile_directory),
    store: EventStore = Depends(get_event_store),
) -> Dict[str, Any]:
    """
    Append an event to the log. Projections (saved items, outcomes,
    session activity, chat keywords) update after the write.
    """
    actor = resolve_actor(user, request.anonymous_id, profiles)
    bind_context(actor=actor.key)

    event = build_event(
        request.action,
        actor,
        product_id=request.product_id,
        impression_id=request.impression_id,
        session_id=request.session_id,
        dwell_time_seconds=request.dwell_time,
        payload=request.payload,
    )
    store.record(event)
    return {"success": True, "event_id": event.id}
