"""
Preference snapshot routes (authenticated only).
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_preference_aggregator,
    get_preference_repository,
    get_profile_directory,
)
from core.auth import SupabaseUser, require_auth, resolve_actor
from core.profiles import ProfileDirectory
from preferences.aggregator import PreferenceAggregator
from preferences.repository import PreferenceRepository


router = APIRouter(prefix="/api/preferences", tags=["Preferences"])


@router.post("/update", summary="Recompute preferences for the caller")
def update_preferences(
    user: SupabaseUser = Depends(require_auth),
    profiles: ProfileDirectory = Depends(get_profile_directory),
    aggregator: PreferenceAggregator = Depends(get_preference_aggregator),
) -> Dict[str, Any]:
    actor = resolve_actor(user, None, profiles)
    snapshot = aggregator.aggregate(actor.profile_id)
    return {"success": True, "preferences": snapshot.model_dump(mode="json")}


@router.get("", summary="Current preference snapshot")
def get_preferences(
    user: SupabaseUser = Depends(require_auth),
    profiles: ProfileDirectory = Depends(get_profile_directory),
    repository: PreferenceRepository = Depends(get_preference_repository),
) -> Dict[str, Any]:
    actor = resolve_actor(user, None, profiles)
    snapshot = repository.get(actor.profile_id)
    return {"preferences": snapshot.model_dump(mode="json") if snapshot else None}
