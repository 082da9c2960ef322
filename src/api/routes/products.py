"""
Multi-provider product search and similar-item search.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.dependencies import (
    get_preference_repository,
    get_profile_directory,
    get_provider_aggregator,
    get_similar_product_search,
)
from core.auth import SupabaseUser, get_current_user
from core.errors import InvalidInputError, UpstreamUnavailableError
from core.logging import get_logger
from core.profiles import ProfileDirectory
from matching.providers import ProviderAggregator
from matching.similarity import SimilarProductSearch, VisualFeatures, features_from_text
from preferences.repository import PreferenceRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])


class SimilarProductsRequest(BaseModel):
    """Reference item, either as extracted features or a plain description."""
    features: Optional[VisualFeatures] = None
    description: Optional[str] = None
    budget_min: Optional[float] = Field(default=None, ge=0)
    budget_max: Optional[float] = Field(default=None, ge=0)
    user_style: List[str] = Field(default_factory=list)
    limit: int = Field(default=12, ge=1, le=50)


@router.get("/search", summary="Search products across providers")
def search_products(
    q: str = Query(default="", description="Search query"),
    limit: int = Query(default=20, ge=1, le=100),
    aggregator: ProviderAggregator = Depends(get_provider_aggregator),
) -> Dict[str, Any]:
    """Deduplicated results; provider failures shrink the list, never error."""
    products = aggregator.search(q, limit)
    return {
        "query": q,
        "count": len(products),
        "products": [p.model_dump() for p in products],
    }


@router.post("/similar", summary="Products resembling a reference item")
def similar_products(
    request: SimilarProductsRequest,
    user: Optional[SupabaseUser] = Depends(get_current_user),
    profiles: ProfileDirectory = Depends(get_profile_directory),
    preferences: PreferenceRepository = Depends(get_preference_repository),
    search: SimilarProductSearch = Depends(get_similar_product_search),
) -> Dict[str, Any]:
    """
    Ranked by feature overlap with the reference item. Signed-in users
    also get a small boost for products matching their chat keywords.
    """
    if request.features is not None:
        features = request.features
    elif request.description and request.description.strip():
        features = features_from_text(request.description)
    else:
        raise InvalidInputError("Provide features or a description")

    budget = None
    if request.budget_min is not None or request.budget_max is not None:
        low = request.budget_min or 0.0
        high = request.budget_max if request.budget_max is not None else float("inf")
        if low > high:
            raise InvalidInputError("budget_min must not exceed budget_max")
        budget = (low, high)

    user_style = list(request.user_style)
    if user is not None and not user.is_anonymous:
        try:
            profile_id = profiles.get_or_create_profile(user.id, email=user.email)
            snapshot = preferences.get(profile_id)
        except UpstreamUnavailableError as e:
            logger.warning("Preferences unavailable for similar search", error=str(e))
            snapshot = None
        if snapshot is not None:
            user_style.extend(snapshot.chat_keywords)

    result = search.search(features, budget=budget, user_style=user_style, limit=request.limit)
    return {
        "queries": result["queries"],
        "confidence": result["confidence"],
        "features": result["features"].model_dump(),
        "count": len(result["products"]),
        "products": [p.model_dump() for p in result["products"]],
    }
