"""
Visual/text similarity ranking for "find me something like this" search.

A vision or text model describes the reference item as VisualFeatures
(colours, category, style, materials, patterns, occasion). Those
features become a few search phrases; the candidates they return are
merged, near-duplicates collapsed, and the survivors ranked by how many
features their text mentions:

    category            +30
    i-th colour         +(10 - 2i)
    i-th style          +(8 - i)
    each material       +5
    each user style     +3
    occasion            +4

Matching is case-insensitive substring search over title, category and
description, so "dress" also scores "dresses".
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from config.constants import (
    CATEGORY_SEARCH_TERMS,
    CONFIDENCE_WEIGHTS,
    DEFAULT_CATEGORY_SEARCH_TERMS,
    KNOWN_CATEGORIES,
    KNOWN_COLORS,
    KNOWN_MATERIALS,
    KNOWN_STYLES,
    SIMILAR_RESULTS_LIMIT,
    SIMILAR_RESULTS_PER_QUERY,
    SIMILARITY_CATEGORY_WEIGHT,
    SIMILARITY_COLOR_STEP,
    SIMILARITY_COLOR_WEIGHT,
    SIMILARITY_MATERIAL_WEIGHT,
    SIMILARITY_OCCASION_WEIGHT,
    SIMILARITY_STYLE_STEP,
    SIMILARITY_STYLE_WEIGHT,
    SIMILARITY_USER_STYLE_WEIGHT,
)
from core.logging import get_logger
from core.utils import unique_preserving_order
from matching.dedupe import CandidateProduct, ProductMatcher
from matching.providers import ProviderAggregator

logger = get_logger(__name__)


class VisualFeatures(BaseModel):
    """Attributes of a reference item, as described by a vision/text model."""
    dominant_colors: List[str] = Field(default_factory=list)
    category: str = ""
    style: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    shape: str = ""
    texture: str = ""
    occasion: str = ""


def features_from_text(text: str) -> VisualFeatures:
    """
    Best-effort features from a free-text description, for when the model
    reply isn't structured. Unrecognised categories become "clothing".
    """
    lowered = (text or "").lower()
    category = next((c for c in KNOWN_CATEGORIES if c in lowered), "clothing")
    return VisualFeatures(
        dominant_colors=[c for c in KNOWN_COLORS if c in lowered],
        category=category,
        style=[s for s in KNOWN_STYLES if s in lowered],
        materials=[m for m in KNOWN_MATERIALS if m in lowered],
        patterns=["solid"],
        shape="fitted",
        texture="smooth",
        occasion="casual",
    )


def category_search_terms(category: str) -> str:
    return CATEGORY_SEARCH_TERMS.get((category or "").lower(), DEFAULT_CATEGORY_SEARCH_TERMS)


def feature_queries(features: VisualFeatures) -> List[str]:
    """
    Three search phrases per reference item: all salient features,
    colour + style, and category-specific vocabulary.
    """
    colors = features.dominant_colors[:2]
    styles = features.style[:2]

    by_features = [features.category, *colors, *styles, *features.materials[:1], features.occasion]
    by_color_style = [*colors, *styles, features.category]
    by_category = [
        features.category,
        category_search_terms(features.category),
        features.dominant_colors[0] if features.dominant_colors else "",
        features.style[0] if features.style else "",
    ]

    queries = [" ".join(t.strip() for t in terms if t and t.strip()) for terms in (
        by_features, by_color_style, by_category,
    )]
    return unique_preserving_order(queries)


def _product_text(product: CandidateProduct) -> str:
    description = product.attributes.get("description") or ""
    return f"{product.title} {product.category or ''} {description}".lower()


def _mentions(text: str, term: str) -> bool:
    term = (term or "").strip().lower()
    return bool(term) and term in text


def similarity_score(
    product: CandidateProduct,
    features: VisualFeatures,
    user_style: Optional[Iterable[str]] = None,
) -> float:
    """Feature-overlap score; higher means closer to the reference item."""
    text = _product_text(product)
    score = 0.0

    if _mentions(text, features.category):
        score += SIMILARITY_CATEGORY_WEIGHT

    for index, color in enumerate(features.dominant_colors):
        if _mentions(text, color):
            score += max(0.0, SIMILARITY_COLOR_WEIGHT - index * SIMILARITY_COLOR_STEP)

    for index, style in enumerate(features.style):
        if _mentions(text, style):
            score += max(0.0, SIMILARITY_STYLE_WEIGHT - index * SIMILARITY_STYLE_STEP)

    for material in features.materials:
        if _mentions(text, material):
            score += SIMILARITY_MATERIAL_WEIGHT

    for style in user_style or ():
        if _mentions(text, style):
            score += SIMILARITY_USER_STYLE_WEIGHT

    if _mentions(text, features.occasion):
        score += SIMILARITY_OCCASION_WEIGHT

    return score


def rank_by_similarity(
    candidates: Iterable[CandidateProduct],
    features: VisualFeatures,
    user_style: Optional[Iterable[str]] = None,
) -> List[CandidateProduct]:
    """Highest score first; equal scores keep their incoming order."""
    user_style = list(user_style or [])
    scored = [(similarity_score(c, features, user_style), c) for c in candidates]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [product for _, product in scored]


def search_confidence(features: VisualFeatures, result_count: int) -> float:
    """
    0-100 confidence from how completely the item was described,
    discounted when few products came back.
    """
    if result_count == 0:
        return 0.0

    confidence = sum(
        weight for field, weight in CONFIDENCE_WEIGHTS.items() if getattr(features, field)
    )
    if result_count < 3:
        confidence *= 0.7
    if result_count < 6:
        confidence *= 0.85
    return min(confidence, 100.0)


def within_budget(product: CandidateProduct, budget: Optional[Tuple[float, float]]) -> bool:
    if budget is None:
        return True
    if product.price is None:
        return False
    low, high = budget
    return low <= product.price <= high


class SimilarProductSearch:
    """
    Multi-query similar-item search over the provider fan-out.

    Each feature query goes through ProviderAggregator.search (cached,
    deduplicated per query); results across queries are deduplicated
    again before ranking, so a listing found by two queries appears once.
    """

    def __init__(
        self,
        aggregator: ProviderAggregator,
        matcher: Optional[ProductMatcher] = None,
        per_query: int = SIMILAR_RESULTS_PER_QUERY,
        limit: int = SIMILAR_RESULTS_LIMIT,
    ):
        self._aggregator = aggregator
        self._matcher = matcher or ProductMatcher()
        self._per_query = per_query
        self._limit = limit

    def search(
        self,
        features: VisualFeatures,
        budget: Optional[Tuple[float, float]] = None,
        user_style: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        limit = limit or self._limit
        queries = feature_queries(features)

        merged: List[CandidateProduct] = []
        for query in queries:
            merged.extend(
                p for p in self._aggregator.search(query, self._per_query)
                if within_budget(p, budget)
            )

        unique = self._matcher.dedupe(merged)
        ranked = rank_by_similarity(unique, features, user_style)[:limit]
        confidence = search_confidence(features, len(ranked))

        logger.info(
            "Similar product search completed",
            queries=queries,
            candidates=len(merged),
            unique=len(unique),
            returned=len(ranked),
            confidence=confidence,
        )
        return {
            "queries": queries,
            "products": ranked,
            "confidence": confidence,
            "features": features,
        }
