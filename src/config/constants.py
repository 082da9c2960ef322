"""
Application constants and algorithm configuration.

These are values that don't change based on environment but may need
to be tuned or referenced across the codebase.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet


# =============================================================================
# Interaction Actions
# =============================================================================

# Only these actions carry a direct preference signal
SCORING_ACTIONS: FrozenSet[str] = frozenset({"click", "save", "like"})

ACTION_WEIGHTS: Dict[str, float] = {
    "save": 3.0,
    "like": 2.0,
    "click": 1.0,
}

# Outcome label written to recommendation_performance per action
OUTCOME_LABELS: Dict[str, str] = {
    "click": "clicked",
    "save": "saved",
    "unsave": "unsaved",
    "like": "liked",
    "share": "shared",
    "chat_open": "chat_opened",
    "chat_message": "chat_messaged",
}


# =============================================================================
# Keyword Extraction
# =============================================================================

STOP_WORDS: FrozenSet[str] = frozenset({
    "the", "a", "an", "and", "or", "but",
    "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "can",
    "in", "on", "at", "to", "for", "of", "from", "with", "by",
    "i", "you", "he", "she", "it", "we", "they", "this", "that",
    "what", "which", "who", "where", "when", "why", "how",
})

MIN_KEYWORD_LENGTH = 3


# =============================================================================
# Cache TTLs & Keys
# =============================================================================

@dataclass(frozen=True)
class CacheTTL:
    """Cache time-to-live per namespace (seconds)."""

    USER_PROFILE: int = 86400
    USER_COLLECTIONS: int = 3600
    USER_STATS: int = 1800
    COMMUNITY_POSTS: int = 300
    FOLLOWING_FEED: int = 600
    POPULAR_CONTENT: int = 1800
    SEARCH_RESULTS: int = 900
    USER_PREFERENCES: int = 3600


CACHE_TTL = CacheTTL()


class CacheKeys:
    """Deterministic cache key builders."""

    @staticmethod
    def user_preferences(user_id: str) -> str:
        return f"user:{user_id}:preferences"

    @staticmethod
    def community_feed(limit: int, offset: int) -> str:
        return f"community:feed:{limit}:{offset}"

    @staticmethod
    def search_results(query: str, limit: int) -> str:
        return f"search:{query.strip().lower()}:{limit}"


# =============================================================================
# Visual / Text Similarity
# =============================================================================

SIMILARITY_CATEGORY_WEIGHT = 30.0
SIMILARITY_COLOR_WEIGHT = 10.0       # first colour; each later colour 2 less
SIMILARITY_COLOR_STEP = 2.0
SIMILARITY_STYLE_WEIGHT = 8.0        # first style; each later style 1 less
SIMILARITY_STYLE_STEP = 1.0
SIMILARITY_MATERIAL_WEIGHT = 5.0
SIMILARITY_USER_STYLE_WEIGHT = 3.0
SIMILARITY_OCCASION_WEIGHT = 4.0
SIMILAR_RESULTS_LIMIT = 12
SIMILAR_RESULTS_PER_QUERY = 8

# Feature completeness contributions to search confidence (sum 100)
CONFIDENCE_WEIGHTS: Dict[str, float] = {
    "category": 20.0,
    "dominant_colors": 20.0,
    "style": 20.0,
    "materials": 15.0,
    "patterns": 10.0,
    "occasion": 15.0,
}

# Vocabulary for reading features out of a free-text description
KNOWN_COLORS = (
    "black", "white", "red", "blue", "green", "yellow", "pink",
    "purple", "brown", "gray", "navy", "cream",
)
KNOWN_CATEGORIES = ("dress", "shirt", "pants", "shoes", "jacket", "skirt", "top", "sweater")
KNOWN_STYLES = ("casual", "formal", "vintage", "modern", "classic", "trendy", "minimalist")
KNOWN_MATERIALS = ("cotton", "leather", "denim", "silk", "wool", "polyester")

CATEGORY_SEARCH_TERMS: Dict[str, str] = {
    "dress": "midi maxi mini cocktail evening",
    "shoes": "sneakers boots heels flats sandals",
    "shirt": "button-up blouse casual formal",
    "jacket": "blazer bomber leather denim",
    "pants": "jeans chinos trousers casual",
    "sweater": "pullover cardigan knit wool",
    "skirt": "midi mini maxi pleated",
    "top": "tank camisole crop fitted",
}
DEFAULT_CATEGORY_SEARCH_TERMS = "stylish fashionable"


# =============================================================================
# Feed Composition
# =============================================================================

FALLBACK_FEED_QUERIES = ("designer fashion", "high-end clothing", "luxury brands")
MAX_FEED_QUERIES = 3
ANONYMOUS_RECENT_CLICKS = 20
IMPRESSION_SCORE_STEP = 0.05

# Slim projection text caps for cached community posts
SLIM_TITLE_CHARS = 120
SLIM_DESCRIPTION_CHARS = 200
