"""
Candidate product matching and multi-provider search.
"""

from matching.dedupe import (
    CandidateProduct,
    ProductMatcher,
    price_difference,
    title_similarity,
    tokenize_title,
)
from matching.providers import (
    CatalogProvider,
    ProductProvider,
    ProviderAggregator,
    ProviderError,
    SerperShoppingProvider,
)
from matching.similarity import (
    SimilarProductSearch,
    VisualFeatures,
    feature_queries,
    features_from_text,
    rank_by_similarity,
    similarity_score,
)

__all__ = [
    "CandidateProduct",
    "CatalogProvider",
    "ProductMatcher",
    "ProductProvider",
    "ProviderAggregator",
    "ProviderError",
    "SerperShoppingProvider",
    "SimilarProductSearch",
    "VisualFeatures",
    "feature_queries",
    "features_from_text",
    "price_difference",
    "rank_by_similarity",
    "similarity_score",
    "title_similarity",
    "tokenize_title",
]
