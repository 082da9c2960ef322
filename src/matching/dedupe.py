"""
Near-duplicate collapsing for candidate products.

Listings from different providers are the same real product when their
titles overlap strongly AND their prices are close:

    title_similarity(a, b) > title_threshold   (Jaccard over title tokens)
    price_difference(a, b) < price_threshold   (|pa - pb| / max(pa, pb))

Greedy pass: each candidate is compared only against already accepted
candidates; the first occurrence survives.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from core.logging import get_logger
from core.utils import safe_float

logger = get_logger(__name__)

_TOKEN_STRIP = re.compile(r"[^\w]+")


class CandidateProduct(BaseModel):
    """A product as returned by one upstream provider."""
    title: str
    price: Optional[float] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    source: str = "unknown"
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any], source: str) -> "CandidateProduct":
        return cls(
            title=str(raw.get("title") or ""),
            price=safe_float(raw.get("price")),
            brand=raw.get("brand") or None,
            category=raw.get("category") or None,
            image_url=raw.get("image_url") or raw.get("imageUrl") or raw.get("image") or None,
            link=raw.get("link") or raw.get("url") or None,
            source=source,
        )


def tokenize_title(title: str) -> Set[str]:
    """
    Lowercased whitespace tokens with punctuation stripped, so
    "Max '90" and "max 90" tokenize the same.
    """
    tokens = set()
    for raw in (title or "").lower().split():
        token = _TOKEN_STRIP.sub("", raw)
        if token:
            tokens.add(token)
    return tokens


def title_similarity(a: str, b: str) -> float:
    """|tokens(a) & tokens(b)| / |tokens(a) | tokens(b)|; 0.0 when both are empty."""
    tokens_a = tokenize_title(a)
    tokens_b = tokenize_title(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def price_difference(a: Optional[float], b: Optional[float]) -> float:
    """
    Relative price gap |a - b| / max(a, b).

    Two missing (or two zero) prices count as identical; one missing
    price counts as maximally different.
    """
    if a is None and b is None:
        return 0.0
    if a is None or b is None:
        return 1.0
    high = max(a, b)
    if high <= 0:
        return 0.0
    return abs(a - b) / high


class ProductMatcher:
    def __init__(self, title_threshold: float = 0.8, price_threshold: float = 0.1):
        self.title_threshold = title_threshold
        self.price_threshold = price_threshold

    def is_duplicate(self, a: CandidateProduct, b: CandidateProduct) -> bool:
        return (
            title_similarity(a.title, b.title) > self.title_threshold
            and price_difference(a.price, b.price) < self.price_threshold
        )

    def dedupe(self, candidates: Iterable[CandidateProduct]) -> List[CandidateProduct]:
        """Surviving candidates in first-occurrence order."""
        accepted: List[CandidateProduct] = []
        dropped = 0
        for candidate in candidates:
            if any(self.is_duplicate(candidate, kept) for kept in accepted):
                dropped += 1
                continue
            accepted.append(candidate)

        if dropped:
            logger.debug("Collapsed duplicate listings", kept=len(accepted), dropped=dropped)
        return accepted
