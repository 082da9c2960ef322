"""
Pydantic models for preference state.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from core.utils import parse_timestamp


class PreferenceSnapshot(BaseModel):
    """Current best estimate of a profile's taste (one row per profile)."""
    profile_id: str
    favorite_brands: List[str] = Field(default_factory=list)
    favorite_categories: List[str] = Field(default_factory=list)
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    chat_keywords: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_price_band(self):
        if self.price_min is not None and self.price_max is not None:
            if self.price_min > self.price_max:
                raise ValueError(
                    f"price_min ({self.price_min}) must be <= price_max ({self.price_max})"
                )
        return self

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PreferenceSnapshot":
        return cls(
            profile_id=row["profile_id"],
            favorite_brands=list(row.get("favorite_brands") or []),
            favorite_categories=list(row.get("favorite_categories") or []),
            price_min=row.get("price_min"),
            price_max=row.get("price_max"),
            chat_keywords=list(row.get("chat_keywords") or []),
            updated_at=parse_timestamp(row.get("updated_at")),
        )


class PreferenceScores(BaseModel):
    """Intermediate aggregation output before the snapshot is written."""
    brand_scores: Dict[str, float] = Field(default_factory=dict)
    category_scores: Dict[str, float] = Field(default_factory=dict)
    prices: List[float] = Field(default_factory=list)
    events_scored: int = 0
    events_skipped: int = 0
