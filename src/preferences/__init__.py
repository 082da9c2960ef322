"""
Preference scoring: aggregation, chat keywords and snapshot storage.
"""

from preferences.aggregator import (
    PreferenceAggregator,
    action_weight,
    price_band,
    rank_top,
    recency_weight,
    score_events,
)
from preferences.incremental import PreferenceIncrementalUpdater
from preferences.keywords import extract_keywords, merge_keywords
from preferences.models import PreferenceScores, PreferenceSnapshot
from preferences.repository import PreferenceRepository

__all__ = [
    "PreferenceAggregator",
    "PreferenceIncrementalUpdater",
    "PreferenceRepository",
    "PreferenceScores",
    "PreferenceSnapshot",
    "action_weight",
    "extract_keywords",
    "merge_keywords",
    "price_band",
    "rank_top",
    "recency_weight",
    "score_events",
]
