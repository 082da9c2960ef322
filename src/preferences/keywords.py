"""
Keyword mining for chat messages.

Pulls a handful of salient lowercase terms out of free text so chat
activity can bias search queries alongside click/save/like scoring.
"""

import re
from typing import Iterable, List

from config.constants import MIN_KEYWORD_LENGTH, STOP_WORDS
from core.utils import unique_preserving_order

_NON_WORD = re.compile(r"\W+")


def extract_keywords(text: str, limit: int = 5) -> List[str]:
    """
    Extract up to `limit` unique keywords from text, first-seen order.

    Tokens of length <= 2 and stop words are dropped.

    >>> extract_keywords("I really love this amazing cardigan")
    ['really', 'love', 'amazing', 'cardigan']
    """
    if not text:
        return []
    tokens = (
        token
        for token in _NON_WORD.split(text.lower())
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOP_WORDS
    )
    return unique_preserving_order(tokens)[:limit]


def merge_keywords(existing: Iterable[str], new: Iterable[str], cap: int = 10) -> List[str]:
    """
    Append new keywords to the rolling list, dedupe (first occurrence
    wins) and keep only the most recent `cap` entries.
    """
    merged = unique_preserving_order(list(existing or []) + list(new or []))
    return merged[-cap:] if cap > 0 else []
