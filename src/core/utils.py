"""
Core Utility Functions.

Common helpers used across the pipeline.
"""

import hashlib
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

# PostgREST trims trailing zeros from fractional seconds ("12:00:00.12345")
# and may send hour-only offsets ("+00")
_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d{2}(?::?\d{2})?$|$)")
_SHORT_OFFSET = re.compile(r"(:\d{2}(?:\.\d+)?[+-]\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp as stored by the datastore."""
    return (moment or utcnow()).astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a datastore timestamp into an aware UTC datetime.

    Accepts datetimes and ISO strings (with or without a trailing 'Z').
    Naive values are assumed to be UTC. Returns None when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        text = _SHORT_OFFSET.sub(r"\1:00", text)
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def safe_float(value: Any) -> Optional[float]:
    """
    Convert prices like 120, "120.5" or "$1,299.00" to float.

    Returns None for missing or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in ".-")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def unique_preserving_order(values: Iterable[Any]) -> List[Any]:
    """Drop repeats (and falsy values), keeping first occurrence order."""
    seen = set()
    out = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def stable_product_id(product: Dict[str, Any]) -> str:
    """Stable id from link|brand|title so re-fetched listings map to one catalog row."""
    text = f"{product.get('link') or ''}|{product.get('brand') or ''}|{product.get('title') or ''}"
    return "prod_" + hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]
