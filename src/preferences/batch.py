"""
Batch re-aggregation for recently active profiles.

Driven hourly by scripts/aggregate_preferences.py. A failure for one
profile is logged and the run continues with the next.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from core.errors import UpstreamUnavailableError
from core.logging import get_logger
from core.utils import utcnow
from events.store import EventStore
from preferences.aggregator import PreferenceAggregator

logger = get_logger(__name__)


def active_since(hours: float, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(hours=hours)


def aggregate_profiles(
    aggregator: PreferenceAggregator,
    profile_ids: Iterable[str],
    now: Optional[datetime] = None,
) -> Dict[str, List[str]]:
    """
    Aggregate each profile independently.

    Returns:
        {"succeeded": [...], "failed": [...]}
    """
    succeeded: List[str] = []
    failed: List[str] = []
    for profile_id in profile_ids:
        try:
            aggregator.aggregate(profile_id, now=now)
        except UpstreamUnavailableError as e:
            failed.append(profile_id)
            logger.warning("Aggregation failed for profile", profile_id=profile_id, error=str(e))
            continue
        succeeded.append(profile_id)

    logger.info("Batch aggregation finished", succeeded=len(succeeded), failed=len(failed))
    return {"succeeded": succeeded, "failed": failed}


def run_batch(
    aggregator: PreferenceAggregator,
    event_store: EventStore,
    hours: float = 1.0,
    now: Optional[datetime] = None,
    profile_ids: Optional[List[str]] = None,
    progress: bool = False,
) -> Dict[str, List[str]]:
    """
    Re-aggregate every profile with a scoring event in the last `hours`,
    or only `profile_ids` when given.

    Raises:
        UpstreamUnavailableError: the active-profile lookup failed.
    """
    if profile_ids is None:
        profile_ids = event_store.active_profiles(active_since(hours, now))
    logger.info("Batch aggregation starting", profiles=len(profile_ids), hours=hours)
    if progress:
        profile_ids = tqdm(profile_ids, desc="profiles")
    return aggregate_profiles(aggregator, profile_ids, now=now)
