"""
Hourly preference aggregation.

Recomputes the preference snapshot for every profile with a click, save
or like in the last N hours. Intended for cron:

    0 * * * * python scripts/aggregate_preferences.py --hours 1
"""

import argparse
import sys
from pathlib import Path

from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config.settings import get_settings  # noqa: E402
from core.errors import UpstreamUnavailableError  # noqa: E402
from core.logging import configure_logging, get_logger  # noqa: E402
from preferences.batch import run_batch  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Re-aggregate preferences for active profiles")
    parser.add_argument("--hours", type=float, default=1.0,
                        help="Look-back window for active profiles")
    parser.add_argument("--profile", action="append", default=None,
                        help="Aggregate only this profile id (repeatable)")
    parser.add_argument("--json-logs", action="store_true",
                        help="Emit JSON logs")
    args = parser.parse_args()

    configure_logging(json_logs=args.json_logs, log_level="INFO")
    logger = get_logger("aggregate_preferences")

    from api.dependencies import get_event_store, get_preference_aggregator

    settings = get_settings()
    logger.info(
        "Aggregating preferences",
        hours=args.hours,
        profiles=args.profile,
        window_days=settings.aggregation_window_days,
    )

    try:
        result = run_batch(
            get_preference_aggregator(),
            get_event_store(),
            hours=args.hours,
            profile_ids=args.profile,
            progress=True,
        )
    except UpstreamUnavailableError as e:
        logger.error("Could not list active profiles", error=str(e))
        return 2

    print(f"\nAggregated {len(result['succeeded'])} profiles, {len(result['failed'])} failed")
    return 1 if result["failed"] and not result["succeeded"] else 0


if __name__ == "__main__":
    sys.exit(main())
