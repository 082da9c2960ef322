"""
Error taxonomy for the discovery pipeline.

InvalidInput and Unauthenticated are rejected synchronously and never
retried. UpstreamUnavailable wraps datastore/cache/provider failures;
read paths degrade instead of raising it, the event write path and
aggregation surface it to the caller.
"""

from typing import Optional


class FlairError(Exception):
    """Base class for pipeline errors."""

    code = "flair_error"

    def __init__(self, message: str, detail: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class InvalidInputError(FlairError):
    """Malformed request data (missing correlation id, bad field)."""

    code = "invalid_input"


class InvalidActionError(InvalidInputError):
    """Interaction action outside the fixed enum."""

    code = "invalid_action"

    def __init__(self, action) -> None:
        super().__init__(f"Invalid action: {action}", {"action": action})
        self.action = action


class UnauthenticatedError(FlairError):
    """Neither a profile nor an anonymous id could be resolved."""

    code = "unauthenticated"


class UpstreamUnavailableError(FlairError):
    """Datastore, cache or third-party provider failure."""

    code = "upstream_unavailable"

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source} unavailable: {message}", {"source": source})
        self.source = source
