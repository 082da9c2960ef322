"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Request tracing middleware
- Authentication and actor resolution
- Error taxonomy
- Common utilities
"""

from core.logging import configure_logging, get_logger
from core.auth import Actor, SupabaseUser, get_current_user, require_auth, resolve_actor
from core.errors import (
    FlairError,
    InvalidActionError,
    InvalidInputError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "Actor",
    "SupabaseUser",
    "get_current_user",
    "require_auth",
    "resolve_actor",
    "FlairError",
    "InvalidActionError",
    "InvalidInputError",
    "UnauthenticatedError",
    "UpstreamUnavailableError",
]
