"""
Configuration module for the discovery pipeline.

Usage:
    from config import get_settings

    settings = get_settings()
    ceiling = settings.cache_feed_max_bytes
"""

from config.settings import Settings, get_settings

# Note: This will be None if required env vars are missing
try:
    settings = get_settings()
except Exception:
    settings = None

__all__ = ["Settings", "get_settings", "settings"]
