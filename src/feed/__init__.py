"""
Discovery feed composition.
"""

from feed.composer import FeedComposer, build_queries

__all__ = ["FeedComposer", "build_queries"]
