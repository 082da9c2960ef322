"""
Community feed: cached slim projections rehydrated with batched lookups.
"""

from community.projection import hydrate_posts, slim_post
from community.service import CommunityFeedService

__all__ = ["CommunityFeedService", "hydrate_posts", "slim_post"]
