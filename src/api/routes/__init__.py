"""
Route modules for the API.

Each module exports a FastAPI APIRouter with endpoints
for a specific domain/feature.
"""

from api.routes import community
from api.routes import events
from api.routes import feed
from api.routes import health
from api.routes import preferences
from api.routes import products

__all__ = ["community", "events", "feed", "health", "preferences", "products"]
