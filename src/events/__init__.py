"""
Interaction event store and its projections.
"""

from events.dispatcher import EventDispatcher, EventHandler
from events.models import (
    VALID_ACTIONS,
    InteractionAction,
    InteractionEvent,
    build_event,
)
from events.projectors import (
    OutcomeProjector,
    SavedItemsProjector,
    SessionActivityProjector,
    outcome_label,
)
from events.store import EventStore

__all__ = [
    "EventDispatcher",
    "EventHandler",
    "EventStore",
    "InteractionAction",
    "InteractionEvent",
    "OutcomeProjector",
    "SavedItemsProjector",
    "SessionActivityProjector",
    "VALID_ACTIONS",
    "build_event",
    "outcome_label",
]
