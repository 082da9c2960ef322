"""
Pydantic models for interaction events.

An InteractionEvent is a tagged union keyed by `action`: each variant
carries only the fields its action uses (dwell time on views, product
snapshot on saves, chat text on chat messages). Events are frozen once
built; the store only ever appends them.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from core.auth import Actor
from core.errors import InvalidActionError, InvalidInputError
from core.utils import isoformat, utcnow


class InteractionAction(str, Enum):
    """Fixed set of tracked actions."""
    VIEW = "view"
    CLICK = "click"
    SAVE = "save"
    UNSAVE = "unsave"
    LIKE = "like"
    SHARE = "share"
    CHAT_OPEN = "chat_open"
    CHAT_MESSAGE = "chat_message"


VALID_ACTIONS = frozenset(a.value for a in InteractionAction)


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    profile_id: Optional[str] = None
    anonymous_id: Optional[str] = None
    session_id: Optional[str] = None
    impression_id: Optional[str] = None
    product_id: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)

    def variant_payload(self) -> Dict[str, Any]:
        return {}

    def to_row(self) -> Dict[str, Any]:
        """Row shape for the user_events table."""
        payload = dict(self.attributes)
        payload.update(self.variant_payload())
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "anonymous_id": self.anonymous_id,
            "session_id": self.session_id,
            "impression_id": self.impression_id,
            "product_id": self.product_id,
            "action": self.action,
            "dwell_time_seconds": getattr(self, "dwell_time_seconds", None),
            "payload": payload,
            "created_at": isoformat(self.created_at),
        }


class ViewEvent(_EventBase):
    action: Literal["view"] = "view"
    dwell_time_seconds: Optional[float] = Field(default=None, ge=0)


class ClickEvent(_EventBase):
    action: Literal["click"] = "click"


class SaveEvent(_EventBase):
    action: Literal["save"] = "save"
    product_snapshot: Dict[str, Any] = Field(default_factory=dict)

    def variant_payload(self) -> Dict[str, Any]:
        return {"product_data": self.product_snapshot} if self.product_snapshot else {}


class UnsaveEvent(_EventBase):
    action: Literal["unsave"] = "unsave"


class LikeEvent(_EventBase):
    action: Literal["like"] = "like"


class ShareEvent(_EventBase):
    action: Literal["share"] = "share"


class ChatOpenEvent(_EventBase):
    action: Literal["chat_open"] = "chat_open"


class ChatMessageEvent(_EventBase):
    action: Literal["chat_message"] = "chat_message"
    chat_text: str = ""

    def variant_payload(self) -> Dict[str, Any]:
        return {"chat_text": self.chat_text} if self.chat_text else {}


InteractionEvent = Annotated[
    Union[
        ViewEvent,
        ClickEvent,
        SaveEvent,
        UnsaveEvent,
        LikeEvent,
        ShareEvent,
        ChatOpenEvent,
        ChatMessageEvent,
    ],
    Field(discriminator="action"),
]

_event_adapter = TypeAdapter(InteractionEvent)


def build_event(
    action: Any,
    actor: Actor,
    *,
    product_id: Optional[str] = None,
    impression_id: Optional[str] = None,
    session_id: Optional[str] = None,
    dwell_time_seconds: Optional[float] = None,
    payload: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> InteractionEvent:
    """
    Build the action-specific event variant from loose request fields.

    Known payload keys are lifted into the variant (`chat_text` for
    chat messages, `product_data`/`product_snapshot` for saves); the rest
    stays as free-form attributes.

    Raises:
        InvalidActionError: action is not one of InteractionAction.
        InvalidInputError: remaining fields fail validation.
    """
    if not isinstance(action, str) or action not in VALID_ACTIONS:
        raise InvalidActionError(action)

    attributes = dict(payload or {})
    data: Dict[str, Any] = {
        "action": action,
        "profile_id": actor.profile_id,
        "anonymous_id": actor.anonymous_id,
        "session_id": session_id or None,
        "impression_id": impression_id or None,
        "product_id": product_id or None,
    }
    if created_at is not None:
        data["created_at"] = created_at

    if action == InteractionAction.VIEW.value:
        data["dwell_time_seconds"] = dwell_time_seconds
    elif action == InteractionAction.SAVE.value:
        snapshot = attributes.pop("product_data", None) or attributes.pop("product_snapshot", None)
        data["product_snapshot"] = snapshot if isinstance(snapshot, dict) else {}
    elif action == InteractionAction.CHAT_MESSAGE.value:
        text = attributes.pop("chat_text", "")
        data["chat_text"] = text if isinstance(text, str) else ""

    data["attributes"] = attributes

    try:
        return _event_adapter.validate_python(data)
    except ValueError as e:
        raise InvalidInputError(f"Invalid event: {e}") from e
