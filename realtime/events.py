"""
Realtime Events

Everything that travels over the event bus. Message and notification events
wrap a persisted row, so their identity (`event_id`) is the row id and a
redelivered row can be recognised and dropped by the consumer.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Literal, Tuple, Union

from pydantic import BaseModel, Field

from models.schemas import MessageOut, NotificationOut


class MessageEvent(BaseModel):
    kind: Literal["message"] = "message"
    message: MessageOut

    @property
    def event_id(self) -> str:
        return f"message:{self.message.id}"

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        return (self.message.created_at, self.message.id)

    def audience(self) -> Tuple[str, ...]:
        return (self.message.sender_id, self.message.receiver_id)


class NotificationEvent(BaseModel):
    kind: Literal["notification"] = "notification"
    notification: NotificationOut

    @property
    def event_id(self) -> str:
        return f"notification:{self.notification.id}"

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        return (self.notification.created_at, self.notification.id)

    def audience(self) -> Tuple[str, ...]:
        return (self.notification.recipient_id,)


class ReadReceiptEvent(BaseModel):
    """Messages from `sender_id` to `receiver_id` were flagged read."""
    kind: Literal["messages_read"] = "messages_read"
    receipt_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sender_id: str
    receiver_id: str
    message_ids: List[int]
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def event_id(self) -> str:
        return f"messages_read:{self.receipt_id}"

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        return (self.created_at, max(self.message_ids, default=0))

    def audience(self) -> Tuple[str, ...]:
        return (self.sender_id, self.receiver_id)


RealtimeEvent = Annotated[
    Union[MessageEvent, NotificationEvent, ReadReceiptEvent],
    Field(discriminator="kind"),
]


def message_pair(event) -> Tuple[str, str]:
    """(sender, receiver) for message-scoped events."""
    if isinstance(event, MessageEvent):
        return event.message.sender_id, event.message.receiver_id
    return event.sender_id, event.receiver_id
