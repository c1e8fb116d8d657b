"""
Ordered consumer-side views over the event stream.

The bus makes no promise about arrival order, and a reconnect backfill can
overlap with live events. These views dedupe by event id and keep their
contents sorted by (created_at, id) before anything is exposed.
"""

from bisect import insort
from typing import Dict, Generic, Iterable, List, Tuple, TypeVar

from models.schemas import MessageOut, NotificationOut
from .events import MessageEvent, NotificationEvent, ReadReceiptEvent

T = TypeVar("T")


class OrderedBuffer(Generic[T]):
    """Id-deduplicated collection kept sorted by sort key."""

    def __init__(self):
        self._items: Dict[str, T] = {}
        self._order: List[Tuple[tuple, str]] = []

    def add(self, event_id: str, sort_key: tuple, item: T) -> bool:
        """Insert an item. Returns False if the id was already present."""
        if event_id in self._items:
            return False
        self._items[event_id] = item
        insort(self._order, (sort_key, event_id))
        return True

    def replace(self, event_id: str, item: T) -> None:
        if event_id in self._items:
            self._items[event_id] = item

    def get(self, event_id: str):
        return self._items.get(event_id)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._items

    def __len__(self) -> int:
        return len(self._order)

    def items(self) -> List[T]:
        return [self._items[event_id] for _, event_id in self._order]

    def clear(self) -> None:
        self._items.clear()
        self._order.clear()


class ConversationView:
    """Messages between the viewer and one counterpart, in (created_at, id) order."""

    def __init__(self, viewer_id: str, counterpart_id: str):
        self.viewer_id = viewer_id
        self.counterpart_id = counterpart_id
        self._buffer: OrderedBuffer[MessageOut] = OrderedBuffer()

    def load(self, messages: Iterable[MessageOut]) -> int:
        """Merge a backfill. Returns how many messages were new."""
        return sum(1 for m in messages if self.add_message(m))

    def add_message(self, message: MessageOut) -> bool:
        event = MessageEvent(message=message)
        return self._buffer.add(event.event_id, event.sort_key, message)

    def apply(self, event) -> bool:
        """Apply a live event. Returns True if the view changed."""
        if isinstance(event, MessageEvent):
            return self.add_message(event.message)
        if isinstance(event, ReadReceiptEvent):
            changed = False
            for message_id in event.message_ids:
                key = f"message:{message_id}"
                message = self._buffer.get(key)
                if message is not None and not message.read:
                    self._buffer.replace(key, message.model_copy(update={"read": True}))
                    changed = True
            return changed
        return False

    def messages(self) -> List[MessageOut]:
        return self._buffer.items()

    def is_latest(self, message: MessageOut) -> bool:
        items = self._buffer.items()
        return bool(items) and items[-1].id == message.id

    def clear(self) -> None:
        self._buffer.clear()


class NotificationFeed:
    """The viewer's notifications, newest last."""

    def __init__(self, recipient_id: str):
        self.recipient_id = recipient_id
        self._buffer: OrderedBuffer[NotificationOut] = OrderedBuffer()

    def add(self, notification: NotificationOut) -> bool:
        event = NotificationEvent(notification=notification)
        return self._buffer.add(event.event_id, event.sort_key, notification)

    def load(self, notifications: Iterable[NotificationOut]) -> int:
        return sum(1 for n in notifications if self.add(n))

    def apply(self, event) -> bool:
        if isinstance(event, NotificationEvent):
            return self.add(event.notification)
        return False

    def notifications(self) -> List[NotificationOut]:
        return self._buffer.items()

    def clear(self) -> None:
        self._buffer.clear()
