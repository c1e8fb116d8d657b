"""
Realtime Session

State owned by one live client connection, created on connect and dropped on
disconnect. Nothing here is shared between sessions.

Two kinds of session:
- inbox (counterpart_id None): notification feed + unread message counter
- conversation (counterpart_id set): ordered messages with one counterpart

Lifecycle:
1. connect(): subscribe to the bus FIRST, then backfill from the database, so
   nothing written in between is missed (overlap is removed by id)
2. one long-lived task consumes the subscription and folds events into the
   local state, queueing frames for the client
3. resync(): drop local state and rebuild it from the database; used after a
   queue overflow or when the client asks for it
4. close(): stop the task and unsubscribe

Frames are plain JSON-ready dicts:
    {"type": "snapshot", ...}
    {"type": "message", "message": {...}}
    {"type": "read", "message_ids": [...]}
    {"type": "notification", "notification": {...}}
    {"type": "unread", "count": n}
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Optional

from messaging.service import MessagingService
from notifications.repository import NotificationRepository
from .event_bus import RealtimeEventBus, Subscription
from .events import MessageEvent, NotificationEvent, ReadReceiptEvent
from .stream import ConversationView, NotificationFeed
from .unread import UnreadCounter

logger = logging.getLogger("tutorlink.realtime")

_END = object()

INBOX_BACKFILL = 50


class RealtimeSession:
    def __init__(
        self,
        user_id: str,
        event_bus: RealtimeEventBus,
        messaging: MessagingService,
        notifications: NotificationRepository,
        counterpart_id: Optional[str] = None,
    ):
        self.user_id = user_id
        self.counterpart_id = counterpart_id
        self.event_bus = event_bus
        self.messaging = messaging
        self.notifications = notifications

        self.conversation: Optional[ConversationView] = (
            ConversationView(user_id, counterpart_id) if counterpart_id else None
        )
        self.feed: Optional[NotificationFeed] = None if counterpart_id else NotificationFeed(user_id)
        self.unread: Optional[UnreadCounter] = (
            None if counterpart_id else UnreadCounter(user_id, messaging.unread_message_ids)
        )

        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def is_inbox(self) -> bool:
        return self.counterpart_id is None

    async def connect(self) -> None:
        self._subscription = self.event_bus.subscribe(self.user_id, self.counterpart_id)
        try:
            await self._backfill()
        except Exception:
            self._subscription.close()
            raise
        self._push(self.snapshot())
        self._task = asyncio.create_task(self._consume())
        logger.info("Realtime session open for %s (counterpart=%s)", self.user_id, self.counterpart_id)

    async def _backfill(self) -> None:
        if not self.is_inbox:
            self.conversation.load(await self.messaging.get_conversation(self.user_id, self.counterpart_id))
        else:
            self.feed.load(await self.notifications.list_for_recipient(self.user_id, limit=INBOX_BACKFILL))
            await self.unread.refresh()

    async def resync(self) -> None:
        """Rebuild local state from storage and send a fresh snapshot."""
        if self.is_inbox:
            self.feed.clear()
        else:
            self.conversation.clear()
        await self._backfill()
        self._push(self.snapshot())
        logger.info("Realtime session for %s resynced", self.user_id)

    async def _consume(self) -> None:
        async for event in self._subscription:
            try:
                if self._subscription.take_overflow():
                    await self.resync()
                    continue
                self.apply(event)
            except Exception:
                logger.exception("Realtime session for %s failed to apply %s", self.user_id, event.event_id)

    def apply(self, event) -> None:
        """Fold one event into the session state and queue the resulting frames."""
        if not self.is_inbox:
            if self.conversation.apply(event):
                if isinstance(event, MessageEvent):
                    if self.conversation.is_latest(event.message):
                        self._push({"type": "message", "message": event.message.model_dump(mode="json")})
                    else:
                        # Arrived out of order; resend the whole ordered view
                        self._push(self.snapshot())
                elif isinstance(event, ReadReceiptEvent):
                    self._push({"type": "read", "message_ids": event.message_ids})
            return

        if isinstance(event, NotificationEvent) and self.feed.apply(event):
            self._push({"type": "notification", "notification": event.notification.model_dump(mode="json")})
        if self.unread.apply(event):
            self._push({"type": "unread", "count": self.unread.count})

    def snapshot(self) -> Dict[str, Any]:
        if not self.is_inbox:
            return {
                "type": "snapshot",
                "counterpart_id": self.counterpart_id,
                "messages": [m.model_dump(mode="json") for m in self.conversation.messages()],
            }
        return {
            "type": "snapshot",
            "unread": self.unread.count,
            "notifications": [n.model_dump(mode="json") for n in self.feed.notifications()],
        }

    def _push(self, frame: Dict[str, Any]) -> None:
        if not self._closed:
            self._outbox.put_nowait(frame)

    def push(self, frame: Dict[str, Any]) -> None:
        self._push(frame)

    async def updates(self) -> AsyncIterator[Dict[str, Any]]:
        """Frames for the client, in the order they were produced. Ends on close()."""
        while True:
            frame = await self._outbox.get()
            if frame is _END:
                return
            yield frame

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._outbox.put_nowait(_END)
        logger.info("Realtime session closed for %s", self.user_id)
