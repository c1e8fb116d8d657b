"""
Realtime Event Bus

In-process fan-out of newly written Message / Notification rows to the
sessions that are currently subscribed. Each subscription owns a bounded
asyncio queue and is consumed by iterating it:

    subscription = event_bus.subscribe(user_id, counterpart_id)
    async for event in subscription:
        ...

Scopes:
- counterpart_id given: message and read-receipt events between the viewer
  and that counterpart only
- counterpart_id None: every notification addressed to the user, plus every
  message / read-receipt event the user takes part in

Delivery is at-least-once from the consumer's point of view: a session that
reconnects backfills from the database and may see rows again, so consumers
dedupe by `event_id`. A subscription whose queue overflows is flagged so its
consumer can resync from storage instead of silently losing events.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from typing import Dict, Optional, Set

from config import SUBSCRIPTION_QUEUE_SIZE
from .events import NotificationEvent, RealtimeEvent, message_pair

logger = logging.getLogger("tutorlink.realtime")

_CLOSED = object()


class Subscription:
    """A lazy, infinite stream of events for one viewer. Restart = resubscribe."""

    def __init__(self, bus: "RealtimeEventBus", user_id: str, counterpart_id: Optional[str], maxsize: int):
        self.user_id = user_id
        self.counterpart_id = counterpart_id
        self.closed = False
        self._bus = bus
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._overflowed = False

    def accepts(self, event) -> bool:
        if isinstance(event, NotificationEvent):
            return self.counterpart_id is None and event.notification.recipient_id == self.user_id

        sender, receiver = message_pair(event)
        if self.user_id not in (sender, receiver):
            return False
        if self.counterpart_id is None:
            return True
        other = receiver if sender == self.user_id else sender
        return other == self.counterpart_id

    def deliver(self, event) -> None:
        """Hand an event to this subscription. Safe to call from any thread or loop."""
        if self.closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._offer(event)
            return
        try:
            self._loop.call_soon_threadsafe(self._offer, event)
        except RuntimeError:
            # subscriber's loop is gone; the session died without closing
            self.closed = True
            self._bus.unsubscribe(self)

    def _offer(self, event) -> None:
        if self.closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._overflowed = True
            logger.warning("Subscription queue full for %s; consumer must resync", self.user_id)

    def take_overflow(self) -> bool:
        """True once after events were dropped because the queue was full."""
        overflowed, self._overflowed = self._overflowed, False
        return overflowed

    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _CLOSED:
            raise StopAsyncIteration
        return event

    async def get(self, timeout: Optional[float] = None):
        """Next event, or raise asyncio.TimeoutError."""
        return await asyncio.wait_for(self.__anext__(), timeout)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._bus.unsubscribe(self)
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass


class RealtimeEventBus:
    """Routes each published event to every subscription that accepts it."""

    def __init__(self, queue_size: int = SUBSCRIPTION_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscriptions: Dict[str, Set[Subscription]] = defaultdict(set)
        self._lock = threading.Lock()

    def subscribe(self, user_id: str, counterpart_id: Optional[str] = None) -> Subscription:
        """Open a subscription. Must be called from inside the consumer's event loop."""
        subscription = Subscription(self, user_id, counterpart_id, self.queue_size)
        with self._lock:
            self._subscriptions[user_id].add(subscription)
        logger.debug("Subscribed %s (counterpart=%s)", user_id, counterpart_id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.user_id)
            if subs is None:
                return
            subs.discard(subscription)
            if not subs:
                del self._subscriptions[subscription.user_id]

    async def publish(self, event: RealtimeEvent) -> int:
        """
        Deliver an event to all interested subscriptions.

        Returns:
            Number of subscriptions the event was handed to
        """
        with self._lock:
            targets = [
                sub
                for user_id in set(event.audience())
                for sub in self._subscriptions.get(user_id, ())
                if sub.accepts(event)
            ]
        for sub in targets:
            sub.deliver(event)
        return len(targets)

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(user_id, ()))
