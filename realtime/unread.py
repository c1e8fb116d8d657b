"""
Unread Counter

Live count of unread messages addressed to one user. The counter tracks the
ids of unread messages rather than a bare integer, so a redelivered event
cannot be counted twice and a read receipt can never take it below zero.
`refresh()` rebuilds it from a full recount and is the recovery path after a
reconnect or a dropped-event overflow.
"""

import logging
from typing import Awaitable, Callable, Iterable, Set

from .events import MessageEvent, ReadReceiptEvent

logger = logging.getLogger("tutorlink.realtime")

UnreadLoader = Callable[[str], Awaitable[Iterable[int]]]


class UnreadCounter:
    def __init__(self, user_id: str, loader: UnreadLoader):
        """
        Args:
            user_id: Receiver whose unread messages are counted
            loader: Async callable returning the ids of the user's unread messages
        """
        self.user_id = user_id
        self._loader = loader
        self._unread: Set[int] = set()
        self._read: Set[int] = set()

    @property
    def count(self) -> int:
        return len(self._unread)

    async def refresh(self) -> int:
        """Replace live state with the table's truth. Returns the new count."""
        ids = set(await self._loader(self.user_id))
        self._unread = ids
        self._read.clear()
        logger.debug("Unread recount for %s: %d", self.user_id, len(ids))
        return self.count

    def apply(self, event) -> bool:
        """Fold one event into the counter. Returns True if the count changed."""
        before = self.count
        if isinstance(event, MessageEvent):
            message = event.message
            if message.receiver_id == self.user_id and not message.read:
                if message.id in self._read:
                    self._read.discard(message.id)
                else:
                    self._unread.add(message.id)
        elif isinstance(event, ReadReceiptEvent):
            if event.receiver_id == self.user_id:
                # Only ids whose MessageEvent has not arrived yet are remembered
                self._read.update(set(event.message_ids) - self._unread)
                self._unread.difference_update(event.message_ids)
        return self.count != before
