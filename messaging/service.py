"""
Messaging Service

Direct messages between a student and a tutor.

send_message flow:
1. Validate sender, receiver and content (nothing is written on failure)
2. Persist the Message (failures surface to the caller)
3. Publish it on the event bus
4. Best effort: create a "message" Notification for the receiver and publish
   it. Any failure here is logged and swallowed; the message already exists.

mark_as_read is the only path that flips a Message's `read` flag.
"""

import logging
from typing import List, Optional

from config import CONVERSATION_DEFAULT_LIMIT, CONVERSATION_MAX_LIMIT, MESSAGE_MAX_LENGTH
from matching.logic.adapter import ProfileStore
from models.schemas import ConversationOut, MarkReadResult, MessageOut
from notifications.payloads import MessagePayload
from notifications.repository import NotificationRepository
from realtime.event_bus import RealtimeEventBus
from realtime.events import MessageEvent, NotificationEvent, ReadReceiptEvent
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from .conversations import build_conversations
from .repository import MessageRepository

logger = logging.getLogger("tutorlink.messaging")

MESSAGE_NOTIFICATION_TITLE = "New Message"


class MessagingService:
    def __init__(
        self,
        messages: MessageRepository,
        notifications: NotificationRepository,
        profiles: ProfileStore,
        event_bus: RealtimeEventBus,
    ):
        self.messages = messages
        self.notifications = notifications
        self.profiles = profiles
        self.event_bus = event_bus

    async def send_message(self, sender_id: Optional[str], receiver_id: str, content: str) -> MessageOut:
        """
        Persist a message and notify the receiver.

        Args:
            sender_id: Authenticated sender; None/empty means unauthenticated
            receiver_id: Recipient user id
            content: Message text (trimmed; must be non-empty)

        Returns:
            The stored message

        Raises:
            PermissionDeniedError: no authenticated sender
            ValidationError: empty/oversized content, missing or self receiver
            NotFoundError: receiver has no profile
        """
        content = await self.validate_message(sender_id, receiver_id, content)

        message = await self.messages.create(sender_id, receiver_id, content)
        await self.event_bus.publish(MessageEvent(message=message))

        await self._notify_receiver(message)
        return message

    async def validate_message(self, sender_id: Optional[str], receiver_id: str, content: str) -> str:
        """Run every send_message check without writing. Returns the trimmed content."""
        if not sender_id:
            raise PermissionDeniedError("Sender must be authenticated")
        if not receiver_id or not receiver_id.strip():
            raise ValidationError("receiver_id is required")
        if receiver_id == sender_id:
            raise ValidationError("Cannot send a message to yourself")

        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content cannot be empty")
        if len(content) > MESSAGE_MAX_LENGTH:
            raise ValidationError(f"Message content exceeds {MESSAGE_MAX_LENGTH} characters")

        if await self.profiles.get_profile(receiver_id) is None:
            raise NotFoundError(f"User {receiver_id} not found")
        return content

    async def _notify_receiver(self, message: MessageOut) -> None:
        try:
            sender = await self.profiles.get_profile(message.sender_id)
            name = sender.full_name if sender and sender.full_name else "someone"
            notification = await self.notifications.create(
                recipient_id=message.receiver_id,
                title=MESSAGE_NOTIFICATION_TITLE,
                message=f"You have a new message from {name}.",
                payload=MessagePayload(sender_id=message.sender_id, message_id=message.id),
            )
            await self.event_bus.publish(NotificationEvent(notification=notification))
        except Exception:
            logger.warning(
                "Message %s stored but notifying %s failed", message.id, message.receiver_id, exc_info=True
            )

    async def get_conversation(self, user_a: str, user_b: str, limit: Optional[int] = None) -> List[MessageOut]:
        """Latest `limit` messages between two users, ascending by (created_at, id)."""
        if limit is None:
            limit = CONVERSATION_DEFAULT_LIMIT
        if limit < 1 or limit > CONVERSATION_MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {CONVERSATION_MAX_LIMIT}")
        return await self.messages.conversation(user_a, user_b, limit)

    async def mark_as_read(self, from_user_id: str, to_user_id: str, actor_id: Optional[str] = None) -> MarkReadResult:
        """
        Flag every unread message from `from_user_id` to `to_user_id` as read.

        Only the receiver may do this; pass `actor_id` to have that enforced.
        Also clears the receiver's "message" notifications from that sender.
        """
        if actor_id is not None and actor_id != to_user_id:
            raise PermissionDeniedError("Only the receiver can mark messages as read")

        flipped, cleared = await self.messages.mark_read(from_user_id, to_user_id)
        if flipped:
            await self.event_bus.publish(
                ReadReceiptEvent(sender_id=from_user_id, receiver_id=to_user_id, message_ids=flipped)
            )
        logger.info(
            "Marked %d messages from %s to %s read (%d notifications cleared)",
            len(flipped), from_user_id, to_user_id, cleared,
        )
        return MarkReadResult(flipped=len(flipped))

    async def unread_count(self, user_id: str) -> int:
        return await self.messages.unread_count(user_id)

    async def unread_message_ids(self, user_id: str) -> List[int]:
        return await self.messages.unread_ids(user_id)

    async def list_conversations(self, user_id: str) -> List[ConversationOut]:
        return build_conversations(user_id, await self.messages.involving(user_id))
