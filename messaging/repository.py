"""
Message persistence.

All reads and writes of the `messages` table live here. The `read` flag is
only ever flipped by `_mark_read`, which also clears the receiver's
"message" notifications from that sender in the same transaction.
"""

from typing import List, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import and_, func, or_, select, update

from db import get_db
from models.models import Message
from models.schemas import MessageOut
from notifications.repository import mark_message_notifications_read


class MessageRepository:

    def _create(self, sender_id: str, receiver_id: str, content: str) -> MessageOut:
        with get_db() as db:
            row = Message(sender_id=sender_id, receiver_id=receiver_id, content=content, read=False)
            db.add(row)
            db.flush()
            return MessageOut.model_validate(row)

    def _conversation(self, user_a: str, user_b: str, limit: int) -> List[MessageOut]:
        with get_db() as db:
            between = or_(
                and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                and_(Message.sender_id == user_b, Message.receiver_id == user_a),
            )
            # Newest `limit` rows, returned oldest first
            rows = db.execute(
                select(Message)
                .where(between)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
            ).scalars().all()
            return [MessageOut.model_validate(r) for r in reversed(rows)]

    def _mark_read(self, from_user_id: str, to_user_id: str) -> Tuple[List[int], int]:
        with get_db() as db:
            flipped = db.execute(
                update(Message)
                .where(
                    Message.sender_id == from_user_id,
                    Message.receiver_id == to_user_id,
                    Message.read.is_(False),
                )
                .values(read=True)
                .returning(Message.id)
            ).scalars().all()
            cleared = mark_message_notifications_read(db, recipient_id=to_user_id, sender_id=from_user_id)
            return sorted(flipped), cleared

    def _unread_ids(self, user_id: str) -> List[int]:
        with get_db() as db:
            return list(
                db.execute(
                    select(Message.id).where(Message.receiver_id == user_id, Message.read.is_(False))
                ).scalars().all()
            )

    def _unread_count(self, user_id: str) -> int:
        with get_db() as db:
            return db.execute(
                select(func.count(Message.id)).where(Message.receiver_id == user_id, Message.read.is_(False))
            ).scalar_one()

    def _involving(self, user_id: str) -> List[MessageOut]:
        with get_db() as db:
            rows = db.execute(
                select(Message)
                .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
                .order_by(Message.created_at, Message.id)
            ).scalars().all()
            return [MessageOut.model_validate(r) for r in rows]

    async def create(self, sender_id: str, receiver_id: str, content: str) -> MessageOut:
        return await run_in_threadpool(self._create, sender_id, receiver_id, content)

    async def conversation(self, user_a: str, user_b: str, limit: int) -> List[MessageOut]:
        return await run_in_threadpool(self._conversation, user_a, user_b, limit)

    async def mark_read(self, from_user_id: str, to_user_id: str) -> Tuple[List[int], int]:
        """Returns (ids of the messages flipped, number of notifications cleared)."""
        return await run_in_threadpool(self._mark_read, from_user_id, to_user_id)

    async def unread_ids(self, user_id: str) -> List[int]:
        return await run_in_threadpool(self._unread_ids, user_id)

    async def unread_count(self, user_id: str) -> int:
        return await run_in_threadpool(self._unread_count, user_id)

    async def involving(self, user_id: str) -> List[MessageOut]:
        return await run_in_threadpool(self._involving, user_id)
