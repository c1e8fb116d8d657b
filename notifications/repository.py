"""
Match and Notification Repositories

Thin persistence wrappers around the `requirement_tutor_matches` and
`notifications` tables. Each write runs in its own session so a failed insert
for one tutor can never roll back another tutor's rows. Blocking calls run in
the threadpool; callers get detached Pydantic models back.
"""

from typing import List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import get_db
from models.models import Match, Notification, Requirement
from models.schemas import MatchOut, NotificationOut, RequirementOut
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError

MATCH_STATUSES = ("pending", "accepted", "declined")


class MatchRepository:
    """Persists one Match per (requirement, tutor). Uniqueness is a DB constraint."""

    def _create_pending(self, requirement_id: str, tutor_id: str) -> Tuple[MatchOut, bool]:
        try:
            with get_db() as db:
                match = Match(requirement_id=requirement_id, tutor_id=tutor_id, status="pending")
                db.add(match)
                db.flush()
                return MatchOut.model_validate(match), True
        except IntegrityError as e:
            # Lost the race (or a re-dispatch): the row already exists
            existing = self._get(requirement_id, tutor_id)
            if existing is None:
                raise NotFoundError(f"Requirement {requirement_id} does not exist") from e
            return existing, False

    def _get(self, requirement_id: str, tutor_id: str) -> Optional[MatchOut]:
        with get_db() as db:
            row = db.execute(
                select(Match).where(Match.requirement_id == requirement_id, Match.tutor_id == tutor_id)
            ).scalar_one_or_none()
            return MatchOut.model_validate(row) if row else None

    def _set_status(self, requirement_id: str, tutor_id: str, status: str, expected: str) -> MatchOut:
        if status not in MATCH_STATUSES:
            raise ValidationError(f"Unknown match status: {status!r}")
        with get_db() as db:
            updated = db.execute(
                update(Match)
                .where(
                    Match.requirement_id == requirement_id,
                    Match.tutor_id == tutor_id,
                    Match.status == expected,
                )
                .values(status=status)
                .returning(Match.id)
            ).scalar_one_or_none()
            row = db.execute(
                select(Match).where(Match.requirement_id == requirement_id, Match.tutor_id == tutor_id)
            ).scalar_one_or_none()
            if row is None:
                raise NotFoundError(f"Tutor {tutor_id} was not matched to requirement {requirement_id}")
            if updated is None:
                raise ValidationError(f"Match is already {row.status}")
            return MatchOut.model_validate(row)

    def _list_for_requirement(self, requirement_id: str) -> List[MatchOut]:
        with get_db() as db:
            rows = db.execute(
                select(Match).where(Match.requirement_id == requirement_id).order_by(Match.id)
            ).scalars().all()
            return [MatchOut.model_validate(r) for r in rows]

    def _list_for_tutor(self, tutor_id: str) -> List[Tuple[MatchOut, RequirementOut]]:
        with get_db() as db:
            rows = db.execute(
                select(Match, Requirement)
                .join(Requirement, Requirement.id == Match.requirement_id)
                .where(Match.tutor_id == tutor_id)
                .order_by(Requirement.created_at.desc(), Match.id.desc())
            ).all()
            return [(MatchOut.model_validate(m), RequirementOut.model_validate(r)) for m, r in rows]

    async def create_pending(self, requirement_id: str, tutor_id: str) -> Tuple[MatchOut, bool]:
        """Insert a pending match. Returns (match, created); created is False for an existing row."""
        return await run_in_threadpool(self._create_pending, requirement_id, tutor_id)

    async def get(self, requirement_id: str, tutor_id: str) -> Optional[MatchOut]:
        return await run_in_threadpool(self._get, requirement_id, tutor_id)

    async def set_status(
        self, requirement_id: str, tutor_id: str, status: str, expected: str = "pending"
    ) -> MatchOut:
        """Move a match from `expected` to `status`. ValidationError if it is in any other state."""
        return await run_in_threadpool(self._set_status, requirement_id, tutor_id, status, expected)

    async def list_for_requirement(self, requirement_id: str) -> List[MatchOut]:
        return await run_in_threadpool(self._list_for_requirement, requirement_id)

    async def list_for_tutor(self, tutor_id: str) -> List[Tuple[MatchOut, RequirementOut]]:
        """The tutor's matches with their requirements, newest requirement first."""
        return await run_in_threadpool(self._list_for_tutor, tutor_id)


class NotificationRepository:
    """Inserts and reads notifications. Only the `read` flag is ever updated."""

    def _create(self, recipient_id: str, title: str, message: str, payload) -> NotificationOut:
        with get_db() as db:
            row = Notification(
                recipient_id=recipient_id,
                type=payload.kind,
                title=title,
                message=message,
                payload=payload.model_dump(mode="json"),
                read=False,
            )
            db.add(row)
            db.flush()
            return NotificationOut.model_validate(row)

    def _list(self, recipient_id: str, unread_only: bool, limit: int) -> List[NotificationOut]:
        with get_db() as db:
            query = select(Notification).where(Notification.recipient_id == recipient_id)
            if unread_only:
                query = query.where(Notification.read.is_(False))
            rows = db.execute(
                query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
            ).scalars().all()
            return [NotificationOut.model_validate(r) for r in rows]

    def _count_unread(self, recipient_id: str) -> int:
        with get_db() as db:
            return db.execute(
                select(func.count(Notification.id)).where(
                    Notification.recipient_id == recipient_id, Notification.read.is_(False)
                )
            ).scalar_one()

    def _mark_read(self, notification_id: int, actor_id: str) -> NotificationOut:
        with get_db() as db:
            row = db.get(Notification, notification_id)
            if row is None:
                raise NotFoundError(f"Notification {notification_id} not found")
            if row.recipient_id != actor_id:
                raise PermissionDeniedError("Only the recipient can mark a notification as read")
            row.read = True
            db.flush()
            return NotificationOut.model_validate(row)

    async def create(self, recipient_id: str, title: str, message: str, payload) -> NotificationOut:
        return await run_in_threadpool(self._create, recipient_id, title, message, payload)

    async def list_for_recipient(self, recipient_id: str, unread_only: bool = False, limit: int = 50) -> List[NotificationOut]:
        return await run_in_threadpool(self._list, recipient_id, unread_only, limit)

    async def count_unread(self, recipient_id: str) -> int:
        return await run_in_threadpool(self._count_unread, recipient_id)

    async def mark_read(self, notification_id: int, actor_id: str) -> NotificationOut:
        return await run_in_threadpool(self._mark_read, notification_id, actor_id)


def mark_message_notifications_read(db: Session, recipient_id: str, sender_id: str) -> int:
    """
    Flag the recipient's unread "message" notifications from one sender as read.

    Runs inside the caller's session so it commits together with the message
    read flags.
    """
    rows = db.execute(
        select(Notification.id, Notification.payload).where(
            Notification.recipient_id == recipient_id,
            Notification.type == "message",
            Notification.read.is_(False),
        )
    ).all()
    ids = [row.id for row in rows if (row.payload or {}).get("sender_id") == sender_id]
    if ids:
        db.execute(update(Notification).where(Notification.id.in_(ids)).values(read=True))
    return len(ids)
