"""
Notification Dispatcher

Fans a matched requirement out to its tutors. For every tutor, two writes run
side by side and independently:

1. a "new_requirement" Notification for the tutor
2. a pending Match row for (requirement, tutor)

Neither write is coupled to the other: one failing does not roll back or skip
the other, and one tutor failing does not stop the batch. Transient store
errors are retried with bounded backoff; whatever still fails is recorded in
the DispatchResult. Tutors are processed by a bounded worker pool.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from config import (
    DISPATCH_BACKOFF_BASE,
    DISPATCH_BACKOFF_MAX,
    DISPATCH_CONCURRENCY,
    DISPATCH_MAX_ATTEMPTS,
)
from matching.logic.budget import format_budget
from matching.logic.contracts import DispatchFailure, DispatchResult, RequirementCriteria, TutorCandidate
from realtime.event_bus import RealtimeEventBus
from realtime.events import NotificationEvent
from utils.retry import retry_transient
from .payloads import NewRequirementPayload
from .repository import MatchRepository, NotificationRepository

logger = logging.getLogger("tutorlink.dispatch")

NEW_REQUIREMENT_TITLE = "New Requirement Available!"


class NotificationDispatcher:
    def __init__(
        self,
        matches: MatchRepository,
        notifications: NotificationRepository,
        event_bus: Optional[RealtimeEventBus] = None,
        concurrency: int = DISPATCH_CONCURRENCY,
        max_attempts: int = DISPATCH_MAX_ATTEMPTS,
        backoff_base: float = DISPATCH_BACKOFF_BASE,
        backoff_max: float = DISPATCH_BACKOFF_MAX,
    ):
        """
        Args:
            matches: Match persistence
            notifications: Notification persistence
            event_bus: Where new notifications are published for online tutors
            concurrency: Max tutors processed at once
            max_attempts: Retry budget per write for transient errors
            backoff_base: First retry delay in seconds
            backoff_max: Retry delay cap in seconds
        """
        self.matches = matches
        self.notifications = notifications
        self.event_bus = event_bus
        self.concurrency = max(1, concurrency)
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

    async def dispatch(self, requirement: RequirementCriteria, matched_tutors: Sequence[TutorCandidate]) -> DispatchResult:
        """
        Create one notification and one match per tutor.

        Args:
            requirement: The matched requirement
            matched_tutors: Output of the MatchEngine

        Returns:
            DispatchResult with the tutors notified and every failed write
        """
        result = DispatchResult(requirement_id=requirement.id)
        if not matched_tutors:
            return result

        payload = NewRequirementPayload(
            requirement_id=requirement.id,
            student_id=requirement.student_id,
            subject=requirement.subject,
            location=requirement.location,
            budget=format_budget(requirement.budget_min, requirement.budget_max),
            urgency=requirement.urgency,
        )
        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(tutor: TutorCandidate):
            async with semaphore:
                await self._dispatch_one(requirement, payload, tutor, result)

        # Unique tutors only; a duplicate would just hit the match constraint
        tutors = list({t.user_id: t for t in matched_tutors}.values())
        await asyncio.gather(*(worker(t) for t in tutors))

        logger.info(
            "Dispatched requirement %s: %d notified, %d matches created, %d existing, %d failures",
            requirement.id,
            len(result.sent),
            result.matches_created,
            result.matches_existing,
            len(result.failed),
        )
        return result

    async def _dispatch_one(
        self,
        requirement: RequirementCriteria,
        payload: NewRequirementPayload,
        tutor: TutorCandidate,
        result: DispatchResult,
    ) -> None:
        outcomes = await asyncio.gather(
            self._retry(lambda: self._notify(requirement, payload, tutor), f"notify {tutor.user_id}"),
            self._retry(lambda: self.matches.create_pending(requirement.id, tutor.user_id), f"match {tutor.user_id}"),
            return_exceptions=True,
        )
        notified, matched = outcomes

        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

        if isinstance(notified, Exception):
            self._record_failure(result, requirement, tutor, "notification", notified)
        else:
            result.sent.append(tutor.user_id)
            if self.event_bus is not None:
                await self.event_bus.publish(NotificationEvent(notification=notified))

        if isinstance(matched, Exception):
            self._record_failure(result, requirement, tutor, "match", matched)
        else:
            _, created = matched
            if created:
                result.matches_created += 1
            else:
                result.matches_existing += 1

    async def _notify(self, requirement: RequirementCriteria, payload: NewRequirementPayload, tutor: TutorCandidate):
        return await self.notifications.create(
            recipient_id=tutor.user_id,
            title=NEW_REQUIREMENT_TITLE,
            message=f"A student is looking for {requirement.subject} tutoring.",
            payload=payload,
        )

    async def _retry(self, operation, label: str):
        return await retry_transient(
            operation,
            attempts=self.max_attempts,
            base_delay=self.backoff_base,
            max_delay=self.backoff_max,
            label=label,
        )

    @staticmethod
    def _record_failure(result: DispatchResult, requirement, tutor, step: str, error: Exception) -> None:
        logger.error(
            "Dispatch %s for tutor %s on requirement %s failed: %s",
            step, tutor.user_id, requirement.id, error,
        )
        result.failed.append(DispatchFailure(tutor_id=tutor.user_id, step=step, error=str(error)))


def failed_tutors(result: DispatchResult) -> List[str]:
    """Distinct tutors with at least one failed write."""
    return sorted({f.tutor_id for f in result.failed})
