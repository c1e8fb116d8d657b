"""
Tutor responses to a matched requirement.

A tutor that was matched to a requirement answers it once:
1. The intro message (accept only) is validated before anything is written
2. The Match moves from pending to accepted / declined; any other current
   status is rejected
3. On accept, the intro message is sent to the student through the
   MessagingService (this opens the conversation). If that send fails the
   Match goes back to pending.
4. Best effort: an "interest" Notification tells the student about the
   response
"""

import logging

from fastapi.concurrency import run_in_threadpool

from db import get_db
from messaging.service import MessagingService
from models.schemas import MatchOut, RequirementOut, RequirementResponse
from notifications.payloads import InterestPayload
from notifications.repository import MatchRepository, NotificationRepository
from realtime.event_bus import RealtimeEventBus
from realtime.events import NotificationEvent
from utils.crud_requirement import get_requirement
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger("tutorlink.matching")

RESPONSE_TITLE = "Tutor Response to Your Requirement"


def default_intro(subject: str) -> str:
    return f"Hi! I'm interested in your {subject} requirement. I'd love to help you with this."


def _load_requirement(requirement_id: str) -> RequirementOut:
    with get_db() as db:
        row = get_requirement(db, requirement_id)
        if row is None:
            raise NotFoundError(f"Requirement {requirement_id} not found")
        return RequirementOut.model_validate(row)


async def respond_to_requirement(
    requirement_id: str,
    tutor_id: str,
    response: RequirementResponse,
    *,
    matches: MatchRepository,
    notifications: NotificationRepository,
    messaging: MessagingService,
    event_bus: RealtimeEventBus,
) -> MatchOut:
    """
    Record a tutor's answer to a requirement they were matched to.

    Raises:
        NotFoundError: requirement does not exist
        PermissionDeniedError: the tutor was never matched to it
        ValidationError: the tutor already responded, or the intro message is invalid
    """
    requirement = await run_in_threadpool(_load_requirement, requirement_id)
    current = await matches.get(requirement_id, tutor_id)
    if current is None:
        raise PermissionDeniedError("Only matched tutors can respond to this requirement")
    if current.status != "pending":
        raise ValidationError(f"Already responded to this requirement ({current.status})")

    intro = None
    if response.status == "accepted":
        intro = (response.message or "").strip() or default_intro(requirement.subject)
        intro = await messaging.validate_message(tutor_id, requirement.student_id, intro)

    match = await matches.set_status(requirement_id, tutor_id, response.status)

    if intro is not None:
        try:
            await messaging.send_message(tutor_id, requirement.student_id, intro)
        except Exception:
            await matches.set_status(requirement_id, tutor_id, "pending", expected=response.status)
            raise
        text = (
            f"A tutor has shown interest in your {requirement.subject} requirement. "
            "Check your messages to continue the conversation."
        )
    else:
        text = f"A tutor has declined your {requirement.subject} requirement."

    try:
        notification = await notifications.create(
            recipient_id=requirement.student_id,
            title=RESPONSE_TITLE,
            message=text,
            payload=InterestPayload(
                requirement_id=requirement_id,
                tutor_id=tutor_id,
                status=response.status,
                proposed_rate=response.proposed_rate,
                message=response.message,
            ),
        )
        await event_bus.publish(NotificationEvent(notification=notification))
    except Exception:
        logger.warning("Could not notify student %s of response on %s", requirement.student_id, requirement_id, exc_info=True)

    logger.info("Tutor %s %s requirement %s", tutor_id, response.status, requirement_id)
    return match
