"""
Notification Payloads

Each notification type carries its own typed payload. The `kind` field is the
discriminator and always equals the notification's `type` column, so a stored
row can be validated back into the right variant.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class NewRequirementPayload(BaseModel):
    """Sent to every tutor a requirement was matched against."""
    kind: Literal["new_requirement"] = "new_requirement"
    requirement_id: str
    student_id: str
    subject: str
    location: str
    budget: str  # human readable, e.g. "1000-2000" or "3000+"
    urgency: Optional[str] = None


class MessagePayload(BaseModel):
    kind: Literal["message"] = "message"
    sender_id: str
    message_id: int


class InterestPayload(BaseModel):
    """Sent to a student when a matched tutor responds to their requirement."""
    kind: Literal["interest"] = "interest"
    requirement_id: str
    tutor_id: str
    status: str  # accepted / declined
    proposed_rate: Optional[float] = None
    message: Optional[str] = None


NotificationPayload = Annotated[
    Union[NewRequirementPayload, MessagePayload, InterestPayload],
    Field(discriminator="kind"),
]

_payload_adapter = TypeAdapter(NotificationPayload)


def parse_payload(raw: dict):
    """Validate a stored JSON payload into its typed variant."""
    return _payload_adapter.validate_python(raw)
