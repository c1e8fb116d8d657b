from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from notifications.payloads import NotificationPayload


class CurrentUser(BaseModel):
    id: str
    role: str = "student"  # student / tutor / admin


# ---------- Requirements ----------

class RequirementCreate(BaseModel):
    category: str
    subject: str
    location: str
    description: Optional[str] = None
    preferred_teaching_mode: str = "both"
    budget_range: Optional[str] = None  # "1000-2000", "3000+"; wins over budget_min/max
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    urgency: Optional[str] = None
    class_level: Optional[str] = None
    board: Optional[str] = None
    exam_preparation_level: Optional[str] = None
    skill_level: Optional[str] = None
    age_group: Optional[str] = None


class RequirementOut(BaseModel):
    id: str
    student_id: str
    category: str
    subject: str
    location: str
    description: Optional[str] = None
    preferred_teaching_mode: str
    budget_min: float
    budget_max: Optional[float] = None
    urgency: Optional[str] = None
    class_level: Optional[str] = None
    board: Optional[str] = None
    exam_preparation_level: Optional[str] = None
    skill_level: Optional[str] = None
    age_group: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class RequirementResponse(BaseModel):
    status: Literal["accepted", "declined"]
    message: Optional[str] = None
    proposed_rate: Optional[float] = Field(default=None, ge=0)


class MatchOut(BaseModel):
    id: int
    requirement_id: str
    tutor_id: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class MatchedRequirementOut(BaseModel):
    """A requirement as seen by a tutor it was matched to."""
    requirement: RequirementOut
    match_status: str
    has_responded: bool


# ---------- Messaging ----------

class MessageCreate(BaseModel):
    receiver_id: str
    content: str


class MessageOut(BaseModel):
    id: int
    sender_id: str
    receiver_id: str
    content: str
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationOut(BaseModel):
    participant_id: str
    last_message: str
    last_timestamp: datetime
    unread_count: int


class MarkReadResult(BaseModel):
    flipped: int


# ---------- Notifications ----------

class NotificationOut(BaseModel):
    id: int
    recipient_id: str
    type: str
    title: str
    message: Optional[str] = None
    payload: NotificationPayload
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationList(BaseModel):
    items: List[NotificationOut]
    unread: int
