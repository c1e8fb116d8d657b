import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ─────────────────────────────────────────────
# ProfileStore tables (owned by the profile editors, read-only here)
# ─────────────────────────────────────────────
class TutorProfile(Base):
    __tablename__ = "tutor_profiles"
    user_id = Column(String(64), primary_key=True)
    full_name = Column(String(255))
    subjects = Column(JSON, default=list)
    specializations = Column(JSON, default=list)
    teaching_mode = Column(String(16))  # online / offline / both
    hourly_rate_min = Column(Float, default=0)
    hourly_rate_max = Column(Float, default=0)
    verified = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    city = Column(String(128))
    area = Column(String(128))
    academic_levels = Column(JSON, default=list)
    boards = Column(JSON, default=list)
    language_levels = Column(JSON, default=list)
    exam_preparation_levels = Column(JSON, default=list)
    age_groups = Column(JSON, default=list)
    skill_levels = Column(JSON, default=list)
    rating = Column(Float, default=0)


class StudentProfile(Base):
    __tablename__ = "student_profiles"
    user_id = Column(String(64), primary_key=True)
    full_name = Column(String(255))
    city = Column(String(128))
    area = Column(String(128))


# ─────────────────────────────────────────────
# Core tables
# ─────────────────────────────────────────────
class Requirement(Base):
    __tablename__ = "requirements"
    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(64), nullable=False, index=True)
    category = Column(String(32), nullable=False)
    subject = Column(String(128), nullable=False)
    location = Column(String(128), nullable=False)
    description = Column(Text)
    preferred_teaching_mode = Column(String(16), nullable=False, default="both")
    budget_min = Column(Float, nullable=False, default=0)
    budget_max = Column(Float, nullable=True)  # NULL = open-ended ("3000+")
    urgency = Column(String(32))
    class_level = Column(String(64))
    board = Column(String(64))
    exam_preparation_level = Column(String(64))
    skill_level = Column(String(32))
    age_group = Column(String(32))
    status = Column(String(16), nullable=False, default="active")  # active, closed
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    matches = relationship("Match", back_populates="requirement")


class Match(Base):
    __tablename__ = "requirement_tutor_matches"
    id = Column(Integer, primary_key=True, autoincrement=True)
    requirement_id = Column(String(36), ForeignKey("requirements.id"), nullable=False)
    tutor_id = Column(String(64), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="pending")  # pending, accepted, declined
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    requirement = relationship("Requirement", back_populates="matches")

    __table_args__ = (
        UniqueConstraint("requirement_id", "tutor_id", name="uq_requirement_tutor"),
    )


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(String(64), nullable=False)
    type = Column(String(32), nullable=False)  # new_requirement, message, interest
    title = Column(String(255), nullable=False)
    message = Column(Text)
    payload = Column(JSON, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_notification_recipient", "recipient_id", "read", "created_at"),
    )


class Message(Base):
    __tablename__ = "messages"
    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(String(64), nullable=False)
    receiver_id = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_message_pair_time", "sender_id", "receiver_id", "created_at"),
        Index("idx_message_unread", "receiver_id", "read"),
    )
