"""
ProfileStore Adapters

The ProfileStore is owned by the profile editors; the core only reads from it.
Two backends are supported:

- SqlProfileStore: `tutor_profiles` / `student_profiles` tables
- MongoProfileStore: the `tutor_profiles` / `student_profiles` collections
  (async, through Motor)

Both return `TutorCandidate` projections so the engine never sees storage
types.
"""

from typing import Any, Dict, List, Optional, Protocol

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from sqlalchemy import select

from db import get_db
from models.models import StudentProfile, TutorProfile
from utils.errors import TransientStoreError
from .contracts import TutorCandidate


class ProfileSummary(BaseModel):
    """Who a user is, as far as notifications and messaging care."""
    user_id: str
    role: str  # tutor / student
    full_name: Optional[str] = None


class ProfileStore(Protocol):
    """Read operations the core needs from the profile store."""

    async def list_candidates(self) -> List[TutorCandidate]:
        ...

    async def get_tutor(self, user_id: str) -> Optional[TutorCandidate]:
        ...

    async def get_profile(self, user_id: str) -> Optional[ProfileSummary]:
        ...


# =============================================================================
# SQL
# =============================================================================

class SqlProfileStore:
    """Reads profiles from the relational store. Blocking calls run in the threadpool."""

    def _list_candidates(self) -> List[TutorCandidate]:
        with get_db() as db:
            # Hard filters are pushed into the query; the engine re-checks them.
            rows = db.execute(
                select(TutorProfile).where(TutorProfile.verified.is_(True), TutorProfile.active.is_(True))
            ).scalars().all()
            return [_tutor_from_row(row) for row in rows]

    def _get_tutor(self, user_id: str) -> Optional[TutorCandidate]:
        with get_db() as db:
            row = db.get(TutorProfile, user_id)
            return _tutor_from_row(row) if row else None

    def _get_profile(self, user_id: str) -> Optional[ProfileSummary]:
        with get_db() as db:
            tutor = db.get(TutorProfile, user_id)
            if tutor:
                return ProfileSummary(user_id=tutor.user_id, role="tutor", full_name=tutor.full_name)
            student = db.get(StudentProfile, user_id)
            if student:
                return ProfileSummary(user_id=student.user_id, role="student", full_name=student.full_name)
            return None

    async def list_candidates(self) -> List[TutorCandidate]:
        return await run_in_threadpool(self._list_candidates)

    async def get_tutor(self, user_id: str) -> Optional[TutorCandidate]:
        return await run_in_threadpool(self._get_tutor, user_id)

    async def get_profile(self, user_id: str) -> Optional[ProfileSummary]:
        return await run_in_threadpool(self._get_profile, user_id)


def _tutor_from_row(row: TutorProfile) -> TutorCandidate:
    return TutorCandidate(
        user_id=row.user_id,
        full_name=row.full_name,
        subjects=row.subjects or [],
        specializations=row.specializations or [],
        teaching_mode=row.teaching_mode,
        hourly_rate_min=row.hourly_rate_min or 0.0,
        hourly_rate_max=row.hourly_rate_max or 0.0,
        verified=bool(row.verified),
        active=bool(row.active),
        city=row.city,
        area=row.area,
        academic_levels=row.academic_levels or [],
        boards=row.boards or [],
        language_levels=row.language_levels or [],
        exam_preparation_levels=row.exam_preparation_levels or [],
        age_groups=row.age_groups or [],
        skill_levels=row.skill_levels or [],
        rating=row.rating or 0.0,
    )


# =============================================================================
# MONGO
# =============================================================================

class MongoProfileStore:
    """
    Reads profiles from MongoDB collections.

    Args:
        tutors: Motor collection holding tutor profile documents
        students: Motor collection holding student profile documents
    """

    def __init__(self, tutors=None, students=None):
        if tutors is None or students is None:
            from db_mongo import student_profiles_collection, tutor_profiles_collection
            tutors = tutors if tutors is not None else tutor_profiles_collection
            students = students if students is not None else student_profiles_collection
        self.tutors = tutors
        self.students = students

    async def list_candidates(self) -> List[TutorCandidate]:
        try:
            cursor = self.tutors.find({"verified": True, "active": True}, {"_id": 0})
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise TransientStoreError(f"Profile store unavailable: {e}") from e
        return [_tutor_from_doc(doc) for doc in docs]

    async def get_tutor(self, user_id: str) -> Optional[TutorCandidate]:
        try:
            doc = await self.tutors.find_one({"user_id": user_id}, {"_id": 0})
        except PyMongoError as e:
            raise TransientStoreError(f"Profile store unavailable: {e}") from e
        return _tutor_from_doc(doc) if doc else None

    async def get_profile(self, user_id: str) -> Optional[ProfileSummary]:
        try:
            tutor = await self.tutors.find_one({"user_id": user_id}, {"_id": 0})
            if tutor:
                return ProfileSummary(user_id=user_id, role="tutor", full_name=tutor.get("full_name"))
            student = await self.students.find_one({"user_id": user_id}, {"_id": 0})
        except PyMongoError as e:
            raise TransientStoreError(f"Profile store unavailable: {e}") from e
        if student:
            return ProfileSummary(user_id=user_id, role="student", full_name=student.get("full_name"))
        return None


def _tutor_from_doc(doc: Dict[str, Any]) -> TutorCandidate:
    # Documents may carry editor-only fields; keep just the projection
    fields = {k: v for k, v in doc.items() if k in TutorCandidate.model_fields and v is not None}
    return TutorCandidate(**fields)
