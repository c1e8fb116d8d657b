"""
Data Contracts for the Matching Engine

Defines Pydantic models for the requirement criteria (input), the tutor
candidate projection read from the ProfileStore, and the dispatch report
(output). These contracts are the boundary between the pure engine and the
persistence / HTTP layers.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .constants import UNBOUNDED_BUDGET


# =============================================================================
# INPUT CONTRACTS
# =============================================================================

class RequirementCriteria(BaseModel):
    """
    The matchable view of a student's Requirement.

    Built from a `models.models.Requirement` row via `from_row`. An open-ended
    budget is carried as `budget_max = inf` so the overlap check needs no
    special case.
    """
    id: str
    student_id: str
    category: str
    subject: str
    location: str
    preferred_teaching_mode: str = "both"
    budget_min: float = 0.0
    budget_max: float = UNBOUNDED_BUDGET
    urgency: Optional[str] = None
    status: str = "active"

    # Category-specific fields
    class_level: Optional[str] = None
    board: Optional[str] = None
    exam_preparation_level: Optional[str] = None
    skill_level: Optional[str] = None
    age_group: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "RequirementCriteria":
        return cls(
            id=row.id,
            student_id=row.student_id,
            category=row.category,
            subject=row.subject,
            location=row.location,
            preferred_teaching_mode=row.preferred_teaching_mode or "both",
            budget_min=row.budget_min or 0.0,
            budget_max=UNBOUNDED_BUDGET if row.budget_max is None else row.budget_max,
            urgency=row.urgency,
            status=row.status,
            class_level=row.class_level,
            board=row.board,
            exam_preparation_level=row.exam_preparation_level,
            skill_level=row.skill_level,
            age_group=row.age_group,
        )


class TutorCandidate(BaseModel):
    """
    Read-only projection of a tutor profile.
    Represents one entry of the candidate pool the engine filters.
    """
    user_id: str
    full_name: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    specializations: List[str] = Field(default_factory=list)
    teaching_mode: Optional[str] = None
    hourly_rate_min: float = 0.0
    hourly_rate_max: float = 0.0
    verified: bool = False
    active: bool = False
    city: Optional[str] = None
    area: Optional[str] = None
    academic_levels: List[str] = Field(default_factory=list)
    boards: List[str] = Field(default_factory=list)
    language_levels: List[str] = Field(default_factory=list)
    exam_preparation_levels: List[str] = Field(default_factory=list)
    age_groups: List[str] = Field(default_factory=list)
    skill_levels: List[str] = Field(default_factory=list)
    rating: float = 0.0

    class Config:
        from_attributes = True


# =============================================================================
# OUTPUT CONTRACTS
# =============================================================================

class DispatchFailure(BaseModel):
    """One failed write for one tutor."""
    tutor_id: str
    step: str  # "notification" or "match"
    error: str


class DispatchResult(BaseModel):
    """
    Outcome of fanning a requirement out to its matched tutors.

    `sent` lists tutors whose notification was written. A duplicate Match row
    on re-dispatch counts as `matches_existing`, not as a failure.
    """
    requirement_id: str
    sent: List[str] = Field(default_factory=list)
    failed: List[DispatchFailure] = Field(default_factory=list)
    matches_created: int = 0
    matches_existing: int = 0


class DispatchReport(BaseModel):
    """Summary returned by a dispatch job run."""
    requirement_id: str
    status: str  # completed / skipped
    matched_count: int = 0
    dispatched_count: int = 0
    failed_count: int = 0

    def to_response(self) -> dict:
        return {
            "requirementId": self.requirement_id,
            "status": self.status,
            "matchedCount": self.matched_count,
            "dispatchedCount": self.dispatched_count,
            "failedCount": self.failed_count,
        }
