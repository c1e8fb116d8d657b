"""
Requirement Validation

Turns a submitted RequirementCreate into the column values of a Requirement
row. Every check runs before anything is written; the first problem found is
raised as ValidationError.
"""

import math
from typing import Any, Dict

from models.schemas import RequirementCreate
from utils.errors import ValidationError
from .budget import resolve_budget
from .constants import KNOWN_CATEGORIES, TEACHING_MODES
from .filters import skill_rank


def _clean(value):
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_requirement(payload: RequirementCreate) -> Dict[str, Any]:
    """
    Validate a requirement submission.

    Args:
        payload: Submitted requirement fields

    Returns:
        Dict of normalized column values (without id / student_id / status)

    Raises:
        ValidationError: missing or malformed field
    """
    category = (_clean(payload.category) or "").lower()
    if category not in KNOWN_CATEGORIES:
        raise ValidationError(f"Unknown category: {payload.category!r}")

    subject = _clean(payload.subject)
    if not subject:
        raise ValidationError("subject is required")

    location = _clean(payload.location)
    if not location:
        raise ValidationError("location is required")

    mode = (_clean(payload.preferred_teaching_mode) or "both").lower()
    if mode not in TEACHING_MODES:
        raise ValidationError(f"Unknown teaching mode: {payload.preferred_teaching_mode!r}")

    budget_min, budget_max = resolve_budget(payload.budget_range, payload.budget_min, payload.budget_max)

    skill_level = _clean(payload.skill_level)
    if skill_level:
        skill_rank(skill_level)  # raises on unknown levels
        skill_level = skill_level.lower()

    return {
        "category": category,
        "subject": subject,
        "location": location,
        "description": _clean(payload.description),
        "preferred_teaching_mode": mode,
        "budget_min": budget_min,
        "budget_max": None if math.isinf(budget_max) else budget_max,
        "urgency": _clean(payload.urgency),
        "class_level": _clean(payload.class_level),
        "board": _clean(payload.board),
        "exam_preparation_level": _clean(payload.exam_preparation_level),
        "skill_level": skill_level,
        "age_group": _clean(payload.age_group),
    }
