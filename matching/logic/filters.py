"""
Match Filters

Individual predicates for each matching dimension. Every filter takes the
requirement criteria and one tutor candidate and answers True/False; a tutor
is a match only when all of them hold. String comparisons are
case-insensitive and whitespace-trimmed.
"""

import math
from typing import Callable, Iterable, List, Optional

from .contracts import RequirementCriteria, TutorCandidate
from .constants import (
    ACADEMIC_CATEGORY,
    AGE_BOUNDED_CATEGORIES,
    ANY_LOCATION,
    ANY_TEACHING_MODE,
    EXAM_CATEGORY,
    SKILL_CATEGORIES,
    SKILL_LEVEL_MAP,
    UNKNOWN_SKILL_RANK,
)
from utils.errors import ValidationError

MatchFilter = Callable[[RequirementCriteria, TutorCandidate], bool]


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _norm_set(values: Iterable[str]) -> set:
    return {_norm(v) for v in values or [] if _norm(v)}


# =============================================================================
# ORDINAL SKILL LEVELS
# =============================================================================

def skill_rank(level: str) -> int:
    """
    Rank a requirement's skill level.

    Raises:
        ValidationError: the level is not in SKILL_LEVEL_MAP
    """
    key = _norm(level)
    if key not in SKILL_LEVEL_MAP:
        raise ValidationError(f"Unknown skill level: {level!r}")
    return SKILL_LEVEL_MAP[key]


def max_skill_rank(levels: Iterable[str]) -> int:
    """Highest rank among a tutor's levels; unknown strings rank 0."""
    return max(
        (SKILL_LEVEL_MAP.get(_norm(level), UNKNOWN_SKILL_RANK) for level in levels or []),
        default=UNKNOWN_SKILL_RANK,
    )


# =============================================================================
# FILTERS
# =============================================================================

def is_eligible(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    """Hard filters: only verified, active tutors are ever matched."""
    return tutor.verified is True and tutor.active is True


def subject_overlaps(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    subject = _norm(requirement.subject)
    if not subject:
        return False
    return subject in _norm_set(tutor.subjects) or subject in _norm_set(tutor.specializations)


def location_matches(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    location = _norm(requirement.location)
    if location == ANY_LOCATION:
        return True
    return location in (_norm(tutor.city), _norm(tutor.area))


def teaching_mode_matches(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    mode = _norm(requirement.preferred_teaching_mode)
    if mode == ANY_TEACHING_MODE:
        return True
    return _norm(tutor.teaching_mode) == mode


def budget_overlaps(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    """
    The tutor's hourly band and the student's budget band intersect.

    A tutor maximum below the tutor's own minimum (profiles store 0 when no
    group fee is given) means no upper rate. An open-ended budget ("3000+")
    has budget_max = inf, so any tutor whose minimum is at or above
    budget_min qualifies regardless of their maximum.
    """
    rate_max = tutor.hourly_rate_max
    if rate_max < tutor.hourly_rate_min:
        rate_max = math.inf
    return tutor.hourly_rate_min <= requirement.budget_max and rate_max >= requirement.budget_min


def category_matches(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    """
    Category-specific checks.

    - academic: class level and board must both be offered (each check is
      applied only when the requirement states that field)
    - skill categories: the tutor's best level must reach the requested level
    - age-bounded categories: the learner's age group must be taught
    - exam preparation: the requested exam level must be offered
    Other categories add no constraint.
    """
    category = _norm(requirement.category)

    if category == ACADEMIC_CATEGORY:
        if requirement.class_level and _norm(requirement.class_level) not in _norm_set(tutor.academic_levels):
            return False
        if requirement.board and _norm(requirement.board) not in _norm_set(tutor.boards):
            return False
        return True

    if category in SKILL_CATEGORIES:
        if not requirement.skill_level:
            return True
        levels: List[str] = list(tutor.skill_levels)
        if category == "languages":
            levels.extend(tutor.language_levels)
        return max_skill_rank(levels) >= skill_rank(requirement.skill_level)

    if category in AGE_BOUNDED_CATEGORIES:
        if not requirement.age_group:
            return True
        return _norm(requirement.age_group) in _norm_set(tutor.age_groups)

    if category == EXAM_CATEGORY:
        if not requirement.exam_preparation_level:
            return True
        return _norm(requirement.exam_preparation_level) in _norm_set(tutor.exam_preparation_levels)

    return True


# Evaluation order: cheap hard filters first
FILTERS: List[MatchFilter] = [
    is_eligible,
    subject_overlaps,
    location_matches,
    teaching_mode_matches,
    budget_overlaps,
    category_matches,
]


def failed_filters(requirement: RequirementCriteria, tutor: TutorCandidate) -> List[str]:
    """Names of the filters a tutor fails. Useful when explaining a non-match."""
    return [f.__name__ for f in FILTERS if not f(requirement, tutor)]
