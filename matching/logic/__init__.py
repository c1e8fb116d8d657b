"""
Matching Logic Module

Provides the deterministic requirement -> tutor matching engine.
"""

from .contracts import (
    RequirementCriteria,
    TutorCandidate,
    DispatchResult,
    DispatchFailure,
    DispatchReport,
)
from .engine import MatchEngine, find_matches, is_match
from .budget import parse_budget_range, format_budget
from .constants import SKILL_LEVEL_MAP, MAX_MATCHES

__all__ = [
    # Main engine
    "MatchEngine",
    "find_matches",
    "is_match",

    # Contracts
    "RequirementCriteria",
    "TutorCandidate",
    "DispatchResult",
    "DispatchFailure",
    "DispatchReport",

    # Helpers
    "parse_budget_range",
    "format_budget",
    "SKILL_LEVEL_MAP",
    "MAX_MATCHES",
]
