"""
Matching Engine Constants

Category groupings, the ordinal skill-level table and result caps used by the
matching engine. All values are deterministic; nothing here is learned.
"""

import math
from typing import Dict, FrozenSet

# =============================================================================
# ORDINAL SKILL LEVELS
# =============================================================================

# Qualitative level -> rank. Lookups are case-insensitive (keys are lowercase).
SKILL_LEVEL_MAP: Dict[str, int] = {
    "beginner": 1,
    "elementary": 1,
    "intermediate": 2,
    "upper_intermediate": 2,
    "advanced": 3,
    "expert": 4,
}

# Rank given to a tutor level string that is not in the table
UNKNOWN_SKILL_RANK = 0

# =============================================================================
# CATEGORY GROUPS
# =============================================================================

ACADEMIC_CATEGORY = "academic"

# Categories compared on the ordinal skill scale
SKILL_CATEGORIES: FrozenSet[str] = frozenset({
    "languages",
    "skills",
    "music",
    "sports",
    "technology",
    "business",
})

# Categories where the tutor must teach the learner's age group
AGE_BOUNDED_CATEGORIES: FrozenSet[str] = frozenset({
    "early_learning",
    "arts",
    "hobbies",
})

# Competitive exam coaching: requirement.exam_preparation_level must be offered
EXAM_CATEGORY = "exam_preparation"

KNOWN_CATEGORIES: FrozenSet[str] = (
    frozenset({ACADEMIC_CATEGORY, EXAM_CATEGORY})
    | SKILL_CATEGORIES
    | AGE_BOUNDED_CATEGORIES
    | frozenset({"other"})
)

# =============================================================================
# LOCATION / MODE WILDCARDS
# =============================================================================

ANY_LOCATION = "other"
ANY_TEACHING_MODE = "both"
TEACHING_MODES: FrozenSet[str] = frozenset({"online", "offline", "both"})

# =============================================================================
# BUDGET
# =============================================================================

# Upper bound used for open-ended ranges such as "3000+"
UNBOUNDED_BUDGET = math.inf

# =============================================================================
# RESULT LIMITS
# =============================================================================

MAX_MATCHES = 50
