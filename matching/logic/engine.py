"""
Match Engine

Evaluates a student's requirement against the tutor pool. This is the primary
entry point for matching.

Pipeline flow:
1. Candidate Generation - load the tutor pool from the ProfileStore
2. Filtering - apply every filter in FILTERS (all must hold)
3. Ranking - rating desc, user id asc
4. Truncation - at most MAX_MATCHES tutors
"""

import logging
import time
from typing import Iterable, List, Optional

from .adapter import ProfileStore
from .constants import MAX_MATCHES
from .contracts import RequirementCriteria, TutorCandidate
from .filters import FILTERS
from .ranker import select_top

logger = logging.getLogger("tutorlink.matching")


def is_match(requirement: RequirementCriteria, tutor: TutorCandidate) -> bool:
    """True iff the tutor passes every filter for this requirement."""
    return all(f(requirement, tutor) for f in FILTERS)


def find_matches(
    requirement: RequirementCriteria,
    candidate_pool: Iterable[TutorCandidate],
    limit: int = MAX_MATCHES,
) -> List[TutorCandidate]:
    """
    Pure matching: no I/O, no side effects.

    Args:
        requirement: Requirement criteria
        candidate_pool: Tutor candidates to evaluate
        limit: Maximum number of tutors to return

    Returns:
        Matched tutors, ranked and truncated. Empty list when nothing matches.
    """
    matched = [tutor for tutor in candidate_pool if is_match(requirement, tutor)]
    return select_top(matched, limit)


class MatchEngine:
    """
    Main matching engine: loads the candidate pool and runs `find_matches`.
    """

    def __init__(self, store: ProfileStore, limit: int = MAX_MATCHES):
        """
        Initialize the match engine.

        Args:
            store: ProfileStore the candidate pool is read from
            limit: Result cap
        """
        self.store = store
        self.limit = limit

    async def find_matches(
        self,
        requirement: RequirementCriteria,
        candidate_pool: Optional[List[TutorCandidate]] = None,
    ) -> List[TutorCandidate]:
        """
        Match a requirement against the pool.

        Args:
            requirement: Requirement criteria
            candidate_pool: Pre-loaded pool; fetched from the store when None

        Returns:
            Ranked list of matched tutors
        """
        start_time = time.perf_counter()
        if candidate_pool is None:
            candidate_pool = await self.store.list_candidates()

        matches = find_matches(requirement, candidate_pool, self.limit)

        logger.info(
            "Requirement %s: %d/%d candidates matched in %.1fms",
            requirement.id,
            len(matches),
            len(candidate_pool),
            (time.perf_counter() - start_time) * 1000,
        )
        return matches
