"""
Ranker

Orders matched tutors deterministically and applies the result cap.
"""

from typing import List

from .contracts import TutorCandidate
from .constants import MAX_MATCHES


def rank_tutors(tutors: List[TutorCandidate]) -> List[TutorCandidate]:
    """
    Rank tutors by rating (descending), ties broken by user id (ascending).

    Args:
        tutors: Matched tutors in any order

    Returns:
        New sorted list
    """
    return sorted(tutors, key=lambda t: (-(t.rating or 0.0), t.user_id))


def select_top(tutors: List[TutorCandidate], limit: int = MAX_MATCHES) -> List[TutorCandidate]:
    """Rank and truncate to at most `limit` tutors."""
    return rank_tutors(tutors)[:limit]
