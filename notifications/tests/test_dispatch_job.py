"""
Tests for the dispatch job: status checks, requirement lifecycle, reporting.
"""

import asyncio

import pytest

from db import get_db
from matching.logic.adapter import SqlProfileStore
from matching.logic.engine import MatchEngine
from models.models import Requirement
from notifications.dispatcher import NotificationDispatcher
from notifications.jobs import dispatch_in_background, run_dispatch_job
from notifications.repository import MatchRepository, NotificationRepository
from utils.errors import NotFoundError


def _requirement(status="active", **overrides) -> str:
    fields = dict(
        student_id="student-1",
        category="academic",
        subject="mathematics",
        location="mumbai",
        preferred_teaching_mode="online",
        budget_min=1000,
        budget_max=2000,
        status=status,
    )
    fields.update(overrides)
    with get_db() as db:
        row = Requirement(**fields)
        db.add(row)
        db.flush()
        return row.id


def _status(requirement_id: str) -> str:
    with get_db() as db:
        return db.get(Requirement, requirement_id).status


@pytest.fixture
def engine():
    return MatchEngine(SqlProfileStore())


@pytest.fixture
def dispatcher():
    return NotificationDispatcher(MatchRepository(), NotificationRepository(), backoff_base=0)


def test_completed_job_closes_requirement(seed_tutor, engine, dispatcher):
    seed_tutor("tutor-a")
    seed_tutor("tutor-b", rating=4.9)
    requirement_id = _requirement()

    report = asyncio.run(run_dispatch_job(requirement_id, engine, dispatcher))

    assert report.to_response() == {
        "requirementId": requirement_id,
        "status": "completed",
        "matchedCount": 2,
        "dispatchedCount": 2,
        "failedCount": 0,
    }
    assert _status(requirement_id) == "closed"


def test_no_matches_still_completes(engine, dispatcher):
    requirement_id = _requirement(subject="sanskrit")

    report = asyncio.run(run_dispatch_job(requirement_id, engine, dispatcher))

    assert (report.status, report.matched_count) == ("completed", 0)


def test_closed_requirement_is_skipped(seed_tutor, engine, dispatcher):
    seed_tutor("tutor-a")
    requirement_id = _requirement(status="closed")

    report = asyncio.run(run_dispatch_job(requirement_id, engine, dispatcher))

    assert report.status == "skipped"
    assert asyncio.run(MatchRepository().list_for_requirement(requirement_id)) == []


class ClosingEngine(MatchEngine):
    """Withdraws the requirement while matching is in progress."""

    async def find_matches(self, requirement, candidate_pool=None):
        with get_db() as db:
            db.get(Requirement, requirement.id).status = "closed"
        return await super().find_matches(requirement, candidate_pool)


def test_requirement_closed_during_matching_is_not_dispatched(seed_tutor, dispatcher):
    seed_tutor("tutor-a")
    requirement_id = _requirement()

    report = asyncio.run(run_dispatch_job(requirement_id, ClosingEngine(SqlProfileStore()), dispatcher))

    assert report.status == "skipped"
    assert report.dispatched_count == 0
    assert asyncio.run(NotificationRepository().list_for_recipient("tutor-a")) == []


class BrokenNotifications(NotificationRepository):
    async def create(self, recipient_id, title, message, payload):
        raise RuntimeError("insert failed")


def test_failures_keep_requirement_active_for_retry(seed_tutor, engine):
    seed_tutor("tutor-a")
    requirement_id = _requirement()
    broken = NotificationDispatcher(MatchRepository(), BrokenNotifications(), backoff_base=0)

    report = asyncio.run(run_dispatch_job(requirement_id, engine, broken))

    assert (report.dispatched_count, report.failed_count) == (0, 1)
    assert _status(requirement_id) == "active"

    # Rerun with a healthy dispatcher: the match is reused, not duplicated
    healthy = NotificationDispatcher(MatchRepository(), NotificationRepository(), backoff_base=0)
    rerun = asyncio.run(run_dispatch_job(requirement_id, engine, healthy))

    assert (rerun.dispatched_count, rerun.failed_count) == (1, 0)
    assert len(asyncio.run(MatchRepository().list_for_requirement(requirement_id))) == 1
    assert _status(requirement_id) == "closed"


def test_unknown_requirement(engine, dispatcher):
    with pytest.raises(NotFoundError):
        asyncio.run(run_dispatch_job("missing", engine, dispatcher))


def test_background_entry_point_never_raises(engine, dispatcher, caplog):
    asyncio.run(dispatch_in_background("missing", engine, dispatcher))
    assert "Background dispatch for requirement missing failed" in caplog.text
