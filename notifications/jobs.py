"""
Dispatch job: MatchEngine + NotificationDispatcher for one requirement.

Runs off the request path (FastAPI BackgroundTasks) after a requirement is
created, or synchronously from `POST /requirements/{id}/dispatch`. A closed
requirement is never dispatched; status is checked before matching and again
right before fan-out.
"""

import logging
import time

from fastapi.concurrency import run_in_threadpool

from db import get_db
from matching.logic.contracts import DispatchReport, RequirementCriteria
from matching.logic.engine import MatchEngine
from utils.crud_requirement import close_requirement, get_requirement
from utils.errors import NotFoundError
from .dispatcher import NotificationDispatcher, failed_tutors

logger = logging.getLogger("tutorlink.dispatch")


def _load_criteria(requirement_id: str) -> RequirementCriteria:
    with get_db() as db:
        row = get_requirement(db, requirement_id)
        if row is None:
            raise NotFoundError(f"Requirement {requirement_id} not found")
        return RequirementCriteria.from_row(row)


def _close(requirement_id: str) -> None:
    with get_db() as db:
        close_requirement(db, requirement_id)


async def run_dispatch_job(requirement_id: str, engine: MatchEngine, dispatcher: NotificationDispatcher) -> DispatchReport:
    """
    Match a requirement and fan it out.

    The requirement is closed once every write succeeded. With failures it
    stays active so the job can be run again; matches already written are
    not duplicated on the rerun.

    Returns:
        DispatchReport; status "skipped" when the requirement was closed
    """
    start_time = time.perf_counter()

    criteria = await run_in_threadpool(_load_criteria, requirement_id)
    if criteria.status != "active":
        logger.info("Requirement %s is %s; dispatch skipped", requirement_id, criteria.status)
        return DispatchReport(requirement_id=requirement_id, status="skipped")

    tutors = await engine.find_matches(criteria)

    # Withdrawn while matching
    current = await run_in_threadpool(_load_criteria, requirement_id)
    if current.status != "active":
        logger.info("Requirement %s closed during matching; dispatch skipped", requirement_id)
        return DispatchReport(requirement_id=requirement_id, status="skipped", matched_count=len(tutors))

    result = await dispatcher.dispatch(criteria, tutors)
    failed = failed_tutors(result)

    if not failed:
        await run_in_threadpool(_close, requirement_id)

    logger.info(
        "Dispatch job for %s finished in %.1fms (%d matched, %d failed tutors)",
        requirement_id,
        (time.perf_counter() - start_time) * 1000,
        len(tutors),
        len(failed),
    )
    return DispatchReport(
        requirement_id=requirement_id,
        status="completed",
        matched_count=len(tutors),
        dispatched_count=len(result.sent),
        failed_count=len(failed),
    )


async def dispatch_in_background(requirement_id: str, engine: MatchEngine, dispatcher: NotificationDispatcher) -> None:
    """Background-task entry point. Never raises; the requirement is already stored."""
    try:
        await run_dispatch_job(requirement_id, engine, dispatcher)
    except Exception:
        logger.exception("Background dispatch for requirement %s failed", requirement_id)
