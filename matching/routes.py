"""
Requirement API Routes

Student side:
- POST /requirements                    create; schedules the dispatch job
- GET  /requirements/{id}               fetch
- POST /requirements/{id}/dispatch      run match + fan-out now
- POST /requirements/{id}/close         withdraw
- GET  /requirements/{id}/matches       preview matched tutors (no writes)

Tutor side:
- GET  /requirements/matched            requirements the tutor was matched to
- POST /requirements/{id}/respond       accept / decline
"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.concurrency import run_in_threadpool

import services
from db import get_db
from models.schemas import (
    CurrentUser,
    MatchOut,
    MatchedRequirementOut,
    RequirementCreate,
    RequirementOut,
    RequirementResponse,
)
from notifications.jobs import dispatch_in_background, run_dispatch_job
from utils.auth_utils import auth_user
from utils.crud_requirement import close_requirement, create_requirement, get_requirement
from utils.errors import NotFoundError, PermissionDeniedError
from .logic.contracts import RequirementCriteria, TutorCandidate
from .logic.validation import validate_requirement
from .responses import respond_to_requirement

logger = logging.getLogger("tutorlink.matching")

router = APIRouter(prefix="/requirements", tags=["requirements"])


# =============================================================================
# HELPERS
# =============================================================================

def _create(student_id: str, fields: dict) -> RequirementOut:
    with get_db() as db:
        return RequirementOut.model_validate(create_requirement(db, student_id=student_id, **fields))


def _load(requirement_id: str) -> RequirementOut:
    with get_db() as db:
        row = get_requirement(db, requirement_id)
        if row is None:
            raise NotFoundError(f"Requirement {requirement_id} not found")
        return RequirementOut.model_validate(row)


def _close(requirement_id: str) -> RequirementOut:
    with get_db() as db:
        return RequirementOut.model_validate(close_requirement(db, requirement_id))


async def _load_owned(requirement_id: str, user: CurrentUser) -> RequirementOut:
    requirement = await run_in_threadpool(_load, requirement_id)
    if user.role != "admin" and requirement.student_id != user.id:
        raise PermissionDeniedError("Not your requirement")
    return requirement


def _require_role(user: CurrentUser, *roles: str) -> None:
    if user.role not in roles:
        raise PermissionDeniedError(f"Requires role: {' or '.join(roles)}")


# =============================================================================
# STUDENT ENDPOINTS
# =============================================================================

@router.post("", response_model=RequirementOut, status_code=201)
async def post_requirement(
    payload: RequirementCreate,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(auth_user),
):
    """
    Create a requirement. Matching and notification fan-out run after the
    response is sent; their outcome never affects this call.
    """
    _require_role(user, "student", "admin")
    fields = validate_requirement(payload)
    requirement = await run_in_threadpool(_create, user.id, fields)
    background_tasks.add_task(
        dispatch_in_background, requirement.id, services.match_engine, services.dispatcher
    )
    logger.info("Requirement %s created by %s", requirement.id, user.id)
    return requirement


@router.get("/matched", response_model=List[MatchedRequirementOut])
async def matched_requirements(user: CurrentUser = Depends(auth_user)):
    _require_role(user, "tutor")
    rows = await services.match_repository.list_for_tutor(user.id)
    return [
        MatchedRequirementOut(
            requirement=requirement,
            match_status=match.status,
            has_responded=match.status != "pending",
        )
        for match, requirement in rows
    ]


@router.get("/{requirement_id}", response_model=RequirementOut)
async def read_requirement(requirement_id: str, user: CurrentUser = Depends(auth_user)):
    if user.role == "tutor":
        # Matched tutors may view the requirement they were notified about
        requirement = await run_in_threadpool(_load, requirement_id)
        if await services.match_repository.get(requirement_id, user.id) is None:
            raise PermissionDeniedError("Not matched to this requirement")
        return requirement
    return await _load_owned(requirement_id, user)


@router.post("/{requirement_id}/dispatch")
async def dispatch_requirement(requirement_id: str, user: CurrentUser = Depends(auth_user)):
    await _load_owned(requirement_id, user)
    report = await run_dispatch_job(requirement_id, services.match_engine, services.dispatcher)
    return report.to_response()


@router.post("/{requirement_id}/close", response_model=RequirementOut)
async def withdraw_requirement(requirement_id: str, user: CurrentUser = Depends(auth_user)):
    await _load_owned(requirement_id, user)
    requirement = await run_in_threadpool(_close, requirement_id)
    logger.info("Requirement %s withdrawn by %s", requirement_id, user.id)
    return requirement


@router.get("/{requirement_id}/matches", response_model=List[TutorCandidate])
async def preview_matches(requirement_id: str, user: CurrentUser = Depends(auth_user)):
    requirement = await _load_owned(requirement_id, user)
    return await services.match_engine.find_matches(RequirementCriteria.from_row(requirement))


# =============================================================================
# TUTOR ENDPOINTS
# =============================================================================

@router.post("/{requirement_id}/respond", response_model=MatchOut)
async def respond(requirement_id: str, payload: RequirementResponse, user: CurrentUser = Depends(auth_user)):
    _require_role(user, "tutor")
    return await respond_to_requirement(
        requirement_id,
        user.id,
        payload,
        matches=services.match_repository,
        notifications=services.notification_repository,
        messaging=services.messaging_service,
        event_bus=services.event_bus,
    )
