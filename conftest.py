"""
Shared test setup.

Points the app at a throwaway SQLite file before anything imports `db`, and
rebuilds the schema for every test.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="tutorlink-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["PROFILE_STORE_BACKEND"] = "sql"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DISPATCH_BACKOFF_BASE"] = "0.01"
os.environ["DISPATCH_BACKOFF_MAX"] = "0.05"

import pytest  # noqa: E402

from db import Base, engine, get_db, init_db  # noqa: E402
from models.models import StudentProfile, TutorProfile  # noqa: E402
from utils.auth_utils import create_token  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


def tutor_fields(user_id: str, **overrides) -> dict:
    """A verified, active maths tutor in Mumbai; override what the test needs."""
    fields = dict(
        user_id=user_id,
        full_name=f"Tutor {user_id}",
        subjects=["mathematics"],
        specializations=[],
        teaching_mode="online",
        hourly_rate_min=1200,
        hourly_rate_max=1800,
        verified=True,
        active=True,
        city="mumbai",
        area="andheri",
        academic_levels=["class_10"],
        boards=["cbse"],
        language_levels=[],
        exam_preparation_levels=[],
        age_groups=[],
        skill_levels=[],
        rating=4.0,
    )
    fields.update(overrides)
    return fields


@pytest.fixture
def seed_tutor():
    def _seed(user_id: str, **overrides):
        with get_db() as db:
            db.add(TutorProfile(**tutor_fields(user_id, **overrides)))
        return user_id
    return _seed


@pytest.fixture
def seed_student():
    def _seed(user_id: str, full_name: str = None):
        with get_db() as db:
            db.add(StudentProfile(user_id=user_id, full_name=full_name or f"Student {user_id}", city="mumbai"))
        return user_id
    return _seed


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, role: str = "student") -> dict:
        return {"Authorization": f"Bearer {create_token(user_id, role)}"}
    return _headers


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_tutor():
    from matching.logic.contracts import TutorCandidate

    def _make(user_id: str, **overrides) -> TutorCandidate:
        return TutorCandidate(**tutor_fields(user_id, **overrides))
    return _make


@pytest.fixture
def make_requirement():
    """Academic maths requirement in Mumbai, online, budget 1000-2000."""
    from matching.logic.contracts import RequirementCriteria

    def _make(**overrides) -> RequirementCriteria:
        fields = dict(
            id="req-1",
            student_id="student-1",
            category="academic",
            subject="mathematics",
            location="mumbai",
            preferred_teaching_mode="online",
            budget_min=1000,
            budget_max=2000,
        )
        fields.update(overrides)
        return RequirementCriteria(**fields)
    return _make
