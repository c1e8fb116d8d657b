from typing import Optional

from sqlalchemy.orm import Session

from models.models import Requirement


def get_requirement(db: Session, requirement_id: str) -> Optional[Requirement]:
    return db.get(Requirement, requirement_id)


def create_requirement(db: Session, *, student_id: str, **fields) -> Requirement:
    requirement = Requirement(student_id=student_id, status="active", **fields)
    db.add(requirement)
    db.flush()
    return requirement


def close_requirement(db: Session, requirement_id: str) -> Optional[Requirement]:
    requirement = db.get(Requirement, requirement_id)
    if requirement and requirement.status != "closed":
        requirement.status = "closed"
    return requirement

