"""
Self assessment endpoints. Employees write their own; managers read those
of their reports.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from performance360.core.exceptions import AccessDeniedError, ConflictError, NotFoundError
from performance360.database import get_db
from performance360.models.performance import SelfAssessment
from performance360.models.user import User
from performance360.routers.auth_deps import get_current_user, require_manager
from performance360.schemas.performance import SelfAssessmentCreate, SelfAssessmentResponse, SelfAssessmentUpdate
from performance360.services.access_control import AccessControlService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/assessments",
    tags=["assessments"]
)


def _get_assessment(db: Session, assessment_id: int) -> SelfAssessment:
    assessment = db.query(SelfAssessment).filter(SelfAssessment.id == assessment_id).first()
    if not assessment:
        raise NotFoundError("Self assessment not found")
    return assessment


def _ensure_owner_or_admin(assessment: SelfAssessment, current_user: User):
    if assessment.user_id != current_user.id and not current_user.is_admin:
        raise AccessDeniedError("You can only modify your own self assessments")


def _ensure_unique_period(db: Session, user_id: int, year: int, quarter, exclude_id: Optional[int] = None):
    query = db.query(SelfAssessment.id).filter(
        SelfAssessment.user_id == user_id,
        SelfAssessment.year == year,
        SelfAssessment.quarter == quarter if quarter is not None else SelfAssessment.quarter.is_(None),
    )
    if exclude_id is not None:
        query = query.filter(SelfAssessment.id != exclude_id)
    if query.first():
        raise ConflictError("A self assessment already exists for this year and quarter")


def _order(query):
    return query.order_by(SelfAssessment.year.desc(), SelfAssessment.created_at.desc())


@router.get("", response_model=List[SelfAssessmentResponse])
def list_own_assessments(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _order(db.query(SelfAssessment).filter(SelfAssessment.user_id == current_user.id)).all()


@router.get("/user/{user_id}", response_model=List[SelfAssessmentResponse])
def list_user_assessments(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view self assessments of your reports."
    )
    return _order(db.query(SelfAssessment).filter(SelfAssessment.user_id == user_id)).all()


@router.get("/{assessment_id}", response_model=SelfAssessmentResponse)
def get_assessment(
    assessment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    assessment = _get_assessment(db, assessment_id)
    AccessControlService(db).ensure_user_access(current_user, assessment.user_id)
    return assessment


@router.post("", response_model=SelfAssessmentResponse, status_code=status.HTTP_201_CREATED)
def create_assessment(
    data: SelfAssessmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_unique_period(db, current_user.id, data.year, data.quarter)

    assessment = SelfAssessment(user_id=current_user.id, **data.model_dump())
    db.add(assessment)
    db.commit()
    db.refresh(assessment)
    logger.info(f"User {current_user.id} submitted self assessment {assessment.id}")
    return assessment


@router.put("/{assessment_id}", response_model=SelfAssessmentResponse)
def update_assessment(
    assessment_id: int,
    data: SelfAssessmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    assessment = _get_assessment(db, assessment_id)
    _ensure_owner_or_admin(assessment, current_user)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("year") is None:
        changes.pop("year", None)
    if "year" in changes or "quarter" in changes:
        _ensure_unique_period(
            db,
            assessment.user_id,
            changes.get("year", assessment.year),
            changes.get("quarter", assessment.quarter),
            exclude_id=assessment.id,
        )

    for field, value in changes.items():
        setattr(assessment, field, value)
    db.commit()
    db.refresh(assessment)
    logger.info(f"Self assessment {assessment_id} updated by user {current_user.id}")
    return assessment


@router.delete("/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assessment(
    assessment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    assessment = _get_assessment(db, assessment_id)
    _ensure_owner_or_admin(assessment, current_user)
    db.delete(assessment)
    db.commit()
    logger.info(f"Self assessment {assessment_id} deleted by user {current_user.id}")
