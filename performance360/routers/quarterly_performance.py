import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from performance360.core.exceptions import AccessDeniedError, ConflictError, NotFoundError
from performance360.database import get_db
from performance360.models.performance import QuarterlyPerformance
from performance360.models.user import User
from performance360.routers.auth_deps import get_current_user, require_admin, require_manager
from performance360.schemas.performance import (
    QuarterlyPerformanceCreate,
    QuarterlyPerformanceResponse,
    QuarterlyPerformanceUpdate,
)
from performance360.services.access_control import AccessControlService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/quarterly-performance",
    tags=["quarterly-performance"]
)


def _ensure_can_rate(db: Session, current_user: User, user_id: int):
    if user_id == current_user.id and not current_user.is_admin:
        raise AccessDeniedError("You cannot record performance for yourself")
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only manage performance records for your reports."
    )


@router.get("/{user_id}", response_model=List[QuarterlyPerformanceResponse])
def get_user_performance(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    AccessControlService(db).ensure_user_access(current_user, user_id)
    return (
        db.query(QuarterlyPerformance)
        .options(joinedload(QuarterlyPerformance.user))
        .filter(QuarterlyPerformance.user_id == user_id)
        .order_by(QuarterlyPerformance.year.desc(), QuarterlyPerformance.quarter.desc())
        .all()
    )


@router.post("", response_model=QuarterlyPerformanceResponse, status_code=status.HTTP_201_CREATED)
def create_performance(
    data: QuarterlyPerformanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    if not db.query(User.id).filter(User.id == data.user_id).first():
        raise NotFoundError("User not found")
    _ensure_can_rate(db, current_user, data.user_id)

    existing = db.query(QuarterlyPerformance).filter(
        QuarterlyPerformance.user_id == data.user_id,
        QuarterlyPerformance.quarter == data.quarter,
        QuarterlyPerformance.year == data.year,
    ).first()
    if existing:
        raise ConflictError("A performance record already exists for this user, quarter, and year")

    record = QuarterlyPerformance(**data.model_dump())
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(
        f"Created quarterly performance record for user {data.user_id}, {data.quarter.value} {data.year}",
        extra={"created_by": current_user.id},
    )
    return record


@router.put("/{record_id}", response_model=QuarterlyPerformanceResponse)
def update_performance(
    record_id: int,
    data: QuarterlyPerformanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    record = db.query(QuarterlyPerformance).filter(QuarterlyPerformance.id == record_id).first()
    if not record:
        raise NotFoundError("Performance record not found")
    _ensure_can_rate(db, current_user, record.user_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "is_critical" and value is None:
            continue
        setattr(record, field, value)
    db.commit()
    db.refresh(record)
    logger.info(f"Updated quarterly performance record {record_id}", extra={"updated_by": current_user.id})
    return record


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_performance(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    record = db.query(QuarterlyPerformance).filter(QuarterlyPerformance.id == record_id).first()
    if not record:
        raise NotFoundError("Performance record not found")
    db.delete(record)
    db.commit()
    logger.info(f"Deleted quarterly performance record {record_id}")
