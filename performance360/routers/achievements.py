import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from performance360.core.exceptions import AccessDeniedError, NotFoundError
from performance360.database import get_db
from performance360.models.performance import AchievementObservation
from performance360.models.user import User
from performance360.routers.auth_deps import get_current_user, require_manager
from performance360.schemas.performance import (
    AchievementObservationCreate,
    AchievementObservationResponse,
    AchievementObservationUpdate,
)
from performance360.services.access_control import AccessControlService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/achievements-observations",
    tags=["achievements-observations"]
)


def _get_entry(db: Session, entry_id: int) -> AchievementObservation:
    entry = (
        db.query(AchievementObservation)
        .options(joinedload(AchievementObservation.user), joinedload(AchievementObservation.creator))
        .filter(AchievementObservation.id == entry_id)
        .first()
    )
    if not entry:
        raise NotFoundError("Achievement/observation not found")
    return entry


def _ensure_creator_or_admin(entry: AchievementObservation, current_user: User):
    if entry.created_by != current_user.id and not current_user.is_admin:
        raise AccessDeniedError("Only the author or an admin can change this entry")


@router.get("/entry/{entry_id}", response_model=AchievementObservationResponse)
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    entry = _get_entry(db, entry_id)
    AccessControlService(db).ensure_user_access(current_user, entry.user_id)
    return entry


@router.get("/{user_id}", response_model=List[AchievementObservationResponse])
def list_for_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view achievements for yourself or your reports."
    )
    return (
        db.query(AchievementObservation)
        .options(joinedload(AchievementObservation.creator))
        .filter(AchievementObservation.user_id == user_id)
        .order_by(AchievementObservation.date.desc(), AchievementObservation.id.desc())
        .all()
    )


@router.post("", response_model=AchievementObservationResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    data: AchievementObservationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    if not db.query(User.id).filter(User.id == data.user_id).first():
        raise NotFoundError("User not found")
    if data.user_id == current_user.id and not current_user.is_admin:
        raise AccessDeniedError("You cannot log achievements for yourself")
    AccessControlService(db).ensure_user_access(
        current_user, data.user_id, "Access denied. You can only log achievements for your reports."
    )

    entry = AchievementObservation(created_by=current_user.id, **data.model_dump())
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info(f"Achievement/observation {entry.id} logged for user {data.user_id}", extra={"created_by": current_user.id})
    return entry


@router.put("/{entry_id}", response_model=AchievementObservationResponse)
def update_entry(
    entry_id: int,
    data: AchievementObservationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    entry = _get_entry(db, entry_id)
    _ensure_creator_or_admin(entry, current_user)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(entry, field, value)
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    entry = _get_entry(db, entry_id)
    _ensure_creator_or_admin(entry, current_user)
    db.delete(entry)
    db.commit()
    logger.info(f"Achievement/observation {entry_id} deleted by user {current_user.id}")
