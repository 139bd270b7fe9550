"""
Peer feedback between colleagues.

Anonymous feedback keeps its sender on record but never shows it to the
receiver or their managers; only admins see who wrote it.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload

from performance360.core.exceptions import AccessDeniedError, NotFoundError
from performance360.database import get_db
from performance360.models.feedback import ColleagueFeedback
from performance360.models.user import User
from performance360.routers.auth_deps import get_current_user, require_manager
from performance360.schemas.feedback import ColleagueFeedbackCreate, ColleagueFeedbackResponse, FeedbackStatusUpdate
from performance360.services.access_control import AccessControlService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/colleague-feedback",
    tags=["colleague-feedback"]
)


def _present(feedback: ColleagueFeedback, viewer: User) -> ColleagueFeedbackResponse:
    response = ColleagueFeedbackResponse.model_validate(feedback)
    if feedback.is_anonymous and feedback.sender_id != viewer.id and not viewer.is_admin:
        response.sender_id = None
        response.sender = None
    return response


def _query(db: Session):
    return db.query(ColleagueFeedback).options(
        joinedload(ColleagueFeedback.sender),
        joinedload(ColleagueFeedback.receiver),
    )


def _received_by(db: Session, user_id: int):
    return _query(db).filter(ColleagueFeedback.receiver_id == user_id).order_by(ColleagueFeedback.created_at.desc()).all()


def _sent_by(db: Session, user_id: int, include_anonymous: bool = True):
    query = _query(db).filter(ColleagueFeedback.sender_id == user_id)
    if not include_anonymous:
        query = query.filter(ColleagueFeedback.is_anonymous == False)
    return query.order_by(ColleagueFeedback.created_at.desc()).all()


@router.get("/received", response_model=List[ColleagueFeedbackResponse])
def list_received(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [_present(f, current_user) for f in _received_by(db, current_user.id)]


@router.get("/sent", response_model=List[ColleagueFeedbackResponse])
def list_sent(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [_present(f, current_user) for f in _sent_by(db, current_user.id)]


@router.get("/received/{user_id}", response_model=List[ColleagueFeedbackResponse])
def list_received_for_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view feedback for your reports."
    )
    return [_present(f, current_user) for f in _received_by(db, user_id)]


@router.get("/sent/{user_id}", response_model=List[ColleagueFeedbackResponse])
def list_sent_for_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view feedback for your reports."
    )
    # Anonymous feedback stays hidden from everyone but its sender and admins
    own_or_admin = current_user.is_admin or current_user.id == user_id
    return [_present(f, current_user) for f in _sent_by(db, user_id, include_anonymous=own_or_admin)]


@router.post("", response_model=ColleagueFeedbackResponse, status_code=status.HTTP_201_CREATED)
def create_feedback(
    data: ColleagueFeedbackCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if data.receiver_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot give feedback to yourself")
    receiver = db.query(User).filter(User.id == data.receiver_id, User.is_active == True).first()
    if not receiver:
        raise NotFoundError("Receiver not found")

    feedback = ColleagueFeedback(sender_id=current_user.id, **data.model_dump())
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    logger.info(
        f"Colleague feedback {feedback.id} created",
        extra={"sender_id": current_user.id, "receiver_id": data.receiver_id},
    )
    return _present(feedback, current_user)


@router.patch("/{feedback_id}/status", response_model=ColleagueFeedbackResponse)
def update_status(
    feedback_id: int,
    data: FeedbackStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    feedback = _query(db).filter(ColleagueFeedback.id == feedback_id).first()
    if not feedback:
        raise NotFoundError("Colleague feedback not found")
    if current_user.id not in (feedback.receiver_id, feedback.sender_id):
        raise AccessDeniedError("Not authorized")

    feedback.status = data.status
    db.commit()
    db.refresh(feedback)
    return _present(feedback, current_user)
