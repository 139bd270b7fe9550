"""
Upward feedback: employees rate their manager each quarter.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload

from performance360.core.exceptions import NotFoundError
from performance360.database import get_db
from performance360.models.feedback import ManagerFeedback
from performance360.models.user import User
from performance360.routers.auth_deps import get_current_user
from performance360.schemas.feedback import ManagerFeedbackCreate, ManagerFeedbackResponse
from performance360.services.access_control import AccessControlService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/manager-feedback",
    tags=["manager-feedback"]
)


def _query(db: Session):
    return db.query(ManagerFeedback).options(
        joinedload(ManagerFeedback.sender),
        joinedload(ManagerFeedback.receiver),
    ).order_by(ManagerFeedback.created_at.desc())


@router.get("/received", response_model=List[ManagerFeedbackResponse])
def list_received(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _query(db).filter(ManagerFeedback.receiver_id == current_user.id).all()


@router.get("/sent", response_model=List[ManagerFeedbackResponse])
def list_sent(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _query(db).filter(ManagerFeedback.sender_id == current_user.id).all()


@router.get("/received/{user_id}", response_model=List[ManagerFeedbackResponse])
def list_received_for_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view feedback for yourself or your reports."
    )
    return _query(db).filter(ManagerFeedback.receiver_id == user_id).all()


@router.post("", response_model=ManagerFeedbackResponse, status_code=status.HTTP_201_CREATED)
def create_feedback(
    data: ManagerFeedbackCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if data.receiver_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot give feedback to yourself")
    receiver = db.query(User).filter(User.id == data.receiver_id, User.is_active == True).first()
    if not receiver:
        raise NotFoundError("Receiver not found")
    if not receiver.is_manager:
        raise HTTPException(status_code=400, detail="Feedback receiver is not a manager")

    feedback = ManagerFeedback(sender_id=current_user.id, **data.model_dump())
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    logger.info(
        f"Manager feedback {feedback.id} created",
        extra={"sender_id": current_user.id, "receiver_id": data.receiver_id},
    )
    return feedback
