"""
User directory and reports-to hierarchy endpoints.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from performance360.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from performance360.core.security import validate_password_strength
from performance360.database import get_db
from performance360.models.user import User, UserSession
from performance360.routers.auth_deps import get_current_user, require_admin, require_manager
from performance360.schemas.user import (
    ManagerAssignment, PasswordReset, ReportResponse, UserAdminCreate,
    UserDetailResponse, UserProfileUpdate, UserResponse,
)
from performance360.services import auth as auth_service
from performance360.services.access_control import AccessControlService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


def _validate_manager(db: Session, manager_id: int, user_id: Optional[int] = None) -> User:
    """Check that manager_id names an active manager the user may report to."""
    if user_id is not None and manager_id == user_id:
        raise HTTPException(status_code=400, detail="User cannot be their own manager")
    manager = db.query(User).filter(User.id == manager_id).first()
    if not manager:
        raise HTTPException(status_code=400, detail="Manager not found")
    if not manager.is_manager:
        raise HTTPException(status_code=400, detail="Selected user is not a manager or admin")
    if not manager.is_active:
        raise HTTPException(status_code=400, detail="Selected manager is inactive")
    if user_id is not None and AccessControlService(db).would_create_cycle(user_id, manager_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Assignment would create a reporting cycle"
        )
    return manager


@router.get("", response_model=List[ReportResponse])
def list_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Admins get every active user. Everyone else gets the other active users,
    which is what the feedback forms pick receivers from.
    """
    query = db.query(User).options(joinedload(User.manager)).filter(User.is_active == True)
    if not current_user.is_admin:
        query = query.filter(User.id != current_user.id)
    return query.order_by(User.last_name.asc(), User.first_name.asc()).all()


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserAdminCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    is_valid, message = validate_password_strength(data.password)
    if not is_valid:
        raise ValidationFailedError(message)
    if db.query(User).filter(User.email == data.email).first():
        raise ConflictError("User already exists")
    if data.manager_id is not None:
        _validate_manager(db, data.manager_id)

    user = User(
        email=data.email,
        hashed_password=auth_service.get_password_hash(data.password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        role=data.role,
        position=data.position,
        manager_id=data.manager_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} created with role {user.role.value}", extra={"admin_id": current_user.id})
    return user

@router.get("/direct-reports", response_model=List[ReportResponse])
def list_direct_reports(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return AccessControlService(db).get_direct_reports(current_user.id)


@router.get("/indirect-reports", response_model=List[ReportResponse])
def list_indirect_reports(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    """Reports two or more levels below the current user."""
    reports = AccessControlService(db).get_all_reports(current_user.id)
    return [user for user in reports if user.manager_id != current_user.id]


@router.put("/me", response_model=UserResponse)
def update_profile(
    update_data: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update current user's profile information."""
    if update_data.first_name is not None:
        if not update_data.first_name.strip():
            raise HTTPException(status_code=400, detail="First name cannot be empty")
        current_user.first_name = update_data.first_name.strip()
    if update_data.last_name is not None:
        if not update_data.last_name.strip():
            raise HTTPException(status_code=400, detail="Last name cannot be empty")
        current_user.last_name = update_data.last_name.strip()
    if update_data.position is not None:
        current_user.position = update_data.position.strip() or None

    db.commit()
    db.refresh(current_user)
    logger.info(f"User {current_user.id} updated their profile")
    return current_user


@router.get("/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    access = AccessControlService(db)
    access.ensure_user_access(current_user, user_id, "Access denied. You can only view your own profile or your reports.")

    user = db.query(User).options(joinedload(User.manager)).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    report_count = db.query(func.count(User.id)).filter(
        User.manager_id == user.id, User.is_active == True
    ).scalar()
    response = UserDetailResponse.model_validate(user)
    response.direct_report_count = report_count or 0
    return response


@router.put("/{user_id}/manager", response_model=ReportResponse)
def assign_manager(
    user_id: int,
    data: ManagerAssignment,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    if data.manager_id is not None:
        _validate_manager(db, data.manager_id, user_id)

    user.manager_id = data.manager_id
    db.commit()
    db.refresh(user)
    logger.info(
        f"Manager of user {user_id} set to {data.manager_id}",
        extra={"admin_id": current_user.id},
    )
    return user


@router.patch("/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    """Soft delete: the account can no longer log in and drops out of hierarchy lookups."""
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    user.is_active = False
    db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.is_revoked == False,
    ).update({"is_revoked": True})
    db.commit()
    db.refresh(user)
    logger.info(f"User {user_id} deactivated", extra={"admin_id": current_user.id})
    return user


@router.patch("/{user_id}/reset-password")
def reset_password(
    user_id: int,
    data: PasswordReset,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    """Set a new password for another user and end all of their sessions."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise ValidationFailedError("Cannot reset password for inactive user")

    is_valid, message = validate_password_strength(data.password)
    if not is_valid:
        raise ValidationFailedError(message)

    user.hashed_password = auth_service.get_password_hash(data.password)
    db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.is_revoked == False,
    ).update({"is_revoked": True})
    db.commit()
    logger.info(f"Password of user {user_id} reset", extra={"admin_id": current_user.id})
    return {"success": True, "message": "Password reset successfully"}
