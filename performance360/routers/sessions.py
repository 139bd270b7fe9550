"""
Admin view over login sessions (one per issued refresh token).
"""
import logging
import math
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from performance360.core.exceptions import NotFoundError
from performance360.database import get_db
from performance360.models.user import User, UserSession
from performance360.routers.auth_deps import require_admin
from performance360.schemas.session import SessionList, SessionResponse, SessionStats, UserSessions

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"]
)


def _active_filter(now: datetime):
    return (UserSession.is_revoked == False) & (UserSession.expires_at > now)


@router.get("", response_model=SessionList)
def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    now = datetime.now(timezone.utc)
    query = db.query(UserSession)
    if user_id is not None:
        query = query.filter(UserSession.user_id == user_id)
    if is_active is True:
        query = query.filter(_active_filter(now))
    elif is_active is False:
        query = query.filter(~_active_filter(now))

    total = query.count()
    sessions = (
        query.options(joinedload(UserSession.user))
        .order_by(UserSession.created_at.desc(), UserSession.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "sessions": sessions,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.get("/stats", response_model=SessionStats)
def session_stats(db: Session = Depends(get_db), current_user: User = Depends(require_admin())):
    now = datetime.now(timezone.utc)
    total = db.query(func.count(UserSession.id)).scalar() or 0
    active = db.query(func.count(UserSession.id)).filter(_active_filter(now)).scalar() or 0
    revoked = db.query(func.count(UserSession.id)).filter(UserSession.is_revoked == True).scalar() or 0
    active_users = (
        db.query(func.count(func.distinct(UserSession.user_id))).filter(_active_filter(now)).scalar() or 0
    )
    return {
        "total_sessions": total,
        "active_sessions": active,
        "revoked_sessions": revoked,
        "expired_sessions": total - active - revoked,
        "active_users": active_users,
    }


@router.get("/user/{user_id}", response_model=UserSessions)
def list_user_sessions(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    sessions = (
        db.query(UserSession)
        .filter(UserSession.user_id == user_id)
        .order_by(UserSession.created_at.desc(), UserSession.id.desc())
        .all()
    )
    return {"user": user, "sessions": sessions}


@router.patch("/{session_id}/deactivate", response_model=SessionResponse)
def deactivate_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    session = db.query(UserSession).filter(UserSession.id == session_id).first()
    if not session:
        raise NotFoundError("Session not found")
    session.is_revoked = True
    db.commit()
    db.refresh(session)
    logger.info(f"Session {session_id} deactivated", extra={"admin_id": current_user.id})
    return session
