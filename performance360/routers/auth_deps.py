"""
Authentication and role dependencies for FastAPI endpoints.

Role checks only gate an endpoint; whether the caller may see a particular
user's records is decided by ``services.access_control``.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from performance360.core.exceptions import AccessDeniedError
from performance360.core.logging import redact_email
from performance360.database import get_db
from performance360.models.user import User, UserRole, UserSession
from performance360.schemas.auth import TokenData
from performance360.services import auth as auth_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_data(token: str) -> TokenData:
    payload = auth_service.decode_access_token(token)
    if payload is None:
        logger.warning("Authentication failed: invalid token")
        raise _unauthorized("Could not validate credentials")
    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: token expired")
        raise _unauthorized("TOKEN_EXPIRED")
    # Refresh tokens are only accepted by /auth/refresh
    if payload.get("type") != "access":
        logger.warning(f"Authentication failed: {payload.get('type')} token used as access token")
        raise _unauthorized("Invalid token type")
    if not payload.get("sub"):
        logger.warning("Authentication failed: token has no subject")
        raise _unauthorized("Missing subject in token")
    if payload.get("sid") is None:
        logger.warning("Authentication failed: token is not bound to a session")
        raise _unauthorized("Invalid session. Please login again.")
    return TokenData(email=payload["sub"], role=payload.get("role"), session_id=payload["sid"])


def _touch_session(db: Session, user: User, session_id: int):
    """Reject tokens whose login session has ended; otherwise record the activity."""
    session = (
        db.query(UserSession)
        .filter(UserSession.id == session_id, UserSession.user_id == user.id)
        .first()
    )
    now = datetime.now(timezone.utc)
    reason = auth_service.session_rejection_reason(session, now)
    if reason:
        if session is not None and not session.is_revoked:
            session.is_revoked = True
            db.commit()
        logger.info(f"Authentication failed: session {session_id} of user {user.id} rejected ({reason})")
        raise _unauthorized(reason)

    session.last_activity_at = now
    db.commit()


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """Resolve the bearer token to an active user with a live session."""
    token_data = _token_data(token)
    user = db.query(User).filter(User.email == token_data.email).first()

    if user is None:
        logger.warning(f"Authentication failed: {redact_email(token_data.email)} no longer exists")
        raise _unauthorized("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: user {user.id} is deactivated")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    _touch_session(db, user, token_data.session_id)
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role([UserRole.ADMIN]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.info(
                f"User {current_user.id} ({current_user.role.value}) denied; "
                f"requires {[r.value for r in allowed_roles]}"
            )
            raise AccessDeniedError(f"Access denied. Required roles: {[r.value for r in allowed_roles]}")
        return current_user
    return role_checker


def require_manager():
    """Managers and admins."""
    return require_role([UserRole.ADMIN, UserRole.MANAGER])


def require_admin():
    return require_role([UserRole.ADMIN])
