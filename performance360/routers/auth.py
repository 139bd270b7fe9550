from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
import logging
from performance360.core.config import settings
from performance360.core.limiter import limiter
from performance360.core.logging import redact_email
from performance360.core.security import validate_password_strength
from performance360.database import get_db
from performance360.models.user import User, UserRole, UserSession
from performance360.routers.auth_deps import get_current_user
from performance360.services import auth as auth_service
from performance360.schemas.auth import LoginRequest, PasswordChange, RefreshRequest, Token, UserCreate
from performance360.schemas.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _issue_tokens(db: Session, user: User, request: Request) -> dict:
    """Open a login session and mint the token pair bound to it."""
    now = datetime.now(timezone.utc)
    refresh_token = auth_service.create_refresh_token(data={"sub": user.email})
    session = UserSession(
        user_id=user.id,
        refresh_token=refresh_token,
        expires_at=now + timedelta(days=auth_service.REFRESH_TOKEN_EXPIRE_DAYS),
        last_activity_at=now,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    db.add(session)
    db.flush()

    access_token = auth_service.create_access_token(data={
        "sub": user.email,
        "role": user.role.value,
        "user_id": user.id,
        "sid": session.id,
    })
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": {
            "id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role.value,
        },
    }


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, request: Request, db: Session = Depends(get_db)):
    """Self-service sign up. New accounts always start as EMPLOYEE."""
    is_valid, message = validate_password_strength(user_in.password)
    if not is_valid:
        raise HTTPException(status_code=400, detail=message)

    if db.query(User).filter(User.email == user_in.email).first():
        raise HTTPException(status_code=400, detail="User already exists")

    if user_in.manager_id is not None:
        manager = db.query(User).filter(User.id == user_in.manager_id, User.is_active == True).first()
        if not manager or not manager.is_manager:
            raise HTTPException(status_code=400, detail="Selected manager is not a manager or admin")

    user = User(
        email=user_in.email,
        hashed_password=auth_service.get_password_hash(user_in.password),
        first_name=user_in.first_name.strip(),
        last_name=user_in.last_name.strip(),
        position=user_in.position,
        role=UserRole.EMPLOYEE,
        manager_id=user_in.manager_id,
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    db.flush()

    tokens = _issue_tokens(db, user, request)
    db.commit()
    logger.info(f"Registered user {user.id}", extra={"email": redact_email(user.email)})
    return tokens


@router.post("/login", response_model=Token)
@limiter.limit(settings.login_rate_limit)
def login(login_data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        logger.warning("Failed login", extra={"email": redact_email(login_data.email)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    try:
        user.last_login_at = datetime.now(timezone.utc)
        tokens = _issue_tokens(db, user, request)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Login error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal login error. Please check server logs."
        )

    logger.info(f"User {user.id} logged in")
    return tokens


@router.post("/refresh", response_model=Token)
def refresh_token(data: RefreshRequest, request: Request, db: Session = Depends(get_db)):
    payload = auth_service.decode_access_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    db_session = db.query(UserSession).filter(
        UserSession.refresh_token == data.refresh_token,
        UserSession.is_revoked == False,
    ).first()

    if not db_session or auth_service.as_utc(db_session.expires_at) <= datetime.now(timezone.utc):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired or revoked")

    user = db_session.user
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User inactive or not found")

    # Rotation: revoke old, create new
    db_session.is_revoked = True
    tokens = _issue_tokens(db, user, request)
    db.commit()
    return tokens


@router.post("/logout")
def logout(data: RefreshRequest, db: Session = Depends(get_db)):
    db_session = db.query(UserSession).filter(UserSession.refresh_token == data.refresh_token).first()
    if db_session:
        db_session.is_revoked = True
        db.commit()
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/change-password")
def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Securely update current user's password."""
    if not auth_service.verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid current password")

    is_valid, message = validate_password_strength(data.new_password)
    if not is_valid:
        raise HTTPException(status_code=400, detail=message)

    current_user.hashed_password = auth_service.get_password_hash(data.new_password)
    # Existing sessions stop working once the password changes
    db.query(UserSession).filter(
        UserSession.user_id == current_user.id,
        UserSession.is_revoked == False,
    ).update({"is_revoked": True})
    db.commit()
    logger.info(f"User {current_user.id} changed password")

    return {"success": True, "message": "Password updated successfully"}
