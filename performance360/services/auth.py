"""
Password hashing and JWT issuance/verification.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from passlib.context import CryptContext

from performance360.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_DAYS = settings.refresh_token_expire_days
SESSION_IDLE_TIMEOUT_MINUTES = settings.session_idle_timeout_minutes


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed hash in the database
        logger.warning("Password verification failed: unrecognised hash format")
        return False


def _encode(payload: Dict[str, Any], expires_delta: timedelta, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    to_encode = dict(payload)
    to_encode.update({
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        # Unique id so two tokens minted in the same second never collide
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    return _encode(data, expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES), "access")


def create_refresh_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    return _encode(data, expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS), "refresh")


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode a signed token.

    Returns the payload, ``{"error": "TOKEN_EXPIRED"}`` for an expired token,
    or None when the token is invalid.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        return {"error": "TOKEN_EXPIRED"}
    except InvalidTokenError as e:
        logger.debug(f"Token decode failed: {e}")
        return None


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def session_rejection_reason(session, now: Optional[datetime] = None) -> Optional[str]:
    """
    Why a login session can no longer authenticate requests, or None while it
    is usable. Sessions end on logout or revocation, at the refresh-token
    expiry, or after SESSION_IDLE_TIMEOUT_MINUTES without a request.
    """
    now = now or datetime.now(timezone.utc)
    if session is None or session.is_revoked:
        return "Invalid session. Please login again."
    if as_utc(session.expires_at) <= now:
        return "Session expired. Please login again."
    last_activity = session.last_activity_at or session.created_at
    if last_activity and as_utc(last_activity) + timedelta(minutes=SESSION_IDLE_TIMEOUT_MINUTES) <= now:
        return "Session expired due to inactivity. Please login again."
    return None
