from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional

from performance360.schemas.user import UserSummary


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    created_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    expires_at: datetime
    is_revoked: bool
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    user: Optional[UserSummary] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class SessionList(BaseModel):
    sessions: List[SessionResponse]
    pagination: Pagination


class UserSessions(BaseModel):
    user: UserSummary
    sessions: List[SessionResponse]


class SessionStats(BaseModel):
    total_sessions: int
    active_sessions: int
    revoked_sessions: int
    expired_sessions: int
    active_users: int
