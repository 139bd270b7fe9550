from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional

from performance360.models.user import UserRole


class UserSummary(BaseModel):
    """Compact user reference embedded in other resources."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: EmailStr


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    first_name: str
    last_name: str
    role: UserRole
    position: Optional[str] = None
    manager_id: Optional[int] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ReportResponse(UserResponse):
    manager: Optional[UserSummary] = None


class UserDetailResponse(ReportResponse):
    direct_report_count: int = 0


class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None


class ManagerAssignment(BaseModel):
    manager_id: Optional[int] = None


class UserAdminCreate(BaseModel):
    """Account created by an admin, who picks the role and reporting line."""
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.EMPLOYEE
    position: Optional[str] = None
    manager_id: Optional[int] = None


class PasswordReset(BaseModel):
    password: str
