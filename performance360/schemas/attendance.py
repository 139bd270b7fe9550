from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

from performance360.schemas.user import UserSummary
from performance360.services.attendance_compliance import ComplianceStatus


class MonthlyAttendanceBase(BaseModel):
    working_days: int
    present_in_office: int
    leaves_availed: int = 0
    leave_notifications_in_teams_channel: int = 0
    weekly_compliance: Optional[bool] = None
    exception_approved: Optional[bool] = None
    reason_for_non_compliance: Optional[str] = None


class MonthlyAttendanceCreate(MonthlyAttendanceBase):
    user_id: int
    month: int
    year: int


class MonthlyAttendanceUpdate(BaseModel):
    """All fields optional; only the ones sent are applied."""
    working_days: Optional[int] = None
    present_in_office: Optional[int] = None
    leaves_availed: Optional[int] = None
    leave_notifications_in_teams_channel: Optional[int] = None
    weekly_compliance: Optional[bool] = None
    exception_approved: Optional[bool] = None
    reason_for_non_compliance: Optional[str] = None


class MonthlyAttendanceResponse(MonthlyAttendanceBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    month: int
    year: int
    attendance_percentage: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


class BulkAttendanceRequest(BaseModel):
    records: List[MonthlyAttendanceCreate] = Field(..., min_length=1)


class BulkAttendanceError(BaseModel):
    row: int
    user_id: Optional[int] = None
    email: Optional[str] = None
    error: str


class BulkAttendanceResult(BaseModel):
    success: int
    error_count: int
    results: List[MonthlyAttendanceResponse]
    errors: List[BulkAttendanceError] = []


class ManagerCommentUpdate(BaseModel):
    reason_for_non_compliance: Optional[str] = None


class MonthComplianceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: int
    year: int
    month_label: str
    record_id: Optional[int] = None
    working_days: int
    present_in_office: int
    leaves_availed: int
    leave_notifications_in_teams_channel: int
    attendance_percentage: Optional[float] = None
    monthly_compliant: Optional[bool] = None
    weekly_compliance: Optional[bool] = None
    exception_approved: Optional[bool] = None
    status: ComplianceStatus
    color: str
    leave_mismatch: bool
    reason_for_non_compliance: Optional[str] = None


class ComplianceSummary(BaseModel):
    total_months: int
    months_with_data: int
    monthly_compliant_months: int
    exception_months: int
    leave_mismatch_months: int
    average_attendance_percentage: Optional[float] = None


class ComplianceReport(BaseModel):
    user_id: int
    threshold: float
    months: List[MonthComplianceResponse]
    summary: ComplianceSummary
