"""
Monthly attendance endpoints.

Admins record attendance (singly, in bulk or from a CSV export); managers
and the employee read it and the derived compliance timeline.
"""
import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from performance360.core.config import settings
from performance360.core.exceptions import ValidationFailedError
from performance360.database import get_db
from performance360.models.user import User
from performance360.routers.auth_deps import get_current_user, require_admin, require_manager
from performance360.schemas.attendance import (
    BulkAttendanceRequest,
    BulkAttendanceResult,
    ComplianceReport,
    ManagerCommentUpdate,
    MonthlyAttendanceCreate,
    MonthlyAttendanceResponse,
    MonthlyAttendanceUpdate,
)
from performance360.services.access_control import AccessControlService
from performance360.services.attendance import AttendanceService
from performance360.services.attendance_compliance import (
    COMPLIANCE_THRESHOLD,
    build_compliance_timeline,
    summarize_compliance,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/monthly-attendance",
    tags=["monthly-attendance"]
)

MAX_CSV_BYTES = 1024 * 1024


@router.get("", response_model=List[MonthlyAttendanceResponse])
def list_attendance(
    user_id: Optional[int] = None,
    year: Optional[int] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return AttendanceService(db).list_records(user_id=user_id, year=year, month=month)


@router.get("/{user_id}", response_model=List[MonthlyAttendanceResponse])
def get_user_attendance(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view your own attendance or your reports."
    )
    return AttendanceService(db).list_for_user(user_id)


@router.get("/{user_id}/compliance", response_model=ComplianceReport)
def get_user_compliance(
    user_id: int,
    months: int = Query(settings.compliance_window_months, ge=1, le=36),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    AccessControlService(db).ensure_user_access(
        current_user, user_id, "Access denied. You can only view your own attendance or your reports."
    )
    records = AttendanceService(db).list_for_user(user_id)
    timeline = build_compliance_timeline(records, months=months)
    return {
        "user_id": user_id,
        "threshold": COMPLIANCE_THRESHOLD,
        "months": [asdict(entry) for entry in timeline],
        "summary": summarize_compliance(timeline),
    }


@router.post("", response_model=MonthlyAttendanceResponse, status_code=status.HTTP_201_CREATED)
def create_attendance(
    data: MonthlyAttendanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return AttendanceService(db).create_record(data)


@router.post("/bulk", response_model=BulkAttendanceResult)
def bulk_upsert_attendance(
    data: BulkAttendanceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    saved, errors = AttendanceService(db).bulk_upsert(data.records)
    return {"success": len(saved), "error_count": len(errors), "results": saved, "errors": errors}


@router.post("/bulk/csv", response_model=BulkAttendanceResult)
async def import_attendance_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    raw = await file.read(MAX_CSV_BYTES + 1)
    if len(raw) > MAX_CSV_BYTES:
        raise ValidationFailedError("CSV file is too large (max 1 MB)")
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationFailedError("CSV file must be UTF-8 encoded")

    saved, errors = AttendanceService(db).import_csv(content)
    logger.info(
        f"CSV attendance import by user {current_user.id}: {len(saved)} saved, {len(errors)} errors",
        extra={"upload_filename": file.filename},
    )
    return {"success": len(saved), "error_count": len(errors), "results": saved, "errors": errors}


@router.put("/{record_id}", response_model=MonthlyAttendanceResponse)
def update_attendance(
    record_id: int,
    data: MonthlyAttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return AttendanceService(db).update_record(record_id, data)


@router.patch("/{record_id}/comment", response_model=MonthlyAttendanceResponse)
def update_manager_comment(
    record_id: int,
    data: ManagerCommentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    """Managers annotate a report's month; the comment is stored as the non-compliance reason."""
    service = AttendanceService(db)
    record = service.get_record(record_id)
    AccessControlService(db).ensure_user_access(
        current_user, record.user_id, "Access denied. You can only comment on your reports' attendance."
    )
    return service.update_comment(record, data.reason_for_non_compliance, current_user.id)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attendance(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    AttendanceService(db).delete_record(record_id)
