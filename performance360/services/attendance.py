"""
Monthly attendance records: validation, persistence and bulk import.
"""
import csv
import io
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from performance360.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from performance360.models.monthly_attendance import MonthlyAttendance
from performance360.models.user import User
from performance360.schemas.attendance import MonthlyAttendanceCreate, MonthlyAttendanceUpdate
from performance360.services.attendance_compliance import calculate_attendance_percentage
from performance360.services.base import BaseService

MIN_YEAR = 2020
MAX_YEAR = 2030
MAX_WORKING_DAYS = 31

_TRUE_VALUES = {"true", "yes", "y", "1"}
_FALSE_VALUES = {"false", "no", "n", "0"}

# CSV header aliases -> field names
CSV_COLUMNS = {
    "user_id": "user_id",
    "userid": "user_id",
    "email": "email",
    "month": "month",
    "year": "year",
    "working_days": "working_days",
    "workingdays": "working_days",
    "present_in_office": "present_in_office",
    "presentinoffice": "present_in_office",
    "leaves_availed": "leaves_availed",
    "leavesavailed": "leaves_availed",
    "leave_notifications_in_teams_channel": "leave_notifications_in_teams_channel",
    "leavenotificationsinteamschannel": "leave_notifications_in_teams_channel",
    "weekly_compliance": "weekly_compliance",
    "weeklycompliance": "weekly_compliance",
    "exception_approved": "exception_approved",
    "exceptionapproved": "exception_approved",
    "reason_for_non_compliance": "reason_for_non_compliance",
    "reasonfornoncompliance": "reason_for_non_compliance",
}


def validate_attendance_values(
    working_days: int,
    present_in_office: int,
    leaves_availed: int = 0,
    leave_notifications: int = 0,
    month: Optional[int] = None,
    year: Optional[int] = None,
):
    """Raises ValidationFailedError describing the first out-of-range value."""
    if month is not None and not 1 <= month <= 12:
        raise ValidationFailedError("month must be between 1 and 12", {"field": "month"})
    if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationFailedError(f"year must be between {MIN_YEAR} and {MAX_YEAR}", {"field": "year"})
    if not 0 <= working_days <= MAX_WORKING_DAYS:
        raise ValidationFailedError(f"working_days must be between 0 and {MAX_WORKING_DAYS}", {"field": "working_days"})
    if not 0 <= leaves_availed <= working_days:
        raise ValidationFailedError("leaves_availed must be between 0 and working_days", {"field": "leaves_availed"})
    if not 0 <= present_in_office <= working_days - leaves_availed:
        raise ValidationFailedError(
            "present_in_office must be between 0 and effective working days (working_days - leaves_availed)",
            {"field": "present_in_office"},
        )
    if leave_notifications < 0:
        raise ValidationFailedError("leave_notifications_in_teams_channel must be >= 0", {"field": "leave_notifications_in_teams_channel"})


def parse_tri_state(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized == "":
        return None
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"expected yes/no/true/false or blank, got '{value}'")


class AttendanceService(BaseService):

    def get_record(self, record_id: int) -> MonthlyAttendance:
        record = self.db.query(MonthlyAttendance).filter(MonthlyAttendance.id == record_id).first()
        if not record:
            raise NotFoundError("Monthly attendance record not found")
        return record

    def list_for_user(self, user_id: int) -> List[MonthlyAttendance]:
        return (
            self.db.query(MonthlyAttendance)
            .filter(MonthlyAttendance.user_id == user_id)
            .order_by(MonthlyAttendance.year.desc(), MonthlyAttendance.month.desc())
            .all()
        )

    def list_records(self, user_id: Optional[int] = None, year: Optional[int] = None, month: Optional[int] = None):
        query = self.db.query(MonthlyAttendance)
        if user_id:
            query = query.filter(MonthlyAttendance.user_id == user_id)
        if year:
            query = query.filter(MonthlyAttendance.year == year)
        if month:
            query = query.filter(MonthlyAttendance.month == month)
        return query.order_by(MonthlyAttendance.year.desc(), MonthlyAttendance.month.desc()).all()

    def _find(self, user_id: int, month: int, year: int) -> Optional[MonthlyAttendance]:
        return self.db.query(MonthlyAttendance).filter(
            MonthlyAttendance.user_id == user_id,
            MonthlyAttendance.month == month,
            MonthlyAttendance.year == year,
        ).first()

    def _validate_new(self, data: MonthlyAttendanceCreate):
        validate_attendance_values(
            data.working_days,
            data.present_in_office,
            data.leaves_availed,
            data.leave_notifications_in_teams_channel,
            month=data.month,
            year=data.year,
        )
        if not self.db.query(User.id).filter(User.id == data.user_id).first():
            raise NotFoundError("User not found")

    def _apply(self, record: MonthlyAttendance, data: MonthlyAttendanceCreate):
        record.working_days = data.working_days
        record.present_in_office = data.present_in_office
        record.leaves_availed = data.leaves_availed
        record.leave_notifications_in_teams_channel = data.leave_notifications_in_teams_channel
        record.weekly_compliance = data.weekly_compliance
        record.exception_approved = data.exception_approved
        record.reason_for_non_compliance = data.reason_for_non_compliance or None
        record.attendance_percentage = calculate_attendance_percentage(
            data.working_days, data.present_in_office, data.leaves_availed
        )

    def create_record(self, data: MonthlyAttendanceCreate) -> MonthlyAttendance:
        self._validate_new(data)
        if self._find(data.user_id, data.month, data.year):
            raise ConflictError("A monthly attendance record already exists for this user, month, and year")

        record = MonthlyAttendance(user_id=data.user_id, month=data.month, year=data.year)
        self._apply(record, data)
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert for the same period
            self.db.rollback()
            raise ConflictError("A monthly attendance record already exists for this user, month, and year")
        self.db.refresh(record)
        self.log_info(
            f"Created monthly attendance record for user {data.user_id}, {data.month}/{data.year}",
            record_id=record.id,
        )
        return record

    def update_record(self, record_id: int, data: MonthlyAttendanceUpdate) -> MonthlyAttendance:
        record = self.get_record(record_id)
        changes = data.model_dump(exclude_unset=True)

        working_days = changes.get("working_days", record.working_days)
        present = changes.get("present_in_office", record.present_in_office)
        leaves = changes.get("leaves_availed", record.leaves_availed)
        notifications = changes.get(
            "leave_notifications_in_teams_channel", record.leave_notifications_in_teams_channel
        )
        # Unset numeric fields fall back to the stored values
        working_days = record.working_days if working_days is None else working_days
        present = record.present_in_office if present is None else present
        leaves = record.leaves_availed if leaves is None else leaves
        notifications = record.leave_notifications_in_teams_channel if notifications is None else notifications
        validate_attendance_values(working_days, present, leaves, notifications)

        record.working_days = working_days
        record.present_in_office = present
        record.leaves_availed = leaves
        record.leave_notifications_in_teams_channel = notifications
        # Tri-state flags accept an explicit null
        if "weekly_compliance" in changes:
            record.weekly_compliance = changes["weekly_compliance"]
        if "exception_approved" in changes:
            record.exception_approved = changes["exception_approved"]
        if "reason_for_non_compliance" in changes:
            record.reason_for_non_compliance = changes["reason_for_non_compliance"] or None

        if {"working_days", "present_in_office", "leaves_availed"} & changes.keys():
            record.attendance_percentage = calculate_attendance_percentage(working_days, present, leaves)

        self.commit()
        self.db.refresh(record)
        self.log_info(f"Updated monthly attendance record {record_id}")
        return record

    def update_comment(self, record: MonthlyAttendance, comment: Optional[str], author_id: int) -> MonthlyAttendance:
        record.reason_for_non_compliance = comment or None
        self.commit()
        self.db.refresh(record)
        self.log_info(
            f"Updated manager comment for monthly attendance record {record.id} by user {author_id}"
        )
        return record

    def delete_record(self, record_id: int):
        record = self.get_record(record_id)
        self.db.delete(record)
        self.commit()
        self.log_info(f"Deleted monthly attendance record {record_id}")

    def bulk_upsert(
        self,
        records: List[MonthlyAttendanceCreate],
        row_numbers: Optional[List[int]] = None,
    ) -> Tuple[List[MonthlyAttendance], List[Dict[str, Any]]]:
        """
        Create or overwrite one record per (user, month, year).

        Invalid rows are reported back and skipped; they never abort the
        batch. Rows are numbered from 1 unless ``row_numbers`` supplies the
        number to report for each record. When the same period appears twice
        the later row wins.
        """
        row_numbers = row_numbers or list(range(1, len(records) + 1))
        pending: Dict[Tuple[int, int, int], MonthlyAttendance] = {}
        errors: List[Dict[str, Any]] = []

        for row, data in zip(row_numbers, records):
            try:
                self._validate_new(data)
            except (ValidationFailedError, NotFoundError) as e:
                errors.append({"row": row, "user_id": data.user_id, "error": e.message})
                continue

            key = (data.user_id, data.month, data.year)
            record = pending.get(key) or self._find(*key)
            if record is None:
                record = MonthlyAttendance(user_id=data.user_id, month=data.month, year=data.year)
                self.db.add(record)
            self._apply(record, data)
            pending[key] = record

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Attendance records changed during the bulk update; please retry")

        saved = list(pending.values())
        for record in saved:
            self.db.refresh(record)
        self.log_info(f"Bulk update: {len(saved)} records processed, {len(errors)} errors")
        return saved, errors

    def import_csv(self, content: str) -> Tuple[List[MonthlyAttendance], List[Dict[str, Any]]]:
        """
        Parse an attendance CSV export and upsert its rows.

        The header row names the columns (snake_case or camelCase); users are
        identified by a ``user_id`` or an ``email`` column. Row numbers in the
        returned errors count the header as row 1.
        """
        reader = csv.DictReader(io.StringIO(content.lstrip("﻿")))
        if not reader.fieldnames:
            raise ValidationFailedError("CSV file is empty")

        columns = {}
        for header in reader.fieldnames:
            key = (header or "").strip().lower().replace(" ", "_")
            field = CSV_COLUMNS.get(key) or CSV_COLUMNS.get(key.replace("_", ""))
            if field:
                columns[header] = field
        if "user_id" not in columns.values() and "email" not in columns.values():
            raise ValidationFailedError("CSV must contain a user_id or email column")

        emails = {}
        parsed: List[Tuple[int, MonthlyAttendanceCreate]] = []
        errors: List[Dict[str, Any]] = []

        for line_number, raw in enumerate(reader, start=2):
            row = {field: (raw.get(header) or "").strip() for header, field in columns.items()}
            if not any(row.values()):
                continue
            email = row.get("email") or None
            try:
                user_id = int(row["user_id"]) if row.get("user_id") else None
                if user_id is None and email:
                    if email not in emails:
                        match = self.db.query(User.id).filter(User.email == email).first()
                        emails[email] = match[0] if match else None
                    user_id = emails[email]
                if user_id is None:
                    raise ValueError("unknown user")
                data = MonthlyAttendanceCreate(
                    user_id=user_id,
                    month=int(row.get("month") or 0),
                    year=int(row.get("year") or 0),
                    working_days=int(row.get("working_days") or 0),
                    present_in_office=int(row.get("present_in_office") or 0),
                    leaves_availed=int(row.get("leaves_availed") or 0),
                    leave_notifications_in_teams_channel=int(row.get("leave_notifications_in_teams_channel") or 0),
                    weekly_compliance=parse_tri_state(row.get("weekly_compliance")),
                    exception_approved=parse_tri_state(row.get("exception_approved")),
                    reason_for_non_compliance=row.get("reason_for_non_compliance") or None,
                )
            except ValueError as e:
                errors.append({"row": line_number, "email": email, "error": f"Invalid row: {e}"})
                continue
            parsed.append((line_number, data))

        saved, row_errors = self.bulk_upsert(
            [data for _, data in parsed],
            row_numbers=[line_number for line_number, _ in parsed],
        )
        errors.extend(row_errors)
        errors.sort(key=lambda e: e["row"])
        return saved, errors
