"""
Monthly attendance compliance.

Pure functions: no database access. The percentage is the only derived value
that gets stored; the weekly-compliance and exception-approved flags are
supplied by HR and only combined here for display.
"""
import enum
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from performance360.core.config import settings

COMPLIANCE_THRESHOLD = settings.compliance_threshold

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


class ComplianceStatus(str, enum.Enum):
    EXCEPTION = "EXCEPTION"                        # grey
    NON_COMPLIANT = "NON_COMPLIANT"                # red
    COMPLIANT = "COMPLIANT"                        # green
    WEEKLY_NON_COMPLIANT = "WEEKLY_NON_COMPLIANT"  # blue
    NO_DATA = "NO_DATA"                            # grey

    @property
    def color(self) -> str:
        return STATUS_COLORS[self]


STATUS_COLORS = {
    ComplianceStatus.EXCEPTION: "grey",
    ComplianceStatus.NON_COMPLIANT: "red",
    ComplianceStatus.COMPLIANT: "green",
    ComplianceStatus.WEEKLY_NON_COMPLIANT: "blue",
    ComplianceStatus.NO_DATA: "grey",
}


def calculate_attendance_percentage(
    working_days: Optional[int],
    present_in_office: Optional[int],
    leaves_availed: Optional[int] = 0,
) -> Optional[float]:
    """
    Percentage of effective working days spent in the office.

    Effective working days are ``working_days - leaves_availed``. Returns
    None (N/A) when there are no effective working days or the inputs are
    missing.
    """
    if working_days is None or present_in_office is None:
        return None
    effective_days = working_days - (leaves_availed or 0)
    if effective_days <= 0:
        return None
    return present_in_office / effective_days * 100


def is_monthly_compliant(attendance_percentage: Optional[float], threshold: float = COMPLIANCE_THRESHOLD) -> Optional[bool]:
    if attendance_percentage is None:
        return None
    return attendance_percentage >= threshold


def classify_month(
    attendance_percentage: Optional[float],
    weekly_compliance: Optional[bool] = None,
    exception_approved: Optional[bool] = None,
    threshold: float = COMPLIANCE_THRESHOLD,
) -> ComplianceStatus:
    """
    Display status of a month. An approved exception wins over everything;
    otherwise the percentage decides red vs. compliant, and an explicit
    weekly non-compliance turns a compliant month blue.
    """
    if exception_approved is True:
        return ComplianceStatus.EXCEPTION
    if attendance_percentage is None:
        return ComplianceStatus.NO_DATA
    if attendance_percentage < threshold:
        return ComplianceStatus.NON_COMPLIANT
    if weekly_compliance is not False:
        return ComplianceStatus.COMPLIANT
    return ComplianceStatus.WEEKLY_NON_COMPLIANT


def has_leave_mismatch(leaves_availed: Optional[int], leave_notifications: Optional[int]) -> bool:
    """Leaves booked in the HR system disagree with notifications posted in Teams."""
    return (leaves_availed or 0) != (leave_notifications or 0)


@dataclass
class MonthCompliance:
    month: int
    year: int
    month_label: str
    record_id: Optional[int]
    working_days: int
    present_in_office: int
    leaves_availed: int
    leave_notifications_in_teams_channel: int
    attendance_percentage: Optional[float]
    monthly_compliant: Optional[bool]
    weekly_compliance: Optional[bool]
    exception_approved: Optional[bool]
    status: ComplianceStatus
    color: str
    leave_mismatch: bool
    reason_for_non_compliance: Optional[str]


def _trailing_months(months: int, today: date):
    for offset in range(months - 1, -1, -1):
        month = today.month - offset
        year = today.year
        while month <= 0:
            month += 12
            year -= 1
        yield month, year


def build_compliance_timeline(records: Iterable, months: int = 12, today: Optional[date] = None) -> List[MonthCompliance]:
    """
    One entry per calendar month for the trailing window ending at
    ``today``'s month, oldest first. Months without a record are NO_DATA.

    ``records`` are MonthlyAttendance rows (or anything with the same
    attributes).
    """
    today = today or date.today()
    by_period = {(r.month, r.year): r for r in records}

    timeline = []
    for month, year in _trailing_months(months, today):
        record = by_period.get((month, year))
        label = f"{MONTH_NAMES[month - 1]} {year}"
        if record is None:
            timeline.append(MonthCompliance(
                month=month,
                year=year,
                month_label=label,
                record_id=None,
                working_days=0,
                present_in_office=0,
                leaves_availed=0,
                leave_notifications_in_teams_channel=0,
                attendance_percentage=None,
                monthly_compliant=None,
                weekly_compliance=None,
                exception_approved=None,
                status=ComplianceStatus.NO_DATA,
                color=ComplianceStatus.NO_DATA.color,
                leave_mismatch=False,
                reason_for_non_compliance=None,
            ))
            continue

        percentage = record.attendance_percentage
        status = classify_month(percentage, record.weekly_compliance, record.exception_approved)
        timeline.append(MonthCompliance(
            month=month,
            year=year,
            month_label=label,
            record_id=record.id,
            working_days=record.working_days or 0,
            present_in_office=record.present_in_office or 0,
            leaves_availed=record.leaves_availed or 0,
            leave_notifications_in_teams_channel=record.leave_notifications_in_teams_channel or 0,
            attendance_percentage=percentage,
            monthly_compliant=is_monthly_compliant(percentage),
            weekly_compliance=record.weekly_compliance,
            exception_approved=record.exception_approved,
            status=status,
            color=status.color,
            leave_mismatch=has_leave_mismatch(record.leaves_availed, record.leave_notifications_in_teams_channel),
            reason_for_non_compliance=record.reason_for_non_compliance,
        ))
    return timeline


def summarize_compliance(timeline: List[MonthCompliance]) -> dict:
    with_data = [m for m in timeline if m.attendance_percentage is not None]
    average = (
        sum(m.attendance_percentage for m in with_data) / len(with_data)
        if with_data else None
    )
    return {
        "total_months": len(timeline),
        "months_with_data": len(with_data),
        "monthly_compliant_months": sum(1 for m in with_data if m.monthly_compliant),
        "exception_months": sum(1 for m in timeline if m.status == ComplianceStatus.EXCEPTION),
        "leave_mismatch_months": sum(1 for m in timeline if m.leave_mismatch),
        "average_attendance_percentage": round(average, 1) if average is not None else None,
    }
