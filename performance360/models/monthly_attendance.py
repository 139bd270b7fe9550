from sqlalchemy import Column, Integer, Float, Boolean, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from performance360.database import Base


class MonthlyAttendance(Base):
    __tablename__ = "monthly_attendances"
    __table_args__ = (
        UniqueConstraint("user_id", "month", "year", name="uq_monthly_attendance_user_month_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(Integer, nullable=False)  # 1-12
    year = Column(Integer, nullable=False)

    working_days = Column(Integer, nullable=False)
    present_in_office = Column(Integer, nullable=False)
    leaves_availed = Column(Integer, default=0, nullable=False)
    leave_notifications_in_teams_channel = Column(Integer, default=0, nullable=False)

    # NULL when there were no effective working days
    attendance_percentage = Column(Float, nullable=True)

    # Tri-state flags: True / False / NULL (not set)
    weekly_compliance = Column(Boolean, nullable=True)
    exception_approved = Column(Boolean, nullable=True)

    # Doubles as the manager comment on the record
    reason_for_non_compliance = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="monthly_attendances")

    def __repr__(self):
        return f"<MonthlyAttendance user={self.user_id} {self.month}/{self.year}>"
