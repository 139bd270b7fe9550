"""
User model and the reports-to hierarchy.

Each user points at (at most) one manager through ``manager_id``, so the
organisation forms a forest. The schema does not prevent loops; traversals
in ``services.access_control`` guard against them.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from performance360.database import Base


class UserRole(str, enum.Enum):
    """
    User roles.

    - ADMIN: Full access to every user's data
    - MANAGER: Access to direct and indirect reports
    - EMPLOYEE: Self-service access
    """
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    position = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)

    # Reports-to hierarchy
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    manager = relationship("User", remote_side=[id], back_populates="reports")
    reports = relationship("User", back_populates="manager")
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    monthly_attendances = relationship("MonthlyAttendance", back_populates="user", cascade="all, delete-orphan")
    quarterly_performances = relationship("QuarterlyPerformance", back_populates="user", cascade="all, delete-orphan")
    self_assessments = relationship("SelfAssessment", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_manager(self) -> bool:
        """Managers and admins can act on other users' records."""
        return self.role in [UserRole.ADMIN, UserRole.MANAGER]


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    refresh_token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_activity_at = Column(DateTime(timezone=True), server_default=func.now())
    is_revoked = Column(Boolean, default=False, nullable=False)

    # Session metadata
    user_agent = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)

    user = relationship("User", back_populates="sessions")
