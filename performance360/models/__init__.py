# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, monthly_attendance, performance, feedback

# Explicit class exports for cleaner imports
from .user import User, UserRole, UserSession
from .monthly_attendance import MonthlyAttendance
from .performance import (
    Quarter,
    SatisfactionLevel,
    QuarterlyPerformance,
    SelfAssessment,
    AchievementObservation,
)
from .feedback import FeedbackStatus, ColleagueFeedback, ManagerFeedback

__all__ = [
    "User",
    "UserRole",
    "UserSession",
    "MonthlyAttendance",
    "Quarter",
    "SatisfactionLevel",
    "QuarterlyPerformance",
    "SelfAssessment",
    "AchievementObservation",
    "FeedbackStatus",
    "ColleagueFeedback",
    "ManagerFeedback",
]
