"""
Performance records: quarterly ratings, self assessments and
achievements/observations logged by managers.
"""
import enum

from sqlalchemy import Column, Integer, Boolean, Text, Date, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from performance360.database import Base


class Quarter(str, enum.Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"
    ANNUAL = "ANNUAL"  # Self assessments only


class SatisfactionLevel(str, enum.Enum):
    VERY_SATISFIED = "VERY_SATISFIED"
    SOMEWHAT_SATISFIED = "SOMEWHAT_SATISFIED"
    NEITHER = "NEITHER"
    SOMEWHAT_DISSATISFIED = "SOMEWHAT_DISSATISFIED"
    VERY_DISSATISFIED = "VERY_DISSATISFIED"


class QuarterlyPerformance(Base):
    __tablename__ = "quarterly_performances"
    __table_args__ = (
        UniqueConstraint("user_id", "quarter", "year", name="uq_quarterly_performance_user_quarter_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quarter = Column(Enum(Quarter), nullable=False)
    year = Column(Integer, nullable=False)
    rating = Column(Integer, nullable=True)  # 1-5
    is_critical = Column(Boolean, default=False, nullable=False)
    manager_comment = Column(Text, nullable=True)
    hrbp_comment = Column(Text, nullable=True)
    next_action_plan_manager = Column(Text, nullable=True)
    next_action_plan_hrbp = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="quarterly_performances")


class SelfAssessment(Base):
    __tablename__ = "self_assessments"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "quarter", name="uq_self_assessment_user_year_quarter"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    quarter = Column(Enum(Quarter), nullable=True)
    rating = Column(Integer, nullable=True)
    achievements = Column(Text, nullable=True)
    improvements = Column(Text, nullable=True)
    satisfaction_level = Column(Enum(SatisfactionLevel), nullable=True)
    aspirations = Column(Text, nullable=True)
    suggestions_for_team = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="self_assessments")


class AchievementObservation(Base):
    __tablename__ = "achievements_observations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    achievement = Column(Text, nullable=False)
    observation = Column(Text, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    creator = relationship("User", foreign_keys=[created_by])
