from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from performance360.database import Base
from performance360.models.performance import Quarter


class FeedbackStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class ColleagueFeedback(Base):
    __tablename__ = "colleague_feedback"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    quarter = Column(Enum(Quarter), nullable=False)
    rating = Column(Integer, nullable=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    feedback_provider = Column(String, nullable=False)
    appreciation = Column(Text, nullable=True)
    improvement = Column(Text, nullable=True)
    would_work_again = Column(Boolean, nullable=True)
    status = Column(Enum(FeedbackStatus), default=FeedbackStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


class ManagerFeedback(Base):
    __tablename__ = "manager_feedback"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    quarter = Column(Enum(Quarter), nullable=False)
    feedback_provider = Column(String, nullable=False)
    manager_satisfaction = Column(String, nullable=True)
    leadership_style = Column(JSON, nullable=True)
    career_growth = Column(JSON, nullable=True)
    coaching_caring = Column(JSON, nullable=True)
    manager_overall_rating = Column(Integer, nullable=True)
    appreciation = Column(Text, nullable=True)
    improvement_areas = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])
