from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any, Dict, Optional

from performance360.models.feedback import FeedbackStatus
from performance360.models.performance import Quarter
from performance360.models.user import UserRole


class FeedbackParticipant(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    role: UserRole


class FeedbackPeriod(BaseModel):
    receiver_id: int
    year: int = Field(..., ge=2020, le=2030)
    quarter: Quarter
    feedback_provider: str = Field(..., min_length=1)

    @field_validator("quarter")
    @classmethod
    def quarterly_only(cls, v: Quarter) -> Quarter:
        if v == Quarter.ANNUAL:
            raise ValueError("quarter must be one of: Q1, Q2, Q3, Q4")
        return v


class ColleagueFeedbackCreate(FeedbackPeriod):
    rating: Optional[int] = Field(None, ge=1, le=5)
    is_anonymous: bool = False
    is_public: bool = False
    appreciation: Optional[str] = None
    improvement: Optional[str] = None
    would_work_again: Optional[bool] = None


class ColleagueFeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: Optional[int] = None
    receiver_id: int
    year: int
    quarter: Quarter
    rating: Optional[int] = None
    is_anonymous: bool
    is_public: bool
    feedback_provider: str
    appreciation: Optional[str] = None
    improvement: Optional[str] = None
    would_work_again: Optional[bool] = None
    status: FeedbackStatus
    created_at: Optional[datetime] = None
    sender: Optional[FeedbackParticipant] = None
    receiver: Optional[FeedbackParticipant] = None


class FeedbackStatusUpdate(BaseModel):
    status: FeedbackStatus


class ManagerFeedbackCreate(FeedbackPeriod):
    manager_satisfaction: Optional[str] = None
    leadership_style: Optional[Dict[str, Any]] = None
    career_growth: Optional[Dict[str, Any]] = None
    coaching_caring: Optional[Dict[str, Any]] = None
    manager_overall_rating: Optional[int] = Field(None, ge=1, le=5)
    appreciation: Optional[str] = None
    improvement_areas: Optional[str] = None


class ManagerFeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    year: int
    quarter: Quarter
    feedback_provider: str
    manager_satisfaction: Optional[str] = None
    leadership_style: Optional[Dict[str, Any]] = None
    career_growth: Optional[Dict[str, Any]] = None
    coaching_caring: Optional[Dict[str, Any]] = None
    manager_overall_rating: Optional[int] = None
    appreciation: Optional[str] = None
    improvement_areas: Optional[str] = None
    created_at: Optional[datetime] = None
    sender: Optional[FeedbackParticipant] = None
    receiver: Optional[FeedbackParticipant] = None
