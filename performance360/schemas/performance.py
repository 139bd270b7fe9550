from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date as date_type, datetime
from typing import Optional

from performance360.models.performance import Quarter, SatisfactionLevel
from performance360.schemas.user import UserSummary


# --- Quarterly performance ---

class QuarterlyPerformanceCreate(BaseModel):
    user_id: int
    quarter: Quarter
    year: int = Field(..., ge=2020, le=2030)
    rating: Optional[int] = Field(None, ge=1, le=5)
    is_critical: bool = False
    manager_comment: Optional[str] = None
    hrbp_comment: Optional[str] = None
    next_action_plan_manager: Optional[str] = None
    next_action_plan_hrbp: Optional[str] = None

    @field_validator("quarter")
    @classmethod
    def quarterly_only(cls, v: Quarter) -> Quarter:
        if v == Quarter.ANNUAL:
            raise ValueError("quarter must be one of: Q1, Q2, Q3, Q4")
        return v


class QuarterlyPerformanceUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    is_critical: Optional[bool] = None
    manager_comment: Optional[str] = None
    hrbp_comment: Optional[str] = None
    next_action_plan_manager: Optional[str] = None
    next_action_plan_hrbp: Optional[str] = None


class QuarterlyPerformanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    quarter: Quarter
    year: int
    rating: Optional[int] = None
    is_critical: bool
    manager_comment: Optional[str] = None
    hrbp_comment: Optional[str] = None
    next_action_plan_manager: Optional[str] = None
    next_action_plan_hrbp: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


# --- Self assessments ---

class SelfAssessmentBase(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    achievements: Optional[str] = None
    improvements: Optional[str] = None
    satisfaction_level: Optional[SatisfactionLevel] = None
    aspirations: Optional[str] = None
    suggestions_for_team: Optional[str] = None


class SelfAssessmentCreate(SelfAssessmentBase):
    year: int = Field(..., ge=2000, le=2100)
    quarter: Optional[Quarter] = None


class SelfAssessmentUpdate(SelfAssessmentBase):
    year: Optional[int] = Field(None, ge=2000, le=2100)
    quarter: Optional[Quarter] = None


class SelfAssessmentResponse(SelfAssessmentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    year: int
    quarter: Optional[Quarter] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


# --- Achievements & observations ---

class AchievementObservationCreate(BaseModel):
    user_id: int
    date: date_type
    achievement: str = Field(..., min_length=1)
    observation: str = Field(..., min_length=1)


class AchievementObservationUpdate(BaseModel):
    date: Optional[date_type] = None
    achievement: Optional[str] = Field(None, min_length=1)
    observation: Optional[str] = Field(None, min_length=1)


class AchievementObservationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    date: date_type
    achievement: str
    observation: str
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    creator: Optional[UserSummary] = None
