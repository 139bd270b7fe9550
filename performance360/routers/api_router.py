from fastapi import APIRouter
from performance360.routers import (
    achievements, assessments, auth, colleague_feedback, manager_feedback,
    monthly_attendance, quarterly_performance, sessions, users
)

# Routers are aggregated here; main.py only imports this hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(monthly_attendance.router, tags=["Monthly Attendance"])
api_router.include_router(quarterly_performance.router, tags=["Quarterly Performance"])
api_router.include_router(assessments.router, tags=["Self Assessments"])
api_router.include_router(colleague_feedback.router, tags=["Colleague Feedback"])
api_router.include_router(manager_feedback.router, tags=["Manager Feedback"])
api_router.include_router(achievements.router, tags=["Achievements & Observations"])
api_router.include_router(sessions.router, tags=["Sessions"])
