from fastapi import APIRouter

from app.modules.auth.router import router as auth_router
from app.modules.notifications.messages_router import router as messages_router
from app.modules.notifications.router import router as notifications_router
from app.modules.opportunities.router import router as opportunities_router
from app.modules.opportunities.saved_router import router as saved_router
from app.modules.reports.router import router as reports_router
from app.modules.schools.classrooms_router import router as classrooms_router
from app.modules.schools.router import router as schools_router
from app.modules.sessions.router import router as sessions_router
from app.modules.signups.router import router as signups_router
from app.modules.users.router import router as users_router
from app.modules.verification.router import router as verification_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])

api_router.include_router(opportunities_router, prefix="/opportunities", tags=["Opportunities"])
api_router.include_router(saved_router, prefix="/saved", tags=["Saved Opportunities"])
api_router.include_router(signups_router, prefix="/signups", tags=["Signups"])
api_router.include_router(sessions_router, prefix="/sessions", tags=["Sessions"])
api_router.include_router(verification_router, prefix="/verification", tags=["Verification"])

api_router.include_router(schools_router, prefix="/schools", tags=["Schools"])
api_router.include_router(classrooms_router, prefix="/classrooms", tags=["Classrooms"])

api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(messages_router, prefix="/messages", tags=["Messages"])
api_router.include_router(reports_router, prefix="/reports", tags=["Reports"])
