from coursegate.web.routers.admin import router as admin_router
from coursegate.web.routers.auth import router as auth_router
from coursegate.web.routers.courses import router as courses_router
from coursegate.web.routers.notifications import router as notifications_router
from coursegate.web.routers.profile import router as profile_router

__all__ = [
    "admin_router",
    "auth_router",
    "courses_router",
    "notifications_router",
    "profile_router",
]
