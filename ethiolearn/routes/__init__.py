"""API routes."""

from .auth import router as auth_router
from .courses import router as courses_router
from .dashboard import router as dashboard_router
from .jobs import applications_router
from .jobs import router as jobs_router
from .payments import router as payments_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "courses_router",
    "payments_router",
    "jobs_router",
    "applications_router",
]
