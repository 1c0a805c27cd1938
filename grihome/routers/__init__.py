"""
API route handlers for the Grihome API.
"""

from .auth import router as auth_router
from .users import router as users_router
from .builders import router as builders_router
from .projects import router as projects_router
from .properties import router as properties_router
from .interests import router as interests_router
from .ads import router as ads_router
from .forum import router as forum_router
from .cron import router as cron_router
from .agents import router as agents_router
from .admin import router as admin_router
from .project_requests import router as project_requests_router

__all__ = [
    "auth_router",
    "users_router",
    "builders_router",
    "projects_router",
    "properties_router",
    "interests_router",
    "ads_router",
    "forum_router",
    "cron_router",
    "agents_router",
    "admin_router",
    "project_requests_router",
]
