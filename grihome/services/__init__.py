"""
Service layer for business logic.
"""

from .auth import AuthService
from .builder import BuilderService
from .project import ProjectService
from .property import PropertyService
from .interest import InterestService
from .ad import AdService
from .forum import ForumService
from .agent import AgentService
from .admin import AdminService
from .project_request import ProjectRequestService
from .reminders import PromotionReminderService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "BuilderService",
    "ProjectService",
    "PropertyService",
    "InterestService",
    "AdService",
    "ForumService",
    "AgentService",
    "AdminService",
    "ProjectRequestService",
    "PromotionReminderService",
    "ErrorHandlerService",
]
