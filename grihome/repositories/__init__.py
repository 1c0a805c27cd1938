"""
Repository layer for data access.
"""

from .base import BaseRepository
from .user import UserRepository
from .otp import OtpRepository
from .location import LocationRepository
from .builder import BuilderRepository
from .project import ProjectRepository, ProjectAgentRepository, ProjectPropertyRepository, ProjectSearchFilters
from .property import PropertyRepository, SavedPropertyRepository, PropertySearchFilters
from .interest import InterestRepository
from .project_request import ProjectRequestRepository
from .ad import AdSlotRepository, AdRepository
from .forum import ForumCategoryRepository, ForumPostRepository, ForumReplyRepository, ReactionRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "OtpRepository",
    "LocationRepository",
    "BuilderRepository",
    "ProjectRepository",
    "ProjectAgentRepository",
    "ProjectPropertyRepository",
    "ProjectSearchFilters",
    "PropertyRepository",
    "SavedPropertyRepository",
    "PropertySearchFilters",
    "InterestRepository",
    "ProjectRequestRepository",
    "AdSlotRepository",
    "AdRepository",
    "ForumCategoryRepository",
    "ForumPostRepository",
    "ForumReplyRepository",
    "ReactionRepository",
]
