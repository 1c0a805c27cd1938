"""
Database models for the Grihome API.
"""

from grihome.models.user import User, UserRole
from grihome.models.otp import OtpCode
from grihome.models.location import Location
from grihome.models.builder import Builder
from grihome.models.project import Project, ProjectType, ProjectAgent, ProjectProperty
from grihome.models.property import Property, PropertyType, ListingType, ListingStatus, SavedProperty
from grihome.models.interest import Interest
from grihome.models.project_request import ProjectRequest, ProjectRequestStatus
from grihome.models.ad import AdSlotConfig, Ad, AdStatus, PaymentStatus, PaymentMethod
from grihome.models.forum import (
    ForumCategory,
    ForumPost,
    ForumReply,
    PostReaction,
    ReplyReaction,
    ReactionType,
)

__all__ = [
    "User",
    "UserRole",
    "OtpCode",
    "Location",
    "Builder",
    "Project",
    "ProjectType",
    "ProjectAgent",
    "ProjectProperty",
    "Property",
    "PropertyType",
    "ListingType",
    "ListingStatus",
    "SavedProperty",
    "Interest",
    "ProjectRequest",
    "ProjectRequestStatus",
    "AdSlotConfig",
    "Ad",
    "AdStatus",
    "PaymentStatus",
    "PaymentMethod",
    "ForumCategory",
    "ForumPost",
    "ForumReply",
    "PostReaction",
    "ReplyReaction",
    "ReactionType",
]
