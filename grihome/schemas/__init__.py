"""
Pydantic schemas for request/response validation.
"""

from .common import MessageResponse, PageMeta, LocationInput, LocationResponse
from .user import UserResponse, PublicUserResponse

__all__ = [
    "MessageResponse",
    "PageMeta",
    "LocationInput",
    "LocationResponse",
    "UserResponse",
    "PublicUserResponse",
]
