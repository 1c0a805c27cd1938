"""
Pydantic schemas for account responses, profile and password updates.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from grihome.models.user import UserRole
from grihome.utils.validators import normalize_mobile


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    id: str = Field(..., description="User's unique identifier")
    first_name: str
    last_name: str
    name: str = Field(..., description="First and last name", examples=["Asha Rao"])
    username: str = Field(..., examples=["asha.rao"])
    email: str = Field(..., examples=["asha@example.com"])
    mobile_number: Optional[str] = Field(None, examples=["+919876543210"])
    role: UserRole
    is_active: bool
    company_name: Optional[str] = None
    license_number: Optional[str] = None
    image_url: Optional[str] = None
    is_email_verified: bool
    is_mobile_verified: bool
    is_verified: bool = Field(..., description="Email or mobile number confirmed")
    created_at: Optional[datetime] = None


class PublicUserResponse(BaseModel):
    """Author or owner card shown next to listings and posts."""

    id: str
    name: str
    username: str
    image_url: Optional[str] = None
    company_name: Optional[str] = None
    role: UserRole


class VerificationStatusResponse(BaseModel):
    is_email_verified: bool
    is_mobile_verified: bool
    is_verified: bool
    email: str
    mobile_number: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=255)
    license_number: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=1024, description="Already uploaded image URL")
    mobile_number: Optional[str] = Field(
        None,
        description="Changing the number clears its verification",
        examples=["+919876543210"]
    )

    @field_validator("first_name", "last_name", "company_name", "license_number")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if v is not None else v

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile(cls, v):
        if v is None or not v.strip():
            return None
        return normalize_mobile(v)


class PasswordChangeRequest(BaseModel):
    current_password: Optional[str] = Field(
        None,
        description="Required when the account already has a password"
    )
    new_password: str = Field(..., min_length=8, max_length=128)


class ListingOption(BaseModel):
    id: str
    title: str
    kind: str = Field(..., description="property or project")
    price: Optional[float] = None
    thumbnail_url: Optional[str] = None
    city: Optional[str] = None


class ActiveListingsResponse(BaseModel):
    """Listings a user may advertise in an ad slot."""

    properties: List[ListingOption]
    projects: List[ListingOption]
    has_active_listings: bool
