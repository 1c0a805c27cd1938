"""
Account endpoints for the signed-in user: verification state, profile, password and own listings.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from grihome.models.property import ListingStatus
from grihome.models.user import User
from grihome.services.auth import AuthService
from grihome.services.property import PropertyService
from grihome.schemas.common import MessageResponse
from grihome.schemas.property import PropertyResponse, UserPropertiesResponse
from grihome.schemas.user import (
    UserResponse,
    VerificationStatusResponse,
    ProfileUpdateRequest,
    PasswordChangeRequest,
    ActiveListingsResponse,
)
from grihome.utils.dependencies import get_auth_service, get_property_service, get_current_active_user

router = APIRouter(prefix="/user", tags=["User"])


@router.get(
    "/verification-status",
    response_model=VerificationStatusResponse,
    summary="Email and mobile verification state"
)
async def verification_status(
    current_user: User = Depends(get_current_active_user)
) -> VerificationStatusResponse:
    return VerificationStatusResponse(
        is_email_verified=current_user.is_email_verified,
        is_mobile_verified=current_user.is_mobile_verified,
        is_verified=current_user.is_verified,
        email=current_user.email,
        mobile_number=current_user.mobile_number,
    )


@router.get("/info", response_model=UserResponse, summary="Account details")
async def user_info(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update profile",
    description="Changing the mobile number clears its verification"
)
async def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    """
    Raises:
        DuplicateResourceError: Mobile number belongs to another account
    """
    updated = await auth_service.update_profile(current_user, data.model_dump(exclude_unset=True))
    return UserResponse.model_validate(updated.to_dict())


@router.put("/password", response_model=MessageResponse, summary="Change password")
async def change_password(
    data: PasswordChangeRequest,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    """
    Raises:
        InvalidCredentialsError: Current password missing or wrong
    """
    await auth_service.change_password(current_user, data.current_password, data.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get(
    "/properties",
    response_model=UserPropertiesResponse,
    summary="Own listings",
    description="All of the caller's properties, optionally one listing status"
)
async def user_properties(
    status: Optional[ListingStatus] = Query(None, description="ACTIVE, SOLD or ARCHIVED"),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> UserPropertiesResponse:
    properties, counts = await property_service.list_user_properties(current_user, status)
    return UserPropertiesResponse(
        properties=[PropertyResponse.model_validate(p.to_dict()) for p in properties],
        total=len(properties),
        counts=counts,
    )


@router.get(
    "/active-listings",
    response_model=ActiveListingsResponse,
    summary="Listings available for advertising",
    description="Own ACTIVE properties and projects whose builder lists the caller's email"
)
async def active_listings(
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> ActiveListingsResponse:
    return ActiveListingsResponse(**await property_service.active_listings(current_user))
