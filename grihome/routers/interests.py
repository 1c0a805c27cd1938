"""
Interest endpoints for projects and single listings.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from grihome.models.user import User
from grihome.services.interest import InterestService
from grihome.schemas.interest import InterestCreate, InterestResponse, InterestCheckResponse
from grihome.utils.dependencies import get_interest_service, get_current_active_user
import uuid

router = APIRouter(prefix="/interests", tags=["Interests"])


@router.post(
    "/express",
    response_model=InterestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Express interest",
    description="Records interest in a project or property and emails the builder contacts or the owner"
)
async def express_interest(
    data: InterestCreate,
    current_user: User = Depends(get_current_active_user),
    interest_service: InterestService = Depends(get_interest_service)
) -> InterestResponse:
    """
    Raises:
        NotFoundError: Project or property does not exist
        DuplicateResourceError: Interest already recorded
    """
    interest, notified = await interest_service.express_interest(
        current_user,
        project_id=data.project_id,
        property_id=data.property_id,
        message=data.message
    )
    return InterestResponse(
        id=str(interest.id),
        project_id=str(interest.project_id) if interest.project_id else None,
        property_id=str(interest.property_id) if interest.property_id else None,
        message=interest.message,
        created_at=interest.created_at,
        notified=notified,
    )


@router.get("/check", response_model=InterestCheckResponse, summary="Has the caller expressed interest")
async def check_interest(
    project_id: Optional[uuid.UUID] = Query(None),
    property_id: Optional[uuid.UUID] = Query(None),
    current_user: User = Depends(get_current_active_user),
    interest_service: InterestService = Depends(get_interest_service)
) -> InterestCheckResponse:
    found = await interest_service.has_interest(current_user, project_id=project_id, property_id=property_id)
    return InterestCheckResponse(has_expressed_interest=found)
