"""
Requests to list a project that is not on the site yet.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from grihome.config import settings
from grihome.models.project_request import ProjectRequestStatus
from grihome.models.user import User
from grihome.services.project_request import ProjectRequestService
from grihome.schemas.common import PageMeta, page_offset
from grihome.schemas.project_request import (
    ProjectRequestCreate,
    ProjectRequestSubmitted,
    ProjectRequestResponse,
    ProjectRequestListResponse,
    ProjectRequestStatusUpdate,
)
from grihome.utils.dependencies import (
    get_project_request_service,
    get_current_active_user,
    get_current_admin_user,
)
import uuid

router = APIRouter(prefix="/project-requests", tags=["Project requests"])


@router.post(
    "",
    response_model=ProjectRequestSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Ask for a project to be listed",
    description="Stored for review; administrators are emailed"
)
async def submit_request(
    data: ProjectRequestCreate,
    current_user: User = Depends(get_current_active_user),
    request_service: ProjectRequestService = Depends(get_project_request_service)
) -> ProjectRequestSubmitted:
    request, notified = await request_service.submit(data, current_user)
    return ProjectRequestSubmitted(
        request_id=str(request.id),
        notified=notified,
        message="Project request submitted successfully",
    )


@router.get("", response_model=ProjectRequestListResponse, summary="Review project requests (admin)")
async def list_requests(
    request_status: Optional[ProjectRequestStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_admin_user),
    request_service: ProjectRequestService = Depends(get_project_request_service)
) -> ProjectRequestListResponse:
    requests, total = await request_service.list_requests(request_status, page_offset(page, page_size), page_size)
    return ProjectRequestListResponse(
        requests=[ProjectRequestResponse.model_validate(r.to_dict()) for r in requests],
        pagination=PageMeta.build(total, page, page_size),
    )


@router.put("/{request_id}/status", response_model=ProjectRequestResponse, summary="Approve or reject (admin)")
async def set_status(
    request_id: uuid.UUID,
    data: ProjectRequestStatusUpdate,
    current_user: User = Depends(get_current_admin_user),
    request_service: ProjectRequestService = Depends(get_project_request_service)
) -> ProjectRequestResponse:
    request = await request_service.set_status(request_id, data.status)
    return ProjectRequestResponse.model_validate(request.to_dict())
