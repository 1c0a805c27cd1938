"""
Project endpoints: listings, agent registration and in-project promotions.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from typing import Optional
from grihome.config import settings
from grihome.models.project import ProjectType
from grihome.models.user import User
from grihome.repositories.project import ProjectSearchFilters
from grihome.services.project import ProjectService
from grihome.services.interest import InterestService
from grihome.schemas.common import PageMeta, page_offset
from grihome.schemas.interest import ProjectInterestRequest, InterestResponse
from grihome.schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    ProjectListResponse,
    ArchiveResponse,
    AgentRegistrationResponse,
    ProjectAgentsResponse,
    PromoteAgentRequest,
    PromotePropertyRequest,
    PromotionResponse,
    ProjectPropertiesResponse,
)
from grihome.utils.dependencies import (
    get_project_service,
    get_interest_service,
    get_current_active_user,
    get_current_verified_user,
    get_current_admin_user,
)
import uuid

router = APIRouter(prefix="/projects", tags=["Projects"])


def _project_list(projects, total: int, page: int, page_size: int) -> ProjectListResponse:
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p.to_dict()) for p in projects],
        pagination=PageMeta.build(total, page, page_size),
    )


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="The address is geocoded; an address that cannot be placed is rejected while geocoding is configured"
)
async def create_project(
    data: ProjectCreate,
    current_user: User = Depends(get_current_verified_user),
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectResponse:
    """
    Raises:
        NotFoundError: Builder does not exist
        GeocodingError: Address could not be geocoded
    """
    project = await project_service.create_project(data, current_user)
    return ProjectResponse.model_validate(project.to_dict())


@router.get("", response_model=ProjectListResponse, summary="List projects")
async def list_projects(
    city: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=100),
    builder_id: Optional[uuid.UUID] = Query(None),
    type: Optional[ProjectType] = Query(None, description="Project type"),
    q: Optional[str] = Query(None, max_length=100, description="Text in name, description, builder or place"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectListResponse:
    """Archived projects are hidden."""
    filters = ProjectSearchFilters(
        query=q,
        city=city,
        state=state,
        builder_id=builder_id,
        project_type=type,
        skip=page_offset(page, page_size),
        limit=page_size,
    )
    projects, total = await project_service.search_projects(filters)
    return _project_list(projects, total, page, page_size)


@router.get("/search", response_model=ProjectListResponse, summary="Search projects by text")
async def search_projects(
    q: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectListResponse:
    filters = ProjectSearchFilters(query=q, skip=page_offset(page, page_size), limit=page_size)
    projects, total = await project_service.search_projects(filters)
    return _project_list(projects, total, page, page_size)


@router.get("/{project_id}", response_model=ProjectResponse, summary="Get project")
async def get_project(
    project_id: uuid.UUID,
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectResponse:
    project = await project_service.get_project(project_id)
    return ProjectResponse.model_validate(project.to_dict())


@router.put("/{project_id}", response_model=ProjectResponse, summary="Update project (creator or admin)")
async def update_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    current_user: User = Depends(get_current_active_user),
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectResponse:
    project = await project_service.update_project(project_id, data, current_user)
    return ProjectResponse.model_validate(project.to_dict())


@router.post("/{project_id}/archive", response_model=ArchiveResponse, summary="Toggle archived state")
async def toggle_archive(
    project_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    project_service: ProjectService = Depends(get_project_service)
) -> ArchiveResponse:
    project = await project_service.toggle_archive(project_id, current_user)
    return ArchiveResponse(
        id=str(project.id),
        is_archived=project.is_archived,
        message="Project archived" if project.is_archived else "Project restored",
    )


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete project (admin)"
)
async def delete_project(
    project_id: uuid.UUID,
    current_user: User = Depends(get_current_admin_user),
    project_service: ProjectService = Depends(get_project_service)
) -> Response:
    await project_service.delete_project(project_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{project_id}/register-agent",
    response_model=AgentRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register as an agent for the project"
)
async def register_agent(
    project_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    project_service: ProjectService = Depends(get_project_service)
) -> AgentRegistrationResponse:
    """
    Raises:
        InsufficientPermissionsError: Caller is not an agent
        DuplicateResourceError: Already registered
    """
    registration = await project_service.register_agent(project_id, current_user)
    return AgentRegistrationResponse(
        id=str(registration.id),
        project_id=str(registration.project_id),
        user_id=str(registration.user_id),
        registered_at=registration.registered_at,
        message="Successfully registered as an agent for this project",
    )


@router.get(
    "/{project_id}/agents",
    response_model=ProjectAgentsResponse,
    summary="Project agents",
    description="Featured agents are those with a running promotion, at most five"
)
async def list_agents(
    project_id: uuid.UUID,
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectAgentsResponse:
    return ProjectAgentsResponse.model_validate(await project_service.list_agents(project_id))


@router.post(
    "/{project_id}/promote-agent",
    response_model=PromotionResponse,
    summary="Feature yourself on the project's agent list"
)
async def promote_agent(
    project_id: uuid.UUID,
    data: PromoteAgentRequest,
    current_user: User = Depends(get_current_active_user),
    project_service: ProjectService = Depends(get_project_service)
) -> PromotionResponse:
    """
    Raises:
        InvalidDurationError: total_days outside 1-5
        NotFoundError: Caller is not registered for the project
    """
    registration = await project_service.promote_agent(project_id, data.total_days, current_user)
    return PromotionResponse(
        id=str(registration.id),
        start_date=registration.promotion_start_date,
        end_date=registration.promotion_end_date,
        total_days=data.total_days,
        total_amount=registration.promotion_payment_amount or 0.0,
        message=f"You are featured on this project for {data.total_days} days",
    )


@router.post(
    "/{project_id}/promote-property",
    response_model=PromotionResponse,
    summary="Feature your property on the project page"
)
async def promote_property(
    project_id: uuid.UUID,
    data: PromotePropertyRequest,
    current_user: User = Depends(get_current_verified_user),
    project_service: ProjectService = Depends(get_project_service)
) -> PromotionResponse:
    """
    Raises:
        InvalidDurationError: duration outside 1-14
        OwnershipError: Property is not the caller's active listing in this project
    """
    link = await project_service.promote_property(project_id, data.property_id, data.duration, current_user)
    return PromotionResponse(
        id=str(link.id),
        start_date=link.promotion_start_date,
        end_date=link.promotion_end_date,
        total_days=data.duration,
        total_amount=0.0,
        message=f"Property featured on this project for {data.duration} days",
    )


@router.get(
    "/{project_id}/properties",
    response_model=ProjectPropertiesResponse,
    summary="Active properties in the project with promotion state"
)
async def list_project_properties(
    project_id: uuid.UUID,
    project_service: ProjectService = Depends(get_project_service)
) -> ProjectPropertiesResponse:
    return ProjectPropertiesResponse.model_validate(await project_service.list_properties(project_id))


@router.post(
    "/{project_id}/express-interest",
    response_model=InterestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Tell the builder you are interested"
)
async def express_interest(
    project_id: uuid.UUID,
    data: Optional[ProjectInterestRequest] = None,
    current_user: User = Depends(get_current_active_user),
    interest_service: InterestService = Depends(get_interest_service)
) -> InterestResponse:
    """
    Raises:
        NotFoundError: Project does not exist
        DuplicateResourceError: Interest already recorded
    """
    interest, notified = await interest_service.express_interest(
        current_user,
        project_id=project_id,
        message=data.message if data else None
    )
    return InterestResponse(
        id=str(interest.id),
        project_id=str(interest.project_id),
        message=interest.message,
        created_at=interest.created_at,
        notified=notified,
    )
