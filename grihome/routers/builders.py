"""
Builder directory endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from grihome.config import settings
from grihome.models.user import User
from grihome.services.builder import BuilderService
from grihome.schemas.builder import (
    BuilderCreate,
    BuilderUpdate,
    BuilderResponse,
    BuilderDetailResponse,
    BuilderListResponse,
)
from grihome.schemas.common import PageMeta, page_offset
from grihome.utils.dependencies import get_builder_service, get_current_verified_user, get_current_admin_user
import uuid

router = APIRouter(prefix="/builders", tags=["Builders"])


@router.get(
    "",
    response_model=BuilderListResponse,
    summary="Search builders",
    description="Builders whose name contains the query, with their live project counts"
)
async def list_builders(
    q: Optional[str] = Query(None, max_length=100, description="Name contains"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    builder_service: BuilderService = Depends(get_builder_service)
) -> BuilderListResponse:
    items, total = await builder_service.search_builders(q, page_offset(page, page_size), page_size)
    return BuilderListResponse(
        builders=[BuilderResponse.model_validate(item) for item in items],
        pagination=PageMeta.build(total, page, page_size),
    )


@router.get("/{builder_id}", response_model=BuilderDetailResponse, summary="Builder with its projects")
async def get_builder(
    builder_id: uuid.UUID,
    builder_service: BuilderService = Depends(get_builder_service)
) -> BuilderDetailResponse:
    return BuilderDetailResponse.model_validate(await builder_service.get_builder_detail(builder_id))


@router.post(
    "",
    response_model=BuilderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a builder",
    description="Verified users only. Names are unique regardless of case."
)
async def create_builder(
    data: BuilderCreate,
    current_user: User = Depends(get_current_verified_user),
    builder_service: BuilderService = Depends(get_builder_service)
) -> BuilderResponse:
    """
    Raises:
        DuplicateResourceError: Builder name already used
    """
    builder = await builder_service.create_builder(data, current_user)
    return BuilderResponse.model_validate(builder.to_dict())


@router.put("/{builder_id}", response_model=BuilderResponse, summary="Edit a builder (admin)")
async def update_builder(
    builder_id: uuid.UUID,
    data: BuilderUpdate,
    current_user: User = Depends(get_current_admin_user),
    builder_service: BuilderService = Depends(get_builder_service)
) -> BuilderResponse:
    builder = await builder_service.update_builder(builder_id, data, current_user)
    return BuilderResponse.model_validate(builder.to_dict())
