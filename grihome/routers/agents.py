"""
Agent directory endpoints.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from grihome.config import settings
from grihome.models.property import ListingStatus
from grihome.services.agent import AgentService, agent_profile
from grihome.schemas.agent import (
    AgentListResponse,
    AgentSummary,
    AgentPropertiesResponse,
    AgentProjectsResponse,
    AgentProjectEntry,
)
from grihome.schemas.common import PageMeta, page_offset
from grihome.schemas.property import PropertyResponse
from grihome.utils.dependencies import get_agent_service
import uuid

router = APIRouter(prefix="/agents", tags=["Agents"])


@router.get(
    "",
    response_model=AgentListResponse,
    summary="Browse agents",
    description="AGENT accounts with listing counts. An exact company filter overrides the text search."
)
async def list_agents(
    search: Optional[str] = Query(None, max_length=100, description="Name, username, company or email contains"),
    company: Optional[str] = Query(None, max_length=255, description="Company name, ignoring case"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    agent_service: AgentService = Depends(get_agent_service)
) -> AgentListResponse:
    agents, total = await agent_service.search_agents(search, company, page_offset(page, page_size), page_size)
    return AgentListResponse(
        agents=[AgentSummary.model_validate(a) for a in agents],
        pagination=PageMeta.build(total, page, page_size),
    )


@router.get("/{agent_id}/properties", response_model=AgentPropertiesResponse, summary="Properties listed by an agent")
async def agent_properties(
    agent_id: uuid.UUID,
    status: Optional[ListingStatus] = Query(None, description="ACTIVE, SOLD or ARCHIVED"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    agent_service: AgentService = Depends(get_agent_service)
) -> AgentPropertiesResponse:
    """
    Raises:
        NotFoundError: No such user
        BadRequestError: The user is not an agent
    """
    agent, properties, total = await agent_service.agent_properties(
        agent_id, status, page_offset(page, page_size), page_size
    )
    return AgentPropertiesResponse(
        agent=agent_profile(agent),
        properties=[PropertyResponse.model_validate(p.to_dict()) for p in properties],
        pagination=PageMeta.build(total, page, page_size),
    )


@router.get("/{agent_id}/projects", response_model=AgentProjectsResponse, summary="Projects an agent works on")
async def agent_projects(
    agent_id: uuid.UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    agent_service: AgentService = Depends(get_agent_service)
) -> AgentProjectsResponse:
    agent, projects, total = await agent_service.agent_projects(agent_id, page_offset(page, page_size), page_size)
    return AgentProjectsResponse(
        agent=agent_profile(agent),
        projects=[AgentProjectEntry.model_validate(p) for p in projects],
        pagination=PageMeta.build(total, page, page_size),
    )
