"""
Pydantic schemas for the agent directory.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from grihome.schemas.common import PageMeta
from grihome.schemas.property import PropertyResponse


class AgentProfile(BaseModel):
    id: str
    name: str
    username: str
    email: str
    mobile_number: Optional[str] = None
    company_name: Optional[str] = None
    image_url: Optional[str] = None


class AgentSummary(AgentProfile):
    created_at: Optional[datetime] = None
    listing_count: int = Field(..., description="Properties listed by the agent, any status")


class AgentListResponse(BaseModel):
    agents: List[AgentSummary]
    pagination: PageMeta


class AgentPropertiesResponse(BaseModel):
    agent: AgentProfile
    properties: List[PropertyResponse]
    pagination: PageMeta


class AgentProjectLocation(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    locality: Optional[str] = None


class AgentProjectEntry(BaseModel):
    id: str
    name: str
    location: Optional[AgentProjectLocation] = None
    builder: str
    property_count: int
    registered_at: datetime
    is_promoted: bool
    thumbnail_url: Optional[str] = None


class AgentProjectsResponse(BaseModel):
    agent: AgentProfile
    projects: List[AgentProjectEntry]
    pagination: PageMeta
