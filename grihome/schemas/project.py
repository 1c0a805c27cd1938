"""
Pydantic schemas for projects, agent registration and in-project promotions.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from grihome.models.project import ProjectType
from grihome.schemas.common import LocationInput, LocationResponse, PageMeta
import uuid


def _clean_list(values: Optional[List[str]]) -> List[str]:
    return [v.strip() for v in (values or []) if v and v.strip()]


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255, examples=["Prestige Lakeside Habitat"])
    description: str = Field("", max_length=10000)
    type: ProjectType = Field(..., examples=["APARTMENT"])
    builder_id: uuid.UUID
    location: LocationInput
    highlights: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list, description="Already uploaded image URLs")
    thumbnail_url: Optional[str] = Field(None, max_length=1024)
    map_data: Optional[Dict[str, Any]] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Project name cannot be empty")
        return v.strip()

    @field_validator("highlights", "amenities", "image_urls")
    @classmethod
    def clean_lists(cls, v):
        return _clean_list(v)

    @model_validator(mode="after")
    def validate_price_range(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price cannot be greater than max_price")
        return self


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    type: Optional[ProjectType] = None
    builder_id: Optional[uuid.UUID] = None
    location: Optional[LocationInput] = None
    highlights: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None
    thumbnail_url: Optional[str] = Field(None, max_length=1024)
    map_data: Optional[Dict[str, Any]] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)

    @field_validator("highlights", "amenities", "image_urls")
    @classmethod
    def clean_lists(cls, v):
        return _clean_list(v) if v is not None else v


class ProjectBuilderSummary(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: str
    type: ProjectType
    builder_id: str
    builder: Optional[ProjectBuilderSummary] = None
    location: Optional[LocationResponse] = None
    highlights: List[str] = []
    amenities: List[str] = []
    image_urls: List[str] = []
    thumbnail_url: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    is_archived: bool
    created_by_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]
    pagination: PageMeta


class ArchiveResponse(BaseModel):
    id: str
    is_archived: bool
    message: str


class AgentRegistrationResponse(BaseModel):
    id: str
    project_id: str
    user_id: str
    registered_at: datetime
    message: str


class AgentCard(BaseModel):
    id: str
    name: str
    username: str
    email: str
    mobile_number: Optional[str] = None
    image_url: Optional[str] = None
    company_name: Optional[str] = None
    license_number: Optional[str] = None


class ProjectAgentEntry(BaseModel):
    id: str
    agent: AgentCard
    registered_at: datetime
    is_featured: bool
    promotion_end_date: Optional[datetime] = None


class ProjectAgentsResponse(BaseModel):
    featured_agents: List[ProjectAgentEntry]
    regular_agents: List[ProjectAgentEntry]
    total_agents: int


class PromoteAgentRequest(BaseModel):
    total_days: int = Field(5, description="Promotion length in days (1-5)")


class PromotionResponse(BaseModel):
    id: str
    start_date: datetime
    end_date: datetime
    total_days: int
    total_amount: float = Field(0.0, description="Promotions are free during the pre-launch period")
    message: str


class PromotePropertyRequest(BaseModel):
    property_id: uuid.UUID
    duration: int = Field(14, description="Promotion length in days (1-14)")


class ProjectPropertyEntry(BaseModel):
    property: Dict[str, Any]
    is_promoted: bool
    promotion_end_date: Optional[datetime] = None


class ProjectPropertiesResponse(BaseModel):
    featured_properties: List[ProjectPropertyEntry]
    regular_properties: List[ProjectPropertyEntry]
    all_properties: List[ProjectPropertyEntry]
    total_properties: int


class ReminderTally(BaseModel):
    kind: str = Field(..., description="agent or property")
    days_remaining: int
    found: int
    email_sent: int
    sms_sent: int


class ExpiryRemindersResponse(BaseModel):
    message: str
    reminders: List[ReminderTally]
