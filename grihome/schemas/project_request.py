"""
Schemas for requesting a new project listing.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from grihome.models.project import ProjectType
from grihome.models.project_request import ProjectRequestStatus
from grihome.schemas.common import PageMeta
from grihome.utils.validators import normalize_email, normalize_mobile


class ProjectRequestCreate(BaseModel):
    builder_name: str = Field(..., min_length=2, max_length=255, examples=["Aparna Constructions"])
    project_name: str = Field(..., min_length=2, max_length=255, examples=["Aparna Sarovar Zenith"])
    location: str = Field(..., min_length=3, max_length=512, examples=["Nallagandla, Hyderabad"])
    project_type: ProjectType
    contact_person_name: str = Field(..., min_length=2, max_length=255)
    contact_person_email: str = Field(..., max_length=255)
    contact_person_phone: str = Field(..., max_length=20)
    builder_website: Optional[str] = Field(None, max_length=1024)
    project_description: Optional[str] = Field(None, max_length=5000)
    additional_info: Optional[str] = Field(None, max_length=5000)

    @field_validator("builder_name", "project_name", "location", "contact_person_name")
    @classmethod
    def validate_required_text(cls, v):
        if not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @field_validator("contact_person_email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator("contact_person_phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_mobile(v)


class ProjectRequestSubmitted(BaseModel):
    request_id: str
    notified: bool
    message: str


class ProjectRequestResponse(BaseModel):
    id: str
    user_id: str
    builder_name: str
    project_name: str
    location: str
    project_type: str
    contact_person_name: str
    contact_person_email: str
    contact_person_phone: str
    builder_website: Optional[str] = None
    project_description: Optional[str] = None
    additional_info: Optional[str] = None
    status: ProjectRequestStatus
    created_at: Optional[datetime] = None


class ProjectRequestListResponse(BaseModel):
    requests: List[ProjectRequestResponse]
    pagination: PageMeta


class ProjectRequestStatusUpdate(BaseModel):
    status: ProjectRequestStatus
