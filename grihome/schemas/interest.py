"""Schemas for expressing interest in a project or property."""

from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
import uuid


class InterestCreate(BaseModel):
    project_id: Optional[uuid.UUID] = None
    property_id: Optional[uuid.UUID] = None
    message: Optional[str] = Field(None, max_length=2000, examples=["Is a site visit possible this weekend?"])

    @model_validator(mode="after")
    def validate_single_target(self):
        if (self.project_id is None) == (self.property_id is None):
            raise ValueError("Provide exactly one of project_id or property_id")
        return self


class ProjectInterestRequest(BaseModel):
    message: Optional[str] = Field(None, max_length=2000)


class InterestResponse(BaseModel):
    id: str
    project_id: Optional[str] = None
    property_id: Optional[str] = None
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    notified: bool = Field(False, description="Whether the builder or owner was emailed")


class InterestCheckResponse(BaseModel):
    has_expressed_interest: bool
