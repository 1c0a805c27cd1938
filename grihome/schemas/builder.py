"""
Pydantic schemas for builders.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from grihome.schemas.common import PageMeta
from grihome.utils.validators import split_contacts, normalize_email


def _parse_emails(raw: Optional[str]) -> List[str]:
    return [normalize_email(part) for part in split_contacts(raw)]


class BuilderCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255, examples=["Prestige Group"])
    description: Optional[str] = Field(None, max_length=5000)
    logo_url: Optional[str] = Field(None, max_length=1024)
    website: Optional[str] = Field(None, max_length=512)
    contact_emails: Optional[str] = Field(
        None,
        description="Comma separated email addresses",
        examples=["sales@prestige.example, info@prestige.example"]
    )
    contact_phones: Optional[str] = Field(
        None,
        description="Comma separated phone numbers",
        examples=["+91 80 1234 5678"]
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Builder name cannot be empty")
        return v.strip()

    @field_validator("contact_emails")
    @classmethod
    def validate_emails(cls, v):
        _parse_emails(v)
        return v

    def contact_info(self) -> dict:
        return {
            "emails": _parse_emails(self.contact_emails),
            "phones": list(split_contacts(self.contact_phones)),
        }


class BuilderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    logo_url: Optional[str] = Field(None, max_length=1024)
    website: Optional[str] = Field(None, max_length=512)
    contact_emails: Optional[str] = None
    contact_phones: Optional[str] = None

    @field_validator("contact_emails")
    @classmethod
    def validate_emails(cls, v):
        _parse_emails(v)
        return v

    def changes(self) -> dict:
        """Column values to apply. Contacts are replaced only when either list was sent."""
        data = self.model_dump(exclude_unset=True, exclude={"contact_emails", "contact_phones"})
        if "contact_emails" in self.model_fields_set or "contact_phones" in self.model_fields_set:
            data["contact_info"] = {
                "emails": _parse_emails(self.contact_emails),
                "phones": list(split_contacts(self.contact_phones)),
            }
        return data


class BuilderResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    website: Optional[str] = None
    contact_emails: List[str] = []
    contact_phones: List[str] = []
    created_at: Optional[datetime] = None
    project_count: int = 0


class BuilderProjectSummary(BaseModel):
    id: str
    name: str
    type: str
    city: Optional[str] = None
    thumbnail_url: Optional[str] = None


class BuilderDetailResponse(BuilderResponse):
    projects: List[BuilderProjectSummary] = []


class BuilderListResponse(BaseModel):
    builders: List[BuilderResponse]
    pagination: PageMeta
