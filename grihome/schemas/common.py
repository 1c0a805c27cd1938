"""
Shared response pieces: messages and pagination metadata.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
import math


class MessageResponse(BaseModel):
    message: str = Field(..., description="Human readable outcome", examples=["Done"])


class PageMeta(BaseModel):
    """Pagination block attached to list responses."""

    total: int = Field(..., description="Total number of matching items", examples=[150])
    page: int = Field(..., description="Current page number", examples=[1])
    page_size: int = Field(..., description="Items per page", examples=[20])
    total_pages: int = Field(..., description="Total number of pages", examples=[8])
    has_next: bool = Field(..., description="Whether there are more pages")
    has_previous: bool = Field(..., description="Whether there are previous pages")

    @classmethod
    def build(cls, total: int, page: int, page_size: int) -> "PageMeta":
        total_pages = math.ceil(total / page_size) if page_size > 0 else 0
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


def page_offset(page: int, page_size: int) -> int:
    return (max(page, 1) - 1) * page_size


class LocationInput(BaseModel):
    """Address as typed by the user. City and state are used when geocoding is off or fails."""

    address: str = Field(..., min_length=3, max_length=512, examples=["Whitefield Main Road"])
    city: Optional[str] = Field(None, max_length=100, examples=["Bengaluru"])
    state: Optional[str] = Field(None, max_length=100, examples=["Karnataka"])
    country: Optional[str] = Field("India", max_length=100)
    locality: Optional[str] = Field(None, max_length=255, examples=["Whitefield"])
    zipcode: Optional[str] = Field(None, max_length=20, examples=["560066"])

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        if not v.strip():
            raise ValueError("Address cannot be empty")
        return v.strip()


class LocationResponse(BaseModel):
    id: str
    address: str
    locality: Optional[str] = None
    city: str
    state: str
    country: str
    zipcode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
