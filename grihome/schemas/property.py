"""
Pydantic schemas for property requests and responses.
Handles listing CRUD, lifecycle transitions, favourites and search filters.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Literal
from datetime import datetime
from grihome.models.property import PropertyType, ListingType, ListingStatus
from grihome.schemas.common import LocationInput, LocationResponse, PageMeta
from grihome.schemas.user import PublicUserResponse
import uuid

AreaUnit = Literal["sq_ft", "sq_m", "sq_yd"]


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    title: str = Field(
        ...,
        min_length=5,
        max_length=255,
        description="Property listing title",
        examples=["3BHK Apartment near Whitefield Metro"]
    )

    description: Optional[str] = Field(
        None,
        max_length=5000,
        description="Detailed property description"
    )

    property_type: PropertyType = Field(..., examples=["APARTMENTS"])
    listing_type: ListingType = Field(ListingType.SALE, examples=["SALE"])

    price: float = Field(
        ...,
        gt=0,
        le=999999999999,
        description="Price in INR",
        examples=[8500000]
    )

    bedrooms: Optional[int] = Field(None, ge=0, le=50, examples=[3])
    bathrooms: Optional[int] = Field(None, ge=0, le=50, examples=[2])

    property_size: Optional[float] = Field(None, gt=0, description="Built-up size in size_unit", examples=[1450])
    size_unit: AreaUnit = "sq_ft"
    plot_size: Optional[float] = Field(None, gt=0, description="Plot size in plot_size_unit")
    plot_size_unit: AreaUnit = "sq_ft"

    facing: Optional[str] = Field(None, max_length=30, examples=["East"])

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        """Validate and clean title."""
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""

    location: LocationInput
    image_urls: List[str] = Field(default_factory=list, description="Already uploaded image URLs")
    thumbnail_url: Optional[str] = Field(None, max_length=1024)
    project_id: Optional[uuid.UUID] = None

    @field_validator("image_urls")
    @classmethod
    def clean_images(cls, v):
        return [url.strip() for url in v if url and url.strip()]

    @model_validator(mode="after")
    def validate_location_parts(self):
        """City and state are needed when the address cannot be geocoded."""
        if not self.location.city or not self.location.state:
            raise ValueError("Location city and state are required")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "3BHK Apartment near Whitefield Metro",
                "description": "East facing, fully furnished, covered parking.",
                "property_type": "APARTMENTS",
                "listing_type": "SALE",
                "price": 8500000,
                "bedrooms": 3,
                "bathrooms": 2,
                "property_size": 1450,
                "size_unit": "sq_ft",
                "facing": "East",
                "location": {
                    "address": "Whitefield Main Road",
                    "city": "Bengaluru",
                    "state": "Karnataka",
                    "locality": "Whitefield",
                    "zipcode": "560066"
                },
                "image_urls": ["https://cdn.example.com/listing/1.jpg"]
            }
        }
    }


class PropertyUpdate(BaseModel):
    """Schema for updating an existing property. Only sent fields change."""

    title: Optional[str] = Field(None, min_length=5, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    property_type: Optional[PropertyType] = None
    listing_type: Optional[ListingType] = None
    price: Optional[float] = Field(None, gt=0, le=999999999999)
    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[int] = Field(None, ge=0, le=50)
    property_size: Optional[float] = Field(None, gt=0)
    size_unit: AreaUnit = "sq_ft"
    plot_size: Optional[float] = Field(None, gt=0)
    plot_size_unit: AreaUnit = "sq_ft"
    facing: Optional[str] = Field(None, max_length=30)
    location: Optional[LocationInput] = None
    image_urls: Optional[List[str]] = None
    thumbnail_url: Optional[str] = Field(None, max_length=1024)
    project_id: Optional[uuid.UUID] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip() if v else v


class MarkSoldRequest(BaseModel):
    sold_to: Optional[str] = Field(None, max_length=255, description="Buyer name, free text")


class PropertyResponse(BaseModel):
    """Schema for property response."""

    id: str
    title: str
    description: Optional[str] = None
    property_type: PropertyType
    listing_type: ListingType
    listing_status: ListingStatus
    price: float
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    sq_ft: Optional[float] = None
    plot_size_sq_ft: Optional[float] = None
    facing: Optional[str] = None
    image_urls: List[str] = []
    thumbnail_url: Optional[str] = None
    sold_to: Optional[str] = None
    sold_at: Optional[datetime] = None
    user_id: str
    project_id: Optional[str] = None
    location: Optional[LocationResponse] = None
    owner: Optional[PublicUserResponse] = None
    is_favorited: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PropertyListResponse(BaseModel):
    properties: List[PropertyResponse]
    pagination: PageMeta


class ToggleFavoriteRequest(BaseModel):
    property_id: uuid.UUID


class ToggleFavoriteResponse(BaseModel):
    property_id: str
    is_favorited: bool
    message: str


class FavoritesResponse(BaseModel):
    properties: List[PropertyResponse]
    total: int


class UserPropertiesResponse(BaseModel):
    properties: List[PropertyResponse]
    total: int
    counts: dict = Field(default_factory=dict, description="Listing count per status")

