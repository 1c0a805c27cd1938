"""
Property listing model plus favourites.
"""

from sqlalchemy import (
    String, Text, Integer, Float, JSON, DateTime, ForeignKey, Uuid,
    UniqueConstraint, Index, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grihome.database import Base
from datetime import datetime
from typing import Optional, TYPE_CHECKING
import enum
import uuid

if TYPE_CHECKING:
    from grihome.models.user import User
    from grihome.models.location import Location
    from grihome.models.project import Project


class PropertyType(str, enum.Enum):
    VILLAS = "VILLAS"
    APARTMENTS = "APARTMENTS"
    RESIDENTIAL_LANDS = "RESIDENTIAL_LANDS"
    AGRICULTURE_LANDS = "AGRICULTURE_LANDS"
    COMMERCIAL_PROPERTIES = "COMMERCIAL_PROPERTIES"


class ListingType(str, enum.Enum):
    SALE = "SALE"
    RENT = "RENT"


class ListingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    ARCHIVED = "ARCHIVED"


class Property(Base):
    """
    Individual listing posted by a user, optionally inside a project.
    Sizes are stored in square feet whatever unit the owner entered.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    property_type: Mapped[PropertyType] = mapped_column(SQLEnum(PropertyType), nullable=False, index=True)
    listing_type: Mapped[ListingType] = mapped_column(
        SQLEnum(ListingType), nullable=False, default=ListingType.SALE
    )
    listing_status: Mapped[ListingStatus] = mapped_column(
        SQLEnum(ListingStatus), nullable=False, default=ListingStatus.ACTIVE, index=True
    )

    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sq_ft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    plot_size_sq_ft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    facing: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    image_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    sold_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sold_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("locations.id"),
        nullable=False,
        index=True
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    owner: Mapped["User"] = relationship("User", lazy="selectin")
    location: Mapped["Location"] = relationship("Location", lazy="selectin")

    __table_args__ = (
        Index("idx_properties_status_type_price", "listing_status", "property_type", "price"),
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}, price={self.price})>"

    @property
    def is_active(self) -> bool:
        return self.listing_status == ListingStatus.ACTIVE

    def to_dict(self, include_owner: bool = True) -> dict:
        result = {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "property_type": self.property_type.value,
            "listing_type": self.listing_type.value,
            "listing_status": self.listing_status.value,
            "price": self.price,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "sq_ft": self.sq_ft,
            "plot_size_sq_ft": self.plot_size_sq_ft,
            "facing": self.facing,
            "image_urls": self.image_urls or [],
            "thumbnail_url": self.thumbnail_url or ((self.image_urls or [None])[0]),
            "sold_to": self.sold_to,
            "sold_at": self.sold_at,
            "user_id": str(self.user_id),
            "project_id": str(self.project_id) if self.project_id else None,
            "location": self.location.to_dict() if self.location else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_owner and self.owner:
            result["owner"] = self.owner.to_public_dict()
        return result


class SavedProperty(Base):
    """A user's favourite."""

    __tablename__ = "saved_properties"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    listing: Mapped["Property"] = relationship("Property", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_saved_property"),
    )
