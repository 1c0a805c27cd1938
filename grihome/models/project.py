"""
Project model (a development by a builder) and its agent/listing join tables.
"""

from sqlalchemy import (
    String, Text, Boolean, Float, JSON, DateTime, ForeignKey, Uuid,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grihome.database import Base
from grihome.models.promotion import PromotionMixin
from grihome.utils.time import utc_now
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
import enum
import uuid

if TYPE_CHECKING:
    from grihome.models.builder import Builder
    from grihome.models.location import Location
    from grihome.models.user import User
    from grihome.models.property import Property


class ProjectType(str, enum.Enum):
    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"
    MIXED_USE = "MIXED_USE"
    INDUSTRIAL = "INDUSTRIAL"
    VILLA = "VILLA"
    APARTMENT = "APARTMENT"
    RESIDENTIAL_LAND = "RESIDENTIAL_LAND"
    AGRICULTURE_LAND = "AGRICULTURE_LAND"


class Project(Base):
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[ProjectType] = mapped_column(SQLEnum(ProjectType), nullable=False, index=True)

    builder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("builders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("locations.id"),
        nullable=False,
        index=True
    )
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    highlights: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    amenities: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    image_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Free-form map overlay (plots, towers) and its calibration metadata
    map_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    min_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    builder: Mapped["Builder"] = relationship("Builder", back_populates="projects", lazy="selectin")
    location: Mapped["Location"] = relationship("Location", lazy="selectin")

    def to_dict(self, include_builder: bool = True) -> dict:
        result = {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "builder_id": str(self.builder_id),
            "highlights": self.highlights or [],
            "amenities": self.amenities or [],
            "image_urls": self.image_urls or [],
            "thumbnail_url": self.thumbnail_url or ((self.image_urls or [None])[0]),
            "min_price": self.min_price,
            "max_price": self.max_price,
            "is_archived": self.is_archived,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "location": self.location.to_dict() if self.location else None,
            "created_at": self.created_at,
        }
        if include_builder and self.builder:
            result["builder"] = {"id": str(self.builder.id), "name": self.builder.name, "logo_url": self.builder.logo_url}
        return result


class ProjectAgent(PromotionMixin, Base):
    """An agent's registration to sell inside a project."""

    __tablename__ = "project_agents"

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    promotion_payment_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    user: Mapped["User"] = relationship("User", lazy="selectin")
    project: Mapped["Project"] = relationship("Project", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_agent"),
    )


class ProjectProperty(PromotionMixin, Base):
    """Promotion state of a property inside its project's listing page."""

    __tablename__ = "project_properties"

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    listing: Mapped["Property"] = relationship("Property", lazy="selectin")
    project: Mapped["Project"] = relationship("Project", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("project_id", "property_id", name="uq_project_property"),
    )
