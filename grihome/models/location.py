"""
Location model shared by projects and properties.
Rows are reused when a new address geocodes to (almost) the same coordinates.
"""

from sqlalchemy import String, Float, Index
from sqlalchemy.orm import Mapped, mapped_column
from grihome.database import Base
from typing import Optional


class Location(Base):
    """Resolved address with optional coordinates."""

    __tablename__ = "locations"

    address: Mapped[str] = mapped_column(String(512), nullable=False)
    locality: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="India")
    zipcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("idx_locations_coordinates", "latitude", "longitude"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "address": self.address,
            "locality": self.locality,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "zipcode": self.zipcode,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
