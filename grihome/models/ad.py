"""
Advertisement slots on the home page and the ads purchased for them.
"""

from sqlalchemy import (
    String, Integer, Float, Boolean, DateTime, ForeignKey, Uuid, Index, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grihome.database import Base
from grihome.utils.time import as_utc
from datetime import datetime
from typing import Optional, TYPE_CHECKING
import enum
import uuid

if TYPE_CHECKING:
    from grihome.models.user import User
    from grihome.models.property import Property
    from grihome.models.project import Project


class AdStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PaymentMethod(str, enum.Enum):
    UPI = "UPI"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_ACCOUNT = "BANK_ACCOUNT"


class AdSlotConfig(Base):
    """Numbered placement with a per-day base price."""

    __tablename__ = "ad_slot_configs"

    slot_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False, index=True)
    base_price: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Ad(Base):
    """
    A purchased run of a listing in one slot.
    The slot is occupied while status is ACTIVE and end_date has not passed.
    """

    __tablename__ = "ads"

    slot_number: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ad_slot_configs.slot_number"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=True
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True
    )

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Per-day price before discount
    price_per_day: Mapped[float] = mapped_column(Float, nullable=False)
    discount_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # Amount actually charged after discount
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)

    status: Mapped[AdStatus] = mapped_column(SQLEnum(AdStatus), nullable=False, default=AdStatus.ACTIVE, index=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod), nullable=False, default=PaymentMethod.UPI
    )
    payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    user: Mapped["User"] = relationship("User", lazy="selectin")
    listing: Mapped[Optional["Property"]] = relationship("Property", lazy="selectin")
    project: Mapped[Optional["Project"]] = relationship("Project", lazy="selectin")

    __table_args__ = (
        Index("idx_ads_slot_status_end", "slot_number", "status", "end_date"),
    )

    def is_live(self, now: datetime) -> bool:
        return self.status == AdStatus.ACTIVE and as_utc(self.end_date) >= now

    def days_remaining(self, now: datetime) -> float:
        return (as_utc(self.end_date) - now).total_seconds() / 86400

    def target_dict(self) -> dict:
        if self.listing is not None:
            return {
                "kind": "property",
                "id": str(self.listing.id),
                "title": self.listing.title,
                "price": self.listing.price,
                "thumbnail_url": self.listing.thumbnail_url or ((self.listing.image_urls or [None])[0]),
                "city": self.listing.location.city if self.listing.location else None,
            }
        if self.project is not None:
            return {
                "kind": "project",
                "id": str(self.project.id),
                "title": self.project.name,
                "price": self.project.min_price,
                "thumbnail_url": self.project.thumbnail_url or ((self.project.image_urls or [None])[0]),
                "city": self.project.location.city if self.project.location else None,
            }
        return {}
