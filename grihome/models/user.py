"""
User model with authentication, verification and role management.
Handles buyer, seller and agent accounts.
"""

from sqlalchemy import String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from grihome.database import Base
from datetime import datetime
from typing import Optional
import enum


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""
    BUYER = "BUYER"
    SELLER = "SELLER"
    AGENT = "AGENT"


class User(Base):
    """
    Marketplace account.
    An account counts as verified once either its email or its mobile number is confirmed.
    """

    __tablename__ = "users"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Public handle, unique across all accounts"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )

    mobile_number: Mapped[Optional[str]] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
        index=True
    )

    # Null for accounts created through Google sign-in
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        nullable=False,
        default=UserRole.BUYER,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    email_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    mobile_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    auth_provider: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="credentials",
        comment="credentials or google"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_email_verified(self) -> bool:
        return self.email_verified_at is not None

    @property
    def is_mobile_verified(self) -> bool:
        return self.mobile_verified_at is not None

    @property
    def is_verified(self) -> bool:
        return self.is_email_verified or self.is_mobile_verified

    @property
    def is_agent(self) -> bool:
        return self.role == UserRole.AGENT

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.full_name,
            "username": self.username,
            "email": self.email,
            "mobile_number": self.mobile_number,
            "role": self.role.value,
            "is_active": self.is_active,
            "company_name": self.company_name,
            "license_number": self.license_number,
            "image_url": self.image_url,
            "is_email_verified": self.is_email_verified,
            "is_mobile_verified": self.is_mobile_verified,
            "is_verified": self.is_verified,
            "created_at": self.created_at,
        }

    def to_public_dict(self) -> dict:
        """Fields safe to show next to a listing or forum post."""
        return {
            "id": str(self.id),
            "name": self.full_name,
            "username": self.username,
            "image_url": self.image_url,
            "company_name": self.company_name,
            "role": self.role.value,
        }
