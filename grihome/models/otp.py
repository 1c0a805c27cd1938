"""One-time codes sent by email or SMS."""

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from grihome.database import Base
from datetime import datetime


class OtpCode(Base):
    """At most one live code per (identifier, purpose); consumed on successful verification."""

    __tablename__ = "otp_codes"

    identifier: Mapped[str] = mapped_column(String(255), nullable=False, comment="Email or mobile number")
    purpose: Mapped[str] = mapped_column(String(30), nullable=False, comment="login, verify or reset")
    code: Mapped[str] = mapped_column(String(12), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_otp_identifier_purpose", "identifier", "purpose"),
    )
