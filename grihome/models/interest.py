"""Buyer interest in a project or a single property."""

from sqlalchemy import Text, ForeignKey, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from grihome.database import Base
from typing import Optional
import uuid


class Interest(Base):
    """Exactly one of project_id / property_id is set."""

    __tablename__ = "interests"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "project_id", name="uq_interest_project"),
        UniqueConstraint("user_id", "property_id", name="uq_interest_property"),
        CheckConstraint(
            "(project_id IS NULL) <> (property_id IS NULL)",
            name="ck_interest_single_target"
        ),
    )
