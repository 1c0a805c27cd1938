"""Builder (developer company) that owns projects."""

from sqlalchemy import String, Text, JSON, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grihome.database import Base
from typing import Optional, List, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from grihome.models.project import Project


class Builder(Base):
    __tablename__ = "builders"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # {"emails": [...], "phones": [...]}
    contact_info: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    projects: Mapped[List["Project"]] = relationship("Project", back_populates="builder")

    @property
    def contact_emails(self) -> List[str]:
        return [e.lower() for e in (self.contact_info or {}).get("emails", [])]

    @property
    def contact_phones(self) -> List[str]:
        return list((self.contact_info or {}).get("phones", []))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "logo_url": self.logo_url,
            "website": self.website,
            "contact_emails": self.contact_emails,
            "contact_phones": self.contact_phones,
            "created_at": self.created_at,
        }
