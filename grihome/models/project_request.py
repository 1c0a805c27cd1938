"""Request from a user to get a project listed that is not on the site yet."""

from sqlalchemy import String, Text, ForeignKey, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grihome.database import Base
from typing import Optional, TYPE_CHECKING
import enum
import uuid

if TYPE_CHECKING:
    from grihome.models.user import User


class ProjectRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ProjectRequest(Base):
    __tablename__ = "project_requests"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    builder_name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(512), nullable=False)
    project_type: Mapped[str] = mapped_column(String(50), nullable=False)

    contact_person_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person_phone: Mapped[str] = mapped_column(String(20), nullable=False)

    builder_website: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    project_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    additional_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[ProjectRequestStatus] = mapped_column(
        SQLEnum(ProjectRequestStatus),
        nullable=False,
        default=ProjectRequestStatus.PENDING,
        index=True
    )

    requester: Mapped["User"] = relationship("User", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "builder_name": self.builder_name,
            "project_name": self.project_name,
            "location": self.location,
            "project_type": self.project_type,
            "contact_person_name": self.contact_person_name,
            "contact_person_email": self.contact_person_email,
            "contact_person_phone": self.contact_person_phone,
            "builder_website": self.builder_website,
            "project_description": self.project_description,
            "additional_info": self.additional_info,
            "status": self.status.value,
            "created_at": self.created_at,
        }
