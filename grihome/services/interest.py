"""
Interest service: a buyer flags a project or a property, and the builder or
owner is told by email when possible.
"""

from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.models.interest import Interest
from grihome.models.user import User
from grihome.repositories.interest import InterestRepository
from grihome.repositories.project import ProjectRepository
from grihome.repositories.property import PropertyRepository
from grihome.services.notifications import notify_quietly
from grihome.utils.exceptions import NotFoundError, DuplicateResourceError, BadRequestError
import uuid
import logging

logger = logging.getLogger(__name__)


class InterestService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.interest_repo = InterestRepository(db_session)
        self.project_repo = ProjectRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def express_interest(
        self,
        current_user: User,
        project_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None,
        message: Optional[str] = None
    ) -> Tuple[Interest, bool]:
        """
        Record interest in exactly one target and notify its builder or owner.

        Returns:
            The interest row and whether at least one notification was sent

        Raises:
            BadRequestError: Neither or both targets given
            NotFoundError: Target does not exist
            DuplicateResourceError: Interest already recorded
        """
        if (project_id is None) == (property_id is None):
            raise BadRequestError("Provide exactly one of project_id or property_id")

        if project_id:
            target = await self.project_repo.get_by_id(project_id)
            if not target:
                raise NotFoundError("Project", str(project_id))
            recipients = target.builder.contact_emails if target.builder else []
            title = target.name
        else:
            target = await self.property_repo.get_by_id(property_id)
            if not target:
                raise NotFoundError("Property", str(property_id))
            recipients = [target.owner.email] if target.owner and target.owner.id != current_user.id else []
            title = target.title

        if await self.interest_repo.find(current_user.id, project_id=project_id, property_id=property_id):
            raise DuplicateResourceError("You have already expressed interest")

        interest = await self.interest_repo.create({
            "user_id": current_user.id,
            "project_id": project_id,
            "property_id": property_id,
            "message": message.strip() if message else None,
        })
        logger.info(f"User {current_user.id} expressed interest in {'project' if project_id else 'property'} {project_id or property_id}")

        notified = False
        for email in recipients:
            sent = await notify_quietly(
                to_email=email,
                subject=f"New interest in {title}",
                text=self._notification_text(current_user, title, interest.message),
            )
            notified = notified or sent
        return interest, notified

    async def has_interest(
        self,
        current_user: User,
        project_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None
    ) -> bool:
        if (project_id is None) == (property_id is None):
            raise BadRequestError("Provide exactly one of project_id or property_id")
        found = await self.interest_repo.find(current_user.id, project_id=project_id, property_id=property_id)
        return found is not None

    @staticmethod
    def _notification_text(user: User, title: str, message: Optional[str]) -> str:
        lines = [
            f"{user.full_name or user.username} is interested in {title}.",
            "",
            f"Email: {user.email}",
        ]
        if user.mobile_number:
            lines.append(f"Mobile: {user.mobile_number}")
        if message:
            lines += ["", "Message:", message]
        return "\n".join(lines)
