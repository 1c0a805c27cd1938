"""
Intake for projects that are not listed yet. Requests are stored for review
and the administrators are emailed.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.config import settings
from grihome.models.project_request import ProjectRequest, ProjectRequestStatus
from grihome.models.user import User
from grihome.repositories.project_request import ProjectRequestRepository
from grihome.schemas.project_request import ProjectRequestCreate
from grihome.services.notifications import notify_quietly
from grihome.utils.exceptions import NotFoundError
import uuid
import logging

logger = logging.getLogger(__name__)


class ProjectRequestService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.request_repo = ProjectRequestRepository(db_session)

    async def submit(self, data: ProjectRequestCreate, current_user: User) -> Tuple[ProjectRequest, bool]:
        """
        Returns:
            The stored request and whether any administrator was emailed
        """
        request = await self.request_repo.create({
            "user_id": current_user.id,
            **data.model_dump(mode="json"),
        })
        logger.info(f"Project request {request.id} submitted by {current_user.email}: {request.project_name}")

        notified = False
        for email in settings.admin_emails:
            sent = await notify_quietly(
                to_email=email,
                subject=f"[New project request] {request.project_name} by {request.builder_name}",
                text=self._admin_text(request, current_user),
            )
            notified = notified or sent
        return request, notified

    async def list_requests(
        self,
        status: Optional[ProjectRequestStatus],
        skip: int,
        limit: int
    ) -> Tuple[List[ProjectRequest], int]:
        return await self.request_repo.search(status, skip, limit)

    async def set_status(self, request_id: uuid.UUID, status: ProjectRequestStatus) -> ProjectRequest:
        request = await self.request_repo.get_by_id(request_id)
        if not request:
            raise NotFoundError("Project request", str(request_id))
        return await self.request_repo.update(request, {"status": status})

    @staticmethod
    def _admin_text(request: ProjectRequest, user: User) -> str:
        lines = [
            f"Request ID: {request.id}",
            f"Submitted by: {user.full_name or user.username} ({user.email})",
            "",
            f"Builder: {request.builder_name}",
        ]
        if request.builder_website:
            lines.append(f"Website: {request.builder_website}")
        lines += [
            f"Project: {request.project_name}",
            f"Type: {request.project_type}",
            f"Location: {request.location}",
        ]
        if request.project_description:
            lines.append(f"Description: {request.project_description}")
        lines += [
            "",
            f"Contact: {request.contact_person_name}",
            f"Email: {request.contact_person_email}",
            f"Phone: {request.contact_person_phone}",
        ]
        if request.additional_info:
            lines += ["", request.additional_info]
        return "\n".join(lines)
