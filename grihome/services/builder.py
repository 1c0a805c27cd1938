"""
Builder service: directory search, creation by verified users, admin edits.
"""

from typing import Tuple, List, Dict, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.models.builder import Builder
from grihome.models.user import User
from grihome.repositories.builder import BuilderRepository
from grihome.schemas.builder import BuilderCreate, BuilderUpdate
from grihome.utils.exceptions import NotFoundError, DuplicateResourceError
import uuid
import logging

logger = logging.getLogger(__name__)


class BuilderService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.builder_repo = BuilderRepository(db_session)

    async def get_builder(self, builder_id: uuid.UUID) -> Builder:
        builder = await self.builder_repo.get_by_id(builder_id)
        if not builder:
            raise NotFoundError("Builder", str(builder_id))
        return builder

    async def search_builders(
        self,
        query: Optional[str],
        skip: int,
        limit: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Builders matching the name query, each with its live project count."""
        builders, total = await self.builder_repo.search(query, skip, limit)
        counts = await self.builder_repo.project_counts([b.id for b in builders])
        items = [{**b.to_dict(), "project_count": counts.get(b.id, 0)} for b in builders]
        return items, total

    async def get_builder_detail(self, builder_id: uuid.UUID) -> Dict[str, Any]:
        builder = await self.get_builder(builder_id)
        projects = await self.builder_repo.get_projects(builder_id)
        return {
            **builder.to_dict(),
            "project_count": len(projects),
            "projects": [
                {
                    "id": str(p.id),
                    "name": p.name,
                    "type": p.type.value,
                    "city": p.location.city if p.location else None,
                    "thumbnail_url": p.thumbnail_url or ((p.image_urls or [None])[0]),
                }
                for p in projects
            ],
        }

    async def create_builder(self, data: BuilderCreate, current_user: User) -> Builder:
        """
        Raises:
            DuplicateResourceError: A builder with the same name (any case) exists
        """
        if await self.builder_repo.get_by_name_ci(data.name):
            raise DuplicateResourceError(f"Builder '{data.name}' already exists")

        builder = await self.builder_repo.create({
            "name": data.name,
            "description": data.description,
            "logo_url": data.logo_url,
            "website": data.website,
            "contact_info": data.contact_info(),
            "created_by_id": current_user.id,
        })
        logger.info(f"Builder created by {current_user.email}: {builder.name} (ID: {builder.id})")
        return builder

    async def update_builder(self, builder_id: uuid.UUID, data: BuilderUpdate, current_user: User) -> Builder:
        builder = await self.get_builder(builder_id)
        changes = data.changes()

        new_name = changes.get("name")
        if new_name and new_name.lower() != builder.name.lower():
            clash = await self.builder_repo.get_by_name_ci(new_name)
            if clash and clash.id != builder.id:
                raise DuplicateResourceError(f"Builder '{new_name}' already exists")

        updated = await self.builder_repo.update(builder, changes)
        logger.info(f"Builder updated by {current_user.email}: {builder_id}")
        return updated
