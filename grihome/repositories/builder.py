"""Builder repository."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from grihome.repositories.base import BaseRepository
from grihome.models.builder import Builder
from grihome.models.project import Project
from typing import Optional, List, Tuple, Dict
import uuid
import logging

logger = logging.getLogger(__name__)


class BuilderRepository(BaseRepository[Builder]):

    def __init__(self, db: AsyncSession):
        super().__init__(Builder, db)

    async def get_by_name_ci(self, name: str) -> Optional[Builder]:
        result = await self.db.execute(
            select(Builder).where(func.lower(Builder.name) == name.lower().strip())
        )
        return result.scalars().first()

    async def search(self, query: Optional[str], skip: int, limit: int) -> Tuple[List[Builder], int]:
        try:
            stmt = select(Builder)
            count_stmt = select(func.count(Builder.id))
            if query:
                pattern = f"%{query.lower().strip()}%"
                stmt = stmt.where(func.lower(Builder.name).like(pattern))
                count_stmt = count_stmt.where(func.lower(Builder.name).like(pattern))

            total = (await self.db.execute(count_stmt)).scalar() or 0
            result = await self.db.execute(stmt.order_by(Builder.name).offset(skip).limit(limit))
            return list(result.scalars().all()), total
        except Exception as e:
            logger.error(f"Failed to search builders: {e}")
            raise

    async def project_counts(self, builder_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        if not builder_ids:
            return {}
        result = await self.db.execute(
            select(Project.builder_id, func.count(Project.id))
            .where(Project.builder_id.in_(builder_ids), Project.is_archived.is_(False))
            .group_by(Project.builder_id)
        )
        return {builder_id: count for builder_id, count in result.all()}

    async def get_projects(self, builder_id: uuid.UUID) -> List[Project]:
        result = await self.db.execute(
            select(Project)
            .where(Project.builder_id == builder_id, Project.is_archived.is_(False))
            .order_by(Project.created_at.desc())
        )
        return list(result.scalars().all())
