"""
Project listing requests submitted by users.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from grihome.repositories.base import BaseRepository
from grihome.models.project_request import ProjectRequest, ProjectRequestStatus
from typing import Optional, List, Tuple


class ProjectRequestRepository(BaseRepository[ProjectRequest]):

    def __init__(self, db: AsyncSession):
        super().__init__(ProjectRequest, db)

    async def search(
        self,
        status: Optional[ProjectRequestStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ProjectRequest], int]:
        conditions = [ProjectRequest.status == status] if status else []
        total = (await self.db.execute(
            select(func.count(ProjectRequest.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(ProjectRequest)
            .where(*conditions)
            .order_by(ProjectRequest.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total
