"""Interest repository."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from grihome.repositories.base import BaseRepository
from grihome.models.interest import Interest
from typing import Optional
import uuid


class InterestRepository(BaseRepository[Interest]):

    def __init__(self, db: AsyncSession):
        super().__init__(Interest, db)

    async def find(
        self,
        user_id: uuid.UUID,
        project_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None
    ) -> Optional[Interest]:
        query = select(Interest).where(Interest.user_id == user_id)
        if project_id:
            query = query.where(Interest.project_id == project_id)
        else:
            query = query.where(Interest.property_id == property_id)
        result = await self.db.execute(query)
        return result.scalars().first()
