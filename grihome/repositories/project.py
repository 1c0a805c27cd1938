"""
Project repository plus the agent-registration and project-listing join tables.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from grihome.repositories.base import BaseRepository
from grihome.models.project import Project, ProjectType, ProjectAgent, ProjectProperty
from grihome.models.location import Location
from grihome.models.builder import Builder
from grihome.models.property import Property, ListingStatus
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Tuple, Dict
import uuid
import logging

logger = logging.getLogger(__name__)


@dataclass
class ProjectSearchFilters:
    """Search filters for project listing queries."""
    query: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    builder_id: Optional[uuid.UUID] = None
    project_type: Optional[ProjectType] = None
    include_archived: bool = False
    skip: int = 0
    limit: int = 20


class ProjectRepository(BaseRepository[Project]):

    def __init__(self, db: AsyncSession):
        super().__init__(Project, db)

    async def search(self, filters: ProjectSearchFilters) -> Tuple[List[Project], int]:
        try:
            conditions = []
            if not filters.include_archived:
                conditions.append(Project.is_archived.is_(False))
            if filters.city:
                conditions.append(func.lower(Location.city) == filters.city.lower().strip())
            if filters.state:
                conditions.append(func.lower(Location.state) == filters.state.lower().strip())
            if filters.builder_id:
                conditions.append(Project.builder_id == filters.builder_id)
            if filters.project_type:
                conditions.append(Project.type == filters.project_type)
            if filters.query:
                pattern = f"%{filters.query.lower().strip()}%"
                conditions.append(
                    or_(
                        func.lower(Project.name).like(pattern),
                        func.lower(Project.description).like(pattern),
                        func.lower(Builder.name).like(pattern),
                        func.lower(Location.city).like(pattern),
                        func.lower(Location.locality).like(pattern),
                    )
                )

            base = (
                select(Project)
                .join(Location, Project.location_id == Location.id)
                .join(Builder, Project.builder_id == Builder.id)
                .where(*conditions)
            )
            count_query = select(func.count()).select_from(base.subquery())
            total = (await self.db.execute(count_query)).scalar() or 0

            result = await self.db.execute(
                base.order_by(Project.created_at.desc()).offset(filters.skip).limit(filters.limit)
            )
            return list(result.scalars().all()), total
        except Exception as e:
            logger.error(f"Failed to search projects: {e}")
            raise

    async def list_for_contact_email(self, email: str) -> List[Project]:
        """Live projects whose builder lists this address among its contacts."""
        # Contact emails sit in a JSON column, matched here rather than in SQL
        result = await self.db.execute(
            select(Project)
            .where(Project.is_archived.is_(False))
            .order_by(Project.created_at.desc())
        )
        target = (email or "").lower()
        return [p for p in result.scalars().all() if p.builder and target in p.builder.contact_emails]

    async def active_properties(self, project_id: uuid.UUID) -> List[Property]:
        result = await self.db.execute(
            select(Property)
            .where(Property.project_id == project_id, Property.listing_status == ListingStatus.ACTIVE)
            .order_by(Property.created_at.desc())
        )
        return list(result.scalars().all())

    async def property_counts(self, project_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        if not project_ids:
            return {}
        result = await self.db.execute(
            select(Property.project_id, func.count(Property.id))
            .where(Property.project_id.in_(project_ids))
            .group_by(Property.project_id)
        )
        return {project_id: count for project_id, count in result.all()}


class ProjectAgentRepository(BaseRepository[ProjectAgent]):

    def __init__(self, db: AsyncSession):
        super().__init__(ProjectAgent, db)

    async def get_registration(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ProjectAgent]:
        result = await self.db.execute(
            select(ProjectAgent).where(ProjectAgent.project_id == project_id, ProjectAgent.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: uuid.UUID) -> List[ProjectAgent]:
        """Promoted first, then latest promotion end, then most recent registration."""
        result = await self.db.execute(
            select(ProjectAgent)
            .where(ProjectAgent.project_id == project_id)
            .order_by(
                ProjectAgent.is_promoted.desc(),
                ProjectAgent.promotion_end_date.desc().nulls_last(),
                ProjectAgent.registered_at.desc(),
            )
        )
        return list(result.scalars().all())

    async def list_for_agent(self, user_id: uuid.UUID, skip: int = 0, limit: int = 20) -> Tuple[List[ProjectAgent], int]:
        total = (await self.db.execute(
            select(func.count(ProjectAgent.id)).where(ProjectAgent.user_id == user_id)
        )).scalar() or 0
        result = await self.db.execute(
            select(ProjectAgent)
            .where(ProjectAgent.user_id == user_id)
            .order_by(ProjectAgent.registered_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def promotions_ending_between(self, start: datetime, end: datetime) -> List[ProjectAgent]:
        result = await self.db.execute(
            select(ProjectAgent).where(
                ProjectAgent.is_promoted.is_(True),
                ProjectAgent.promotion_end_date >= start,
                ProjectAgent.promotion_end_date < end,
            )
        )
        return list(result.scalars().all())

    async def list_recent(self) -> List[ProjectAgent]:
        result = await self.db.execute(select(ProjectAgent).order_by(ProjectAgent.registered_at.desc()))
        return list(result.scalars().all())


class ProjectPropertyRepository(BaseRepository[ProjectProperty]):

    def __init__(self, db: AsyncSession):
        super().__init__(ProjectProperty, db)

    async def get_link(self, project_id: uuid.UUID, property_id: uuid.UUID) -> Optional[ProjectProperty]:
        result = await self.db.execute(
            select(ProjectProperty).where(
                ProjectProperty.project_id == project_id,
                ProjectProperty.property_id == property_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: uuid.UUID) -> List[ProjectProperty]:
        result = await self.db.execute(
            select(ProjectProperty)
            .where(ProjectProperty.project_id == project_id)
            .order_by(
                ProjectProperty.is_promoted.desc(),
                ProjectProperty.promotion_end_date.desc().nulls_last(),
            )
        )
        return list(result.scalars().all())

    async def promotions_ending_between(self, start: datetime, end: datetime) -> List[ProjectProperty]:
        result = await self.db.execute(
            select(ProjectProperty).where(
                ProjectProperty.is_promoted.is_(True),
                ProjectProperty.promotion_end_date >= start,
                ProjectProperty.promotion_end_date < end,
            )
        )
        return list(result.scalars().all())

    async def list_recent(self) -> List[ProjectProperty]:
        result = await self.db.execute(select(ProjectProperty).order_by(ProjectProperty.created_at.desc()))
        return list(result.scalars().all())
