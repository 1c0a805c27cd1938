"""
Property repository with search filtering and favourites.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete
from grihome.repositories.base import BaseRepository
from grihome.models.property import Property, PropertyType, ListingType, ListingStatus, SavedProperty
from grihome.models.location import Location
from dataclasses import dataclass
from typing import Optional, List, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    "newest": Property.created_at.desc(),
    "oldest": Property.created_at.asc(),
    "price_asc": Property.price.asc(),
    "price_desc": Property.price.desc(),
}


@dataclass
class PropertySearchFilters:
    """Search filters for property queries."""
    query: Optional[str] = None
    property_type: Optional[PropertyType] = None
    listing_type: Optional[ListingType] = None
    city: Optional[str] = None
    state: Optional[str] = None
    project_id: Optional[uuid.UUID] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    sort: str = "newest"
    skip: int = 0
    limit: int = 20


class PropertyRepository(BaseRepository[Property]):

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def search(self, filters: PropertySearchFilters) -> Tuple[List[Property], int]:
        """Only ACTIVE listings are returned."""
        try:
            conditions = [Property.listing_status == ListingStatus.ACTIVE]
            if filters.property_type:
                conditions.append(Property.property_type == filters.property_type)
            if filters.listing_type:
                conditions.append(Property.listing_type == filters.listing_type)
            if filters.city:
                conditions.append(func.lower(Location.city) == filters.city.lower().strip())
            if filters.state:
                conditions.append(func.lower(Location.state) == filters.state.lower().strip())
            if filters.project_id:
                conditions.append(Property.project_id == filters.project_id)
            if filters.min_price is not None:
                conditions.append(Property.price >= filters.min_price)
            if filters.max_price is not None:
                conditions.append(Property.price <= filters.max_price)
            if filters.bedrooms is not None:
                conditions.append(Property.bedrooms >= filters.bedrooms)
            if filters.query:
                pattern = f"%{filters.query.lower().strip()}%"
                conditions.append(
                    or_(
                        func.lower(Property.title).like(pattern),
                        func.lower(Property.description).like(pattern),
                        func.lower(Location.address).like(pattern),
                        func.lower(Location.city).like(pattern),
                        func.lower(Location.locality).like(pattern),
                    )
                )

            base = select(Property).join(Location, Property.location_id == Location.id).where(*conditions)
            total = (await self.db.execute(select(func.count()).select_from(base.subquery()))).scalar() or 0

            order = SORT_OPTIONS.get(filters.sort, SORT_OPTIONS["newest"])
            result = await self.db.execute(base.order_by(order).offset(filters.skip).limit(filters.limit))
            return list(result.scalars().all()), total
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        status: Optional[ListingStatus] = None
    ) -> List[Property]:
        query = select(Property).where(Property.user_id == user_id)
        if status:
            query = query.where(Property.listing_status == status)
        result = await self.db.execute(query.order_by(Property.created_at.desc()))
        return list(result.scalars().all())

    async def page_for_user(
        self,
        user_id: uuid.UUID,
        status: Optional[ListingStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Property], int]:
        conditions = [Property.user_id == user_id]
        if status:
            conditions.append(Property.listing_status == status)
        total = (await self.db.execute(select(func.count(Property.id)).where(*conditions))).scalar() or 0
        result = await self.db.execute(
            select(Property).where(*conditions).order_by(Property.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total


class SavedPropertyRepository(BaseRepository[SavedProperty]):

    def __init__(self, db: AsyncSession):
        super().__init__(SavedProperty, db)

    async def get_saved(self, user_id: uuid.UUID, property_id: uuid.UUID) -> Optional[SavedProperty]:
        result = await self.db.execute(
            select(SavedProperty).where(
                SavedProperty.user_id == user_id,
                SavedProperty.property_id == property_id,
            )
        )
        return result.scalar_one_or_none()

    async def remove(self, user_id: uuid.UUID, property_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(SavedProperty).where(
                SavedProperty.user_id == user_id,
                SavedProperty.property_id == property_id,
            )
        )
        await self.commit()

    async def list_for_user(self, user_id: uuid.UUID) -> List[SavedProperty]:
        result = await self.db.execute(
            select(SavedProperty)
            .where(SavedProperty.user_id == user_id)
            .order_by(SavedProperty.created_at.desc())
        )
        return list(result.scalars().all())
