"""Location lookups used when resolving listing addresses."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from grihome.repositories.base import BaseRepository
from grihome.models.location import Location
from typing import Optional

# Roughly 11 metres in degrees of latitude
COORDINATE_TOLERANCE = 0.0001


class LocationRepository(BaseRepository[Location]):

    def __init__(self, db: AsyncSession):
        super().__init__(Location, db)

    async def find_near(self, latitude: float, longitude: float) -> Optional[Location]:
        result = await self.db.execute(
            select(Location).where(
                Location.latitude.between(latitude - COORDINATE_TOLERANCE, latitude + COORDINATE_TOLERANCE),
                Location.longitude.between(longitude - COORDINATE_TOLERANCE, longitude + COORDINATE_TOLERANCE),
            )
        )
        return result.scalars().first()

    async def find_by_address(self, address: str, city: str, state: str) -> Optional[Location]:
        result = await self.db.execute(
            select(Location).where(
                func.lower(Location.address) == address.lower().strip(),
                func.lower(Location.city) == city.lower().strip(),
                func.lower(Location.state) == state.lower().strip(),
            )
        )
        return result.scalars().first()
