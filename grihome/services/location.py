"""
Resolves a submitted address to a Location row, reusing rows that geocode to the same spot.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.models.location import Location
from grihome.repositories.location import LocationRepository
from grihome.services.geocoding import geocode_address, geocoding_enabled
from grihome.utils.exceptions import GeocodingError, BadRequestError
import logging

logger = logging.getLogger(__name__)


class LocationService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.location_repo = LocationRepository(db_session)

    async def resolve(
        self,
        address: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
        country: Optional[str] = None,
        locality: Optional[str] = None,
        zipcode: Optional[str] = None,
        require_geocode: bool = False,
        commit: bool = False
    ) -> Location:
        """
        Find or create the Location for an address.

        Geocoded addresses match an existing row within ~11 m. Without a
        geocode the row is matched on address, city and state.

        Args:
            require_geocode: Reject addresses the geocoder cannot place
                (only enforced while geocoding is configured)
            commit: Commit a newly created row, otherwise only flush

        Raises:
            GeocodingError: Address could not be placed and require_geocode is set
            BadRequestError: No geocode and no city/state supplied
        """
        geocoded = await geocode_address(address)

        if geocoded is None and require_geocode and geocoding_enabled():
            raise GeocodingError(address)

        if geocoded is not None:
            existing = await self.location_repo.find_near(geocoded.latitude, geocoded.longitude)
            if existing:
                return existing

            return await self.location_repo.create(
                {
                    "address": geocoded.formatted_address or address,
                    "city": geocoded.city or city or "",
                    "state": geocoded.state or state or "",
                    "country": geocoded.country or country or "India",
                    "zipcode": geocoded.zipcode or zipcode,
                    "locality": geocoded.locality or locality,
                    "latitude": geocoded.latitude,
                    "longitude": geocoded.longitude,
                },
                commit=commit
            )

        if not city or not state:
            raise BadRequestError("City and state are required when the address cannot be geocoded")

        existing = await self.location_repo.find_by_address(address, city, state)
        if existing:
            return existing

        logger.debug(f"Creating location without coordinates for {address}, {city}")
        return await self.location_repo.create(
            {
                "address": address.strip(),
                "city": city.strip(),
                "state": state.strip(),
                "country": (country or "India").strip(),
                "zipcode": zipcode,
                "locality": locality,
            },
            commit=commit
        )
