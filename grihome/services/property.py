"""
Property service for managing listings with ownership validation.
Handles CRUD, the ACTIVE/SOLD/ARCHIVED lifecycle, favourites and search.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.repositories.property import PropertyRepository, SavedPropertyRepository, PropertySearchFilters
from grihome.repositories.project import ProjectRepository
from grihome.models.property import Property, ListingStatus
from grihome.models.user import User
from grihome.schemas.property import PropertyCreate, PropertyUpdate
from grihome.services.location import LocationService
from grihome.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    OwnershipError,
    BadRequestError,
    BusinessRuleViolationError,
)
from grihome.utils.rate_limit import limiter
from grihome.utils.time import utc_now
from grihome.utils.validators import to_square_feet
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyService:
    """
    Property service for listings posted by individual users.
    Only the owner may edit a listing or move it between states.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.saved_repo = SavedPropertyRepository(db_session)
        self.project_repo = ProjectRepository(db_session)
        self.location_service = LocationService(db_session)

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a new property listing.

        Args:
            property_data: Property creation data
            current_user: Verified user posting the listing

        Returns:
            Created property instance

        Raises:
            RateLimitExceededError: Too many listings in a short window
            NotFoundError: Referenced project does not exist
            BadRequestError: Size unit not supported
        """
        limiter.hit_action("property_create", str(current_user.id))

        if property_data.project_id:
            await self._require_project(property_data.project_id)

        sizes = self._converted_sizes(property_data)

        loc = property_data.location
        location = await self.location_service.resolve(
            loc.address,
            city=loc.city,
            state=loc.state,
            country=loc.country,
            locality=loc.locality,
            zipcode=loc.zipcode,
        )

        create_data = property_data.model_dump(
            exclude={"location", "property_size", "size_unit", "plot_size", "plot_size_unit"}
        )
        create_data.update(sizes)
        create_data["user_id"] = current_user.id
        create_data["location_id"] = location.id
        create_data["listing_status"] = ListingStatus.ACTIVE

        property_obj = await self.property_repo.create(create_data)

        logger.info(f"Property created by user {current_user.email}: {property_obj.title} (ID: {property_obj.id})")
        return property_obj

    async def get_property(self, property_id: uuid.UUID, current_user: Optional[User] = None) -> Property:
        """
        Get property by ID. Listings that are not ACTIVE are visible to their owner only.

        Raises:
            NotFoundError: If property doesn't exist or is hidden from the caller
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))

        is_owner = current_user is not None and property_obj.user_id == current_user.id
        if not property_obj.is_active and not is_owner:
            raise NotFoundError("Property", str(property_id))

        return property_obj

    async def update_property(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """
        Update property fields sent by the owner.

        Raises:
            NotFoundError: If property doesn't exist
            OwnershipError: If the caller is not the owner
        """
        property_obj = await self._get_owned(property_id, current_user)

        update_data = property_data.model_dump(
            exclude_unset=True,
            exclude={"location", "property_size", "size_unit", "plot_size", "plot_size_unit"}
        )
        update_data.update(self._converted_sizes(property_data, partial=True))

        if update_data.get("project_id"):
            await self._require_project(update_data["project_id"])

        if property_data.location is not None:
            loc = property_data.location
            location = await self.location_service.resolve(
                loc.address,
                city=loc.city,
                state=loc.state,
                country=loc.country,
                locality=loc.locality,
                zipcode=loc.zipcode,
            )
            update_data["location_id"] = location.id

        if not update_data:
            raise BadRequestError("No valid fields provided for update")

        updated = await self.property_repo.update(property_obj, update_data)
        logger.info(f"Property updated by user {current_user.email}: {property_id}")
        return updated

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> None:
        await self._get_owned(property_id, current_user)
        await self.property_repo.delete(property_id)
        logger.info(f"Property deleted by user {current_user.email}: {property_id}")

    async def mark_sold(self, property_id: uuid.UUID, sold_to: Optional[str], current_user: User) -> Property:
        """
        Raises:
            BusinessRuleViolationError: Listing is not ACTIVE
        """
        property_obj = await self._get_owned(property_id, current_user)
        if property_obj.listing_status != ListingStatus.ACTIVE:
            raise BusinessRuleViolationError(
                "only active listings can be marked as sold",
                f"current status is {property_obj.listing_status.value}"
            )

        updated = await self.property_repo.update(property_obj, {
            "listing_status": ListingStatus.SOLD,
            "sold_to": sold_to.strip() if sold_to else None,
            "sold_at": utc_now(),
        })
        logger.info(f"Property {property_id} marked as sold by {current_user.email}")
        return updated

    async def archive(self, property_id: uuid.UUID, current_user: User) -> Property:
        property_obj = await self._get_owned(property_id, current_user)
        if property_obj.listing_status == ListingStatus.ARCHIVED:
            raise BusinessRuleViolationError("listing is already archived")

        updated = await self.property_repo.update(property_obj, {"listing_status": ListingStatus.ARCHIVED})
        logger.info(f"Property {property_id} archived by {current_user.email}")
        return updated

    async def reactivate(self, property_id: uuid.UUID, current_user: User) -> Property:
        """Bring a SOLD or ARCHIVED listing back to ACTIVE and clear the sale record."""
        property_obj = await self._get_owned(property_id, current_user)
        if property_obj.listing_status == ListingStatus.ACTIVE:
            raise BusinessRuleViolationError("listing is already active")

        updated = await self.property_repo.update(
            property_obj,
            {"listing_status": ListingStatus.ACTIVE, "sold_to": None, "sold_at": None},
            skip_none=False
        )
        logger.info(f"Property {property_id} reactivated by {current_user.email}")
        return updated

    async def search_properties(self, filters: PropertySearchFilters) -> Tuple[List[Property], int]:
        return await self.property_repo.search(filters)

    async def list_user_properties(
        self,
        current_user: User,
        status: Optional[ListingStatus] = None
    ) -> Tuple[List[Property], Dict[str, int]]:
        """The caller's listings (optionally one status) plus a count per status."""
        every = await self.property_repo.list_for_user(current_user.id)
        counts = {s.value: 0 for s in ListingStatus}
        for p in every:
            counts[p.listing_status.value] += 1
        if status:
            every = [p for p in every if p.listing_status == status]
        return every, counts

    async def active_listings(self, current_user: User) -> Dict[str, Any]:
        """Listings the caller may advertise: own ACTIVE properties and builder-contact projects."""
        properties = await self.property_repo.list_for_user(current_user.id, ListingStatus.ACTIVE)
        projects = await self.project_repo.list_for_contact_email(current_user.email)

        property_options = [
            {
                "id": str(p.id),
                "title": p.title,
                "kind": "property",
                "price": p.price,
                "thumbnail_url": p.thumbnail_url or ((p.image_urls or [None])[0]),
                "city": p.location.city if p.location else None,
            }
            for p in properties
        ]
        project_options = [
            {
                "id": str(p.id),
                "title": p.name,
                "kind": "project",
                "price": p.min_price,
                "thumbnail_url": p.thumbnail_url or ((p.image_urls or [None])[0]),
                "city": p.location.city if p.location else None,
            }
            for p in projects
        ]
        return {
            "properties": property_options,
            "projects": project_options,
            "has_active_listings": bool(property_options or project_options),
        }

    # Favourites

    async def toggle_favorite(self, property_id: uuid.UUID, current_user: User) -> bool:
        """
        Save or unsave a listing.

        Returns:
            True when the listing is now a favourite

        Raises:
            NotFoundError: Listing does not exist
            ForbiddenError: Owners cannot favourite their own listing
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        if property_obj.user_id == current_user.id:
            raise ForbiddenError("You cannot favorite your own property")

        if await self.saved_repo.get_saved(current_user.id, property_id):
            await self.saved_repo.remove(current_user.id, property_id)
            logger.debug(f"User {current_user.id} removed favourite {property_id}")
            return False

        await self.saved_repo.create({"user_id": current_user.id, "property_id": property_id})
        logger.debug(f"User {current_user.id} saved favourite {property_id}")
        return True

    async def list_favorites(self, current_user: User) -> List[Property]:
        saved = await self.saved_repo.list_for_user(current_user.id)
        return [s.listing for s in saved if s.listing is not None]

    async def favorite_ids(self, user: Optional[User]) -> set:
        if user is None:
            return set()
        saved = await self.saved_repo.list_for_user(user.id)
        return {s.property_id for s in saved}

    # Helpers

    async def _get_owned(self, property_id: uuid.UUID, current_user: User) -> Property:
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        if property_obj.user_id != current_user.id:
            logger.warning(f"User {current_user.id} tried to modify property {property_id} owned by {property_obj.user_id}")
            raise OwnershipError("You don't have permission to modify this property")
        return property_obj

    async def _require_project(self, project_id: uuid.UUID) -> None:
        if not await self.project_repo.exists(project_id):
            raise NotFoundError("Project", str(project_id))

    @staticmethod
    def _converted_sizes(data, partial: bool = False) -> Dict[str, Optional[float]]:
        """Sizes converted to square feet. With partial=True only sizes that were sent are returned."""
        sent = data.model_fields_set
        result = {}
        try:
            if not partial or "property_size" in sent:
                result["sq_ft"] = to_square_feet(data.property_size, data.size_unit)
            if not partial or "plot_size" in sent:
                result["plot_size_sq_ft"] = to_square_feet(data.plot_size, data.plot_size_unit)
        except ValueError as e:
            raise BadRequestError(str(e))
        return result
