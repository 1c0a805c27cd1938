"""
Project service for project listings, agent registration and time-boxed promotions.

Promotions are swept lazily: whenever agents or promoted properties of a
project are read, rows whose promotion window has passed are cleared first.
"""

from typing import Tuple, List, Dict, Any, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.config import settings
from grihome.models.project import Project, ProjectAgent, ProjectProperty
from grihome.models.property import ListingStatus
from grihome.models.user import User
from grihome.models.promotion import PromotionMixin
from grihome.repositories.project import (
    ProjectRepository,
    ProjectAgentRepository,
    ProjectPropertyRepository,
    ProjectSearchFilters,
)
from grihome.repositories.builder import BuilderRepository
from grihome.repositories.property import PropertyRepository
from grihome.schemas.project import ProjectCreate, ProjectUpdate
from grihome.services.location import LocationService
from grihome.services.notifications import notify_quietly
from grihome.utils.auth import is_admin
from grihome.utils.exceptions import (
    NotFoundError,
    InsufficientPermissionsError,
    DuplicateResourceError,
    InvalidDurationError,
    OwnershipError,
)
from grihome.utils.time import utc_now, as_utc
import uuid
import logging

logger = logging.getLogger(__name__)


def sweep_expired_promotions(rows: Sequence[PromotionMixin], now) -> int:
    """Clear promotion state on rows whose window has passed. Returns how many changed."""
    changed = 0
    for row in rows:
        if row.promotion_expired(now):
            row.clear_promotion()
            changed += 1
    return changed


def validate_promotion_days(days, maximum: int) -> int:
    if isinstance(days, bool) or not isinstance(days, int) or days < 1 or days > maximum:
        raise InvalidDurationError(days, 1, maximum)
    return days


class ProjectService:
    """
    Project listings plus the agent and property promotion pages inside a project.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.project_repo = ProjectRepository(db_session)
        self.agent_repo = ProjectAgentRepository(db_session)
        self.link_repo = ProjectPropertyRepository(db_session)
        self.builder_repo = BuilderRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.location_service = LocationService(db_session)

    async def get_project(self, project_id: uuid.UUID) -> Project:
        project = await self.project_repo.get_by_id(project_id)
        if not project:
            raise NotFoundError("Project", str(project_id))
        return project

    def _check_can_manage(self, project: Project, user: User, action: str) -> None:
        if project.created_by_id == user.id or is_admin(user):
            return
        raise InsufficientPermissionsError(action)

    async def create_project(self, data: ProjectCreate, current_user: User) -> Project:
        """
        Raises:
            NotFoundError: Builder does not exist
            GeocodingError: Address could not be placed while geocoding is configured
        """
        builder = await self.builder_repo.get_by_id(data.builder_id)
        if not builder:
            raise NotFoundError("Builder", str(data.builder_id))

        location = await self.location_service.resolve(
            data.location.address,
            city=data.location.city,
            state=data.location.state,
            country=data.location.country,
            locality=data.location.locality,
            zipcode=data.location.zipcode,
            require_geocode=True,
        )

        project = await self.project_repo.create({
            "name": data.name,
            "description": data.description,
            "type": data.type,
            "builder_id": builder.id,
            "location_id": location.id,
            "created_by_id": current_user.id,
            "highlights": data.highlights,
            "amenities": data.amenities,
            "image_urls": data.image_urls,
            "thumbnail_url": data.thumbnail_url,
            "map_data": data.map_data,
            "min_price": data.min_price,
            "max_price": data.max_price,
        })

        logger.info(f"Project created by {current_user.email}: {project.name} (ID: {project.id})")
        return project

    async def search_projects(self, filters: ProjectSearchFilters) -> Tuple[List[Project], int]:
        return await self.project_repo.search(filters)

    async def update_project(self, project_id: uuid.UUID, data: ProjectUpdate, current_user: User) -> Project:
        project = await self.get_project(project_id)
        self._check_can_manage(project, current_user, "update this project")

        changes = data.model_dump(exclude_unset=True, exclude={"location"})

        if data.builder_id and data.builder_id != project.builder_id:
            if not await self.builder_repo.exists(data.builder_id):
                raise NotFoundError("Builder", str(data.builder_id))

        if data.location is not None:
            location = await self.location_service.resolve(
                data.location.address,
                city=data.location.city,
                state=data.location.state,
                country=data.location.country,
                locality=data.location.locality,
                zipcode=data.location.zipcode,
                require_geocode=True,
            )
            changes["location_id"] = location.id

        updated = await self.project_repo.update(project, changes)
        logger.info(f"Project updated by {current_user.email}: {project_id}")
        return updated

    async def toggle_archive(self, project_id: uuid.UUID, current_user: User) -> Project:
        project = await self.get_project(project_id)
        self._check_can_manage(project, current_user, "archive this project")

        updated = await self.project_repo.update(project, {"is_archived": not project.is_archived})
        logger.info(f"Project {project_id} archived={updated.is_archived} by {current_user.email}")
        return updated

    async def delete_project(self, project_id: uuid.UUID, current_user: User) -> None:
        if not is_admin(current_user):
            raise InsufficientPermissionsError("delete projects")
        await self.get_project(project_id)
        await self.project_repo.delete(project_id)
        logger.info(f"Project deleted by {current_user.email}: {project_id}")

    # Agents

    async def register_agent(self, project_id: uuid.UUID, current_user: User) -> ProjectAgent:
        """
        Raises:
            InsufficientPermissionsError: Caller is not an agent
            NotFoundError: Project does not exist
            DuplicateResourceError: Already registered
        """
        if not current_user.is_agent:
            raise InsufficientPermissionsError("register as a project agent")

        await self.get_project(project_id)

        if await self.agent_repo.get_registration(project_id, current_user.id):
            raise DuplicateResourceError("You are already registered as an agent for this project")

        registration = await self.agent_repo.create({
            "project_id": project_id,
            "user_id": current_user.id,
            "registered_at": utc_now(),
        })
        logger.info(f"Agent {current_user.id} registered for project {project_id}")
        return registration

    async def list_agents(self, project_id: uuid.UUID) -> Dict[str, Any]:
        await self.get_project(project_id)
        now = utc_now()

        registrations = await self.agent_repo.list_for_project(project_id)
        if sweep_expired_promotions(registrations, now):
            await self.agent_repo.commit()
            registrations = await self.agent_repo.list_for_project(project_id)

        entries = []
        for reg in registrations:
            user = reg.user
            entries.append({
                "id": str(reg.id),
                "agent": {
                    "id": str(user.id),
                    "name": user.full_name,
                    "username": user.username,
                    "email": user.email,
                    "mobile_number": user.mobile_number,
                    "image_url": user.image_url,
                    "company_name": user.company_name,
                    "license_number": user.license_number,
                },
                "registered_at": reg.registered_at,
                "is_featured": reg.promotion_active(now),
                "promotion_end_date": as_utc(reg.promotion_end_date),
            })

        featured = [e for e in entries if e["is_featured"]][:settings.featured_limit]
        featured_ids = {e["id"] for e in featured}
        regular = [e for e in entries if e["id"] not in featured_ids]

        return {
            "featured_agents": featured,
            "regular_agents": regular,
            "total_agents": len(entries),
        }

    async def promote_agent(self, project_id: uuid.UUID, total_days: int, current_user: User) -> ProjectAgent:
        """
        Raises:
            InvalidDurationError: total_days outside 1..agent_promotion_max_days
            InsufficientPermissionsError: Caller is not an agent
            NotFoundError: Caller is not registered for the project
        """
        validate_promotion_days(total_days, settings.agent_promotion_max_days)

        if not current_user.is_agent:
            raise InsufficientPermissionsError("promote project agents")

        registration = await self.agent_repo.get_registration(project_id, current_user.id)
        if not registration:
            raise NotFoundError("Agent registration for this project")

        registration.start_promotion(utc_now(), total_days)
        registration.promotion_payment_amount = 0.0
        await self.agent_repo.commit()

        logger.info(f"Agent {current_user.id} promoted in project {project_id} for {total_days} days")
        await self._notify_promotion(project_id, current_user, "Agent Promotion", total_days)
        return registration

    # Properties inside a project

    async def promote_property(
        self,
        project_id: uuid.UUID,
        property_id: uuid.UUID,
        duration: int,
        current_user: User
    ) -> ProjectProperty:
        """
        Raises:
            InvalidDurationError: duration outside 1..property_promotion_max_days
            NotFoundError: Project does not exist
            OwnershipError: Property is not the caller's ACTIVE listing in this project
        """
        validate_promotion_days(duration, settings.property_promotion_max_days)
        await self.get_project(project_id)

        listing = await self.property_repo.get_by_id(property_id)
        if (
            listing is None
            or listing.user_id != current_user.id
            or listing.project_id != project_id
            or listing.listing_status != ListingStatus.ACTIVE
        ):
            raise OwnershipError("Property not found or you do not have permission to promote it")

        now = utc_now()
        link = await self.link_repo.get_link(project_id, property_id)
        if link is None:
            link = await self.link_repo.create(
                {"project_id": project_id, "property_id": property_id, "user_id": current_user.id},
                commit=False
            )
        link.start_promotion(now, duration)
        await self.link_repo.commit()

        logger.info(f"Property {property_id} promoted in project {project_id} for {duration} days")
        await self._notify_promotion(project_id, current_user, "Property Promotion", duration)
        return link

    async def list_properties(self, project_id: uuid.UUID) -> Dict[str, Any]:
        await self.get_project(project_id)
        now = utc_now()

        links = await self.link_repo.list_for_project(project_id)
        if sweep_expired_promotions(links, now):
            await self.link_repo.commit()

        promoted = {link.property_id: link for link in links if link.promotion_active(now)}
        listings = await self.project_repo.active_properties(project_id)

        entries = []
        for listing in listings:
            link = promoted.get(listing.id)
            entries.append({
                "property": listing.to_dict(),
                "is_promoted": link is not None,
                "promotion_end_date": as_utc(link.promotion_end_date) if link else None,
            })

        featured_pool = [e for e in entries if e["is_promoted"]]
        featured_pool.sort(key=lambda e: e["promotion_end_date"], reverse=True)
        featured = featured_pool[:settings.featured_limit]
        featured_ids = {e["property"]["id"] for e in featured}

        return {
            "featured_properties": featured,
            "regular_properties": [e for e in entries if e["property"]["id"] not in featured_ids],
            "all_properties": entries,
            "total_properties": len(entries),
        }

    async def _notify_promotion(self, project_id: uuid.UUID, user: User, kind: str, days: int) -> None:
        project = await self.project_repo.get_by_id(project_id)
        await notify_quietly(
            to_email=user.email,
            subject=f"{kind} confirmed: {project.name if project else 'your project'}",
            text=(
                f"Hi {user.full_name or user.username},\n\n"
                f"Your {kind.lower()} is live for {days} days. Amount charged: Free.\n"
            ),
        )
