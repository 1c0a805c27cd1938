"""
Agent directory: AGENT accounts with their listings and project registrations.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.models.property import Property, ListingStatus
from grihome.models.user import User
from grihome.repositories.project import ProjectRepository, ProjectAgentRepository
from grihome.repositories.property import PropertyRepository
from grihome.repositories.user import UserRepository
from grihome.utils.exceptions import NotFoundError, BadRequestError
from grihome.utils.time import utc_now
import uuid


def agent_profile(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.full_name,
        "username": user.username,
        "email": user.email,
        "mobile_number": user.mobile_number,
        "company_name": user.company_name,
        "image_url": user.image_url,
    }


class AgentService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.project_repo = ProjectRepository(db_session)
        self.agent_repo = ProjectAgentRepository(db_session)

    async def search_agents(
        self,
        search: Optional[str],
        company: Optional[str],
        skip: int,
        limit: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        rows, total = await self.user_repo.search_agents(search, company, skip, limit)
        agents = [
            {**agent_profile(user), "created_at": user.created_at, "listing_count": count}
            for user, count in rows
        ]
        return agents, total

    async def get_agent(self, agent_id: uuid.UUID) -> User:
        """
        Raises:
            NotFoundError: No such user
            BadRequestError: The user is not an agent
        """
        user = await self.user_repo.get_by_id(agent_id)
        if not user:
            raise NotFoundError("Agent", str(agent_id))
        if not user.is_agent:
            raise BadRequestError("User is not an agent")
        return user

    async def agent_properties(
        self,
        agent_id: uuid.UUID,
        status: Optional[ListingStatus],
        skip: int,
        limit: int
    ) -> Tuple[User, List[Property], int]:
        agent = await self.get_agent(agent_id)
        properties, total = await self.property_repo.page_for_user(agent.id, status, skip, limit)
        return agent, properties, total

    async def agent_projects(
        self,
        agent_id: uuid.UUID,
        skip: int,
        limit: int
    ) -> Tuple[User, List[Dict[str, Any]], int]:
        """Projects the agent is registered for, most recent registration first."""
        agent = await self.get_agent(agent_id)
        registrations, total = await self.agent_repo.list_for_agent(agent.id, skip, limit)
        counts = await self.project_repo.property_counts([reg.project_id for reg in registrations])

        now = utc_now()
        projects = []
        for reg in registrations:
            project = reg.project
            location = project.location
            projects.append({
                "id": str(project.id),
                "name": project.name,
                "location": {
                    "city": location.city,
                    "state": location.state,
                    "locality": location.locality,
                } if location else None,
                "builder": project.builder.name if project.builder else "Independent",
                "property_count": counts.get(project.id, 0),
                "registered_at": reg.registered_at,
                "is_promoted": reg.promotion_active(now),
                "thumbnail_url": project.thumbnail_url or ((project.image_urls or [None])[0]),
            })
        return agent, projects, total
