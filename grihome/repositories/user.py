"""
User repository for authentication and account lookups.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from grihome.repositories.base import BaseRepository
from grihome.models.user import User, UserRole
from grihome.models.property import Property
from datetime import datetime
from typing import Optional, List, Tuple
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user accounts."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            result = await self.db.execute(select(User).where(User.email == email.lower().strip()))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def get_by_username(self, username: str) -> Optional[User]:
        try:
            result = await self.db.execute(
                select(User).where(func.lower(User.username) == username.lower().strip())
            )
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get user by username {username}: {e}")
            raise

    async def get_by_mobile(self, mobile_number: str) -> Optional[User]:
        try:
            result = await self.db.execute(select(User).where(User.mobile_number == mobile_number.strip()))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get user by mobile {mobile_number}: {e}")
            raise

    async def get_by_identifier(self, identifier: str) -> Optional[User]:
        """Look a user up by email, username or mobile number."""
        value = identifier.strip()
        try:
            result = await self.db.execute(
                select(User).where(
                    or_(
                        User.email == value.lower(),
                        func.lower(User.username) == value.lower(),
                        User.mobile_number == value,
                    )
                )
            )
            return result.scalars().first()
        except Exception as e:
            logger.error(f"Failed to get user by identifier {identifier}: {e}")
            raise

    async def verified_email_exists(self, email: str) -> bool:
        result = await self.db.execute(
            select(func.count(User.id)).where(
                User.email == email.lower().strip(),
                User.email_verified_at.is_not(None),
            )
        )
        return (result.scalar() or 0) > 0

    async def verified_mobile_exists(self, mobile_number: str) -> bool:
        result = await self.db.execute(
            select(func.count(User.id)).where(
                User.mobile_number == mobile_number.strip(),
                User.mobile_verified_at.is_not(None),
            )
        )
        return (result.scalar() or 0) > 0

    async def search_agents(
        self,
        search: Optional[str] = None,
        company: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Tuple[User, int]], int]:
        """
        AGENT accounts with how many properties each has listed, newest first.
        A company filter matches the whole name and takes precedence over search.
        """
        conditions = [User.role == UserRole.AGENT, User.is_active.is_(True)]
        if company:
            conditions.append(func.lower(User.company_name) == company.lower().strip())
        elif search:
            pattern = f"%{search.lower().strip()}%"
            conditions.append(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    func.lower(User.username).like(pattern),
                    func.lower(User.company_name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )

        try:
            total = (await self.db.execute(select(func.count(User.id)).where(*conditions))).scalar() or 0

            listing_count = (
                select(func.count(Property.id))
                .where(Property.user_id == User.id)
                .correlate(User)
                .scalar_subquery()
            )
            result = await self.db.execute(
                select(User, listing_count)
                .where(*conditions)
                .order_by(User.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            return [(user, count or 0) for user, count in result.all()], total
        except Exception as e:
            logger.error(f"Failed to search agents: {e}")
            raise

    async def count_joined_since(self, since: Optional[datetime] = None) -> int:
        query = select(func.count(User.id))
        if since is not None:
            query = query.where(User.created_at >= since)
        return (await self.db.execute(query)).scalar() or 0

    async def count_by_role(self, role: UserRole) -> int:
        result = await self.db.execute(select(func.count(User.id)).where(User.role == role))
        return result.scalar() or 0
