"""
FastAPI dependency injection utilities for authentication, services and request context.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Optional
from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.config import settings
from grihome.database import get_db
from grihome.models.user import User
from grihome.services.auth import AuthService
from grihome.services.builder import BuilderService
from grihome.services.project import ProjectService
from grihome.services.property import PropertyService
from grihome.services.interest import InterestService
from grihome.services.ad import AdService
from grihome.services.forum import ForumService
from grihome.services.agent import AgentService
from grihome.services.admin import AdminService
from grihome.services.project_request import ProjectRequestService
from grihome.services.reminders import PromotionReminderService
from grihome.utils.auth import is_admin
from grihome.utils.exceptions import (
    APIException,
    UnauthorizedError,
    InactiveUserError,
    VerificationRequiredError,
    InsufficientPermissionsError,
)
import secrets


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_builder_service(db: AsyncSession = Depends(get_db)) -> BuilderService:
    return BuilderService(db)


async def get_project_service(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


async def get_interest_service(db: AsyncSession = Depends(get_db)) -> InterestService:
    return InterestService(db)


async def get_ad_service(db: AsyncSession = Depends(get_db)) -> AdService:
    return AdService(db)


async def get_forum_service(db: AsyncSession = Depends(get_db)) -> ForumService:
    return ForumService(db)


async def get_agent_service(db: AsyncSession = Depends(get_db)) -> AgentService:
    return AgentService(db)


async def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


async def get_project_request_service(db: AsyncSession = Depends(get_db)) -> ProjectRequestService:
    return ProjectRequestService(db)


async def get_reminder_service(db: AsyncSession = Depends(get_db)) -> PromotionReminderService:
    return PromotionReminderService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    return await auth_service.get_current_user(credentials.credentials)


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Raises:
        InactiveUserError: If user account is inactive
    """
    if not current_user.is_active:
        raise InactiveUserError()

    return current_user


async def get_current_verified_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with a confirmed email or mobile number.

    Raises:
        VerificationRequiredError: If neither is verified
    """
    if not current_user.is_verified:
        raise VerificationRequiredError()

    return current_user


async def get_current_agent_user(
    current_user: User = Depends(get_current_verified_user)
) -> User:
    """
    Raises:
        InsufficientPermissionsError: If user is not an agent
    """
    if not current_user.is_agent:
        raise InsufficientPermissionsError("access agent resources")

    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Raises:
        InsufficientPermissionsError: If user is not listed as an administrator
    """
    if not is_admin(current_user):
        raise InsufficientPermissionsError("access admin resources")

    return current_user


# Optional authentication dependency (for public endpoints that personalise output)
async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """
    Get current user if token is provided and valid, otherwise return None.
    """
    if not credentials:
        return None

    try:
        user = await auth_service.get_current_user(credentials.credentials)
        return user if user.is_active else None
    except APIException:
        return None


def get_client_ip(request: Request) -> str:
    """Client address, preferring proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


async def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    """
    Scheduled jobs must present X-Cron-Secret when a secret is configured.

    Raises:
        UnauthorizedError: Missing or wrong secret
    """
    if not settings.cron_secret:
        return
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret, settings.cron_secret):
        raise UnauthorizedError("Invalid cron secret")
