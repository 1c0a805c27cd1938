"""
Test configuration and fixtures for the Grihome API.
Provides an in-memory database per test, an HTTP client bound to the app and
factories for the main records.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["SMS_BACKEND"] = "console"
os.environ.pop("GOOGLE_MAPS_API_KEY", None)
os.environ.pop("CRON_SECRET", None)

import pytest
import uuid
from datetime import timedelta
from typing import AsyncGenerator, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
import httpx

from grihome.main import app
from grihome.database import Base, get_db
from grihome.models.user import User, UserRole
from grihome.models.builder import Builder
from grihome.models.project import Project, ProjectType
from grihome.models.property import Property, PropertyType, ListingType, ListingStatus
from grihome.models.location import Location
from grihome.models.ad import AdSlotConfig
from grihome.models.forum import ForumCategory, ForumPost
from grihome.repositories.base import BaseRepository
from grihome.services.ad_pricing import base_price_for_slot
from grihome.config import settings
from grihome.utils.auth import hash_password, create_access_token
from grihome.utils.rate_limit import limiter
from grihome.utils.time import utc_now

TEST_PASSWORD = "testpassword123"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client talking to the app in-process with the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
    app.dependency_overrides.clear()


def api(path: str) -> str:
    return f"{settings.api_v1_prefix}{path}"


def auth_headers(user: User) -> dict:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


# Test data factories
class UserFactory:

    @staticmethod
    async def create(
        session: AsyncSession,
        email: Optional[str] = None,
        username: Optional[str] = None,
        role: UserRole = UserRole.BUYER,
        verified: bool = True,
        mobile_number: Optional[str] = None,
        is_active: bool = True,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> User:
        suffix = uuid.uuid4().hex[:8]
        return await BaseRepository(User, session).create({
            "first_name": first_name,
            "last_name": last_name,
            "username": username or f"user_{suffix}",
            "email": email or f"user{suffix}@example.com",
            "mobile_number": mobile_number,
            "hashed_password": hash_password(TEST_PASSWORD),
            "role": role,
            "is_active": is_active,
            "company_name": "Test Realty" if role == UserRole.AGENT else None,
            "email_verified_at": utc_now() if verified else None,
        })


class LocationFactory:

    @staticmethod
    async def create(session: AsyncSession, city: str = "Hyderabad", state: str = "Telangana") -> Location:
        return await BaseRepository(Location, session).create({
            "address": f"{uuid.uuid4().hex[:6]} Main Road",
            "city": city,
            "state": state,
            "country": "India",
        })


class BuilderFactory:

    @staticmethod
    async def create(
        session: AsyncSession,
        name: Optional[str] = None,
        contact_emails: Optional[List[str]] = None,
    ) -> Builder:
        return await BaseRepository(Builder, session).create({
            "name": name or f"Builder {uuid.uuid4().hex[:6]}",
            "contact_info": {"emails": contact_emails or [], "phones": []},
        })


class ProjectFactory:

    @staticmethod
    async def create(
        session: AsyncSession,
        builder: Builder,
        created_by: Optional[User] = None,
        name: str = "Lakeside Towers",
        project_type: ProjectType = ProjectType.APARTMENT,
        city: str = "Hyderabad",
        is_archived: bool = False,
    ) -> Project:
        location = await LocationFactory.create(session, city=city)
        return await BaseRepository(Project, session).create({
            "name": name,
            "description": "Gated community with clubhouse",
            "type": project_type,
            "builder_id": builder.id,
            "location_id": location.id,
            "created_by_id": created_by.id if created_by else None,
            "is_archived": is_archived,
        })


class PropertyFactory:

    @staticmethod
    def create_data(**overrides) -> dict:
        """Request body for POST /properties."""
        data = {
            "title": "Spacious 3BHK apartment",
            "description": "East facing with a park view",
            "property_type": "APARTMENTS",
            "listing_type": "SALE",
            "price": 8500000,
            "bedrooms": 3,
            "bathrooms": 2,
            "property_size": 1500,
            "size_unit": "sq_ft",
            "location": {
                "address": "12 Jubilee Hills Road",
                "city": "Hyderabad",
                "state": "Telangana",
            },
        }
        data.update(overrides)
        return data

    @staticmethod
    async def create(
        session: AsyncSession,
        owner: User,
        title: str = "Spacious 3BHK apartment",
        price: float = 8500000,
        property_type: PropertyType = PropertyType.APARTMENTS,
        listing_type: ListingType = ListingType.SALE,
        listing_status: ListingStatus = ListingStatus.ACTIVE,
        bedrooms: int = 3,
        city: str = "Hyderabad",
        project: Optional[Project] = None,
    ) -> Property:
        location = await LocationFactory.create(session, city=city)
        return await BaseRepository(Property, session).create({
            "title": title,
            "description": "East facing with a park view",
            "property_type": property_type,
            "listing_type": listing_type,
            "listing_status": listing_status,
            "price": price,
            "bedrooms": bedrooms,
            "bathrooms": 2,
            "sq_ft": 1500.0,
            "user_id": owner.id,
            "location_id": location.id,
            "project_id": project.id if project else None,
        })


class AdSlotFactory:

    @staticmethod
    async def create_all(session: AsyncSession) -> List[AdSlotConfig]:
        return await BaseRepository(AdSlotConfig, session).bulk_create([
            {"slot_number": n, "base_price": base_price_for_slot(n), "is_active": True}
            for n in range(1, settings.ad_slot_count + 1)
        ])


class ForumFactory:

    @staticmethod
    async def create_category(
        session: AsyncSession,
        name: str = "General Discussions",
        slug: Optional[str] = None,
        parent: Optional[ForumCategory] = None,
        city: Optional[str] = None,
        property_type: Optional[str] = None,
    ) -> ForumCategory:
        return await BaseRepository(ForumCategory, session).create({
            "name": name,
            "slug": slug or f"category-{uuid.uuid4().hex[:6]}",
            "parent_id": parent.id if parent else None,
            "city": city,
            "property_type": property_type,
            "is_active": True,
        })

    @staticmethod
    async def create_post(
        session: AsyncSession,
        author: User,
        category: ForumCategory,
        title: str = "Best localities for families",
        content: str = "Looking for suggestions near good schools",
        is_locked: bool = False,
    ) -> ForumPost:
        return await BaseRepository(ForumPost, session).create({
            "title": title,
            "slug": f"post-{uuid.uuid4().hex[:8]}",
            "content": content,
            "category_id": category.id,
            "author_id": author.id,
            "is_locked": is_locked,
        })


# Common test fixtures
@pytest.fixture
async def buyer(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="buyer@example.com", username="buyer")


@pytest.fixture
async def seller(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="seller@example.com", username="seller")


@pytest.fixture
async def agent(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="agent@example.com", username="agent", role=UserRole.AGENT)


@pytest.fixture
async def unverified_user(db_session: AsyncSession) -> User:
    return await UserFactory.create(
        db_session, email="new@example.com", username="newcomer", verified=False
    )


@pytest.fixture
async def builder(db_session: AsyncSession) -> Builder:
    return await BuilderFactory.create(db_session, name="Prestige Group", contact_emails=["seller@example.com"])


@pytest.fixture
async def project(db_session: AsyncSession, builder: Builder, seller: User) -> Project:
    return await ProjectFactory.create(db_session, builder, created_by=seller)


@pytest.fixture
async def listing(db_session: AsyncSession, seller: User) -> Property:
    return await PropertyFactory.create(db_session, seller)


@pytest.fixture
async def ad_slots(db_session: AsyncSession) -> List[AdSlotConfig]:
    return await AdSlotFactory.create_all(db_session)


def days_ago(days: float):
    return utc_now() - timedelta(days=days)
