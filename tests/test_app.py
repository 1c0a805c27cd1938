"""
Application level tests: health endpoints, the error envelope, request
middleware and the database management command.
"""

import asyncio
import pytest
import httpx
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from grihome import manage
from grihome.config import settings
from grihome.database import Base, get_db
from grihome.main import app
from grihome.models.ad import AdSlotConfig
from grihome.models.forum import ForumCategory
from grihome.services.builder import BuilderService
from tests.conftest import api


class TestHealth:

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["api_prefix"] == settings.api_v1_prefix

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    async def test_health_when_database_down(self, client: AsyncClient, monkeypatch):
        async def unreachable():
            return False

        monkeypatch.setattr("grihome.main.test_database_connection", unreachable)
        response = await client.get("/health")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


class TestErrorEnvelope:

    async def test_request_id_shared_with_error(self, client: AsyncClient):
        response = await client.get(api("/builders/not-a-uuid"))

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "path -> builder_id"
        assert error["request_id"] == response.headers["X-Request-ID"]
        assert len(response.headers["X-Request-ID"]) == 8
        assert error["timestamp"].endswith("Z")

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get(api("/nowhere"))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_404"

    async def test_unexpected_error_hides_details(self, db_session, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("connection string leaked here")

        async def override_get_db():
            yield db_session

        monkeypatch.setattr(BuilderService, "search_builders", broken)
        app.dependency_overrides[get_db] = override_get_db
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.get(api("/builders"))
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert response.json()["error"]["message"] == "Internal server error"
        assert "leaked" not in response.text


class TestMiddleware:

    async def test_non_json_body_rejected(self, client: AsyncClient):
        response = await client.post(
            api("/auth/login"), content="identifier=buyer", headers={"Content-Type": "application/x-www-form-urlencoded"}
        )
        assert response.status_code == 400
        assert "Unsupported content type" in response.json()["error"]["message"]
        assert "X-Request-ID" in response.headers

    async def test_oversized_body_rejected(self, client: AsyncClient):
        body = "x" * (settings.max_request_size + 1)
        response = await client.post(
            api("/auth/login"), content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert "exceeds maximum allowed size" in response.json()["error"]["message"]


async def _create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _seeded_counts(session_factory):
    async with session_factory() as session:
        slots = (await session.execute(select(func.count(AdSlotConfig.id)))).scalar()
        categories = (await session.execute(select(func.count(ForumCategory.id)))).scalar()
    return slots, categories


class TestManageCommand:

    @pytest.fixture
    def manager(self, tmp_path, monkeypatch):
        async def keep_engine():
            return None

        monkeypatch.setattr(manage, "close_db_connection", keep_engine)
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'manage.db'}", poolclass=NullPool)
        asyncio.run(_create_schema(engine))
        return manage.DatabaseManager(async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False))

    def test_seed_twice(self, manager):
        assert manage.main(["seed"], manager=manager) == 0
        assert manage.main(["seed"], manager=manager) == 0

        slots, categories = asyncio.run(_seeded_counts(manager.session_factory))
        assert slots == settings.ad_slot_count
        # General Discussions, ten cities, five sections each
        assert categories == 1 + 10 + 50

    def test_expire_ads_on_empty_database(self, manager):
        assert manage.main(["expire-ads"], manager=manager) == 0

    def test_destructive_commands_need_confirm(self, manager):
        assert manage.main(["reset"], manager=manager) == 1
        assert manage.main(["drop"], manager=manager) == 1

    def test_no_command(self, capsys):
        assert manage.main([]) == 1
        assert "grihome-db" in capsys.readouterr().out
