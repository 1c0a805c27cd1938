"""
Tests for time-boxed promotions: window predicates, lazy sweeping and the
featured lists on project pages.
"""

import pytest
from datetime import timedelta

from grihome.models.project import ProjectAgent, ProjectProperty
from grihome.models.user import UserRole
from grihome.services.project import ProjectService, sweep_expired_promotions, validate_promotion_days
from grihome.config import settings
from grihome.utils.exceptions import (
    InvalidDurationError,
    InsufficientPermissionsError,
    NotFoundError,
    OwnershipError,
    DuplicateResourceError,
)
from grihome.utils.time import utc_now
from tests.conftest import UserFactory, PropertyFactory


class TestPromotionWindow:

    def test_start_promotion_sets_window(self):
        now = utc_now()
        row = ProjectAgent()
        row.start_promotion(now, 5)
        assert row.is_promoted
        assert row.promotion_start_date == now
        assert row.promotion_end_date == now + timedelta(days=5)
        assert row.promotion_active(now + timedelta(days=5))
        assert not row.promotion_expired(now + timedelta(days=5))

    def test_expired_after_end(self):
        now = utc_now()
        row = ProjectProperty()
        row.start_promotion(now - timedelta(days=3), 2)
        assert row.promotion_expired(now)
        assert not row.promotion_active(now)

    def test_never_promoted_is_neither(self):
        row = ProjectAgent(is_promoted=False)
        assert not row.promotion_active(utc_now())
        assert not row.promotion_expired(utc_now())

    def test_naive_end_date_compared_as_utc(self):
        now = utc_now()
        row = ProjectAgent(is_promoted=True, promotion_end_date=(now + timedelta(hours=1)).replace(tzinfo=None))
        assert row.promotion_active(now)

    def test_sweep_clears_only_expired_rows(self):
        now = utc_now()
        expired, live, idle = ProjectAgent(), ProjectAgent(), ProjectAgent(is_promoted=False)
        expired.start_promotion(now - timedelta(days=10), 1)
        live.start_promotion(now, 3)

        assert sweep_expired_promotions([expired, live, idle], now) == 1
        assert not expired.is_promoted
        assert expired.promotion_end_date is None
        assert live.is_promoted

    @pytest.mark.parametrize("days", [0, 6, -2, 2.5, True])
    def test_agent_days_outside_window_rejected(self, days):
        with pytest.raises(InvalidDurationError):
            validate_promotion_days(days, settings.agent_promotion_max_days)

    def test_property_window_allows_two_weeks(self):
        assert validate_promotion_days(14, settings.property_promotion_max_days) == 14


class TestProjectAgents:

    @pytest.fixture
    def project_service(self, db_session) -> ProjectService:
        return ProjectService(db_session)

    async def test_register_and_promote_agent(self, project_service, project, agent):
        await project_service.register_agent(project.id, agent)
        registration = await project_service.promote_agent(project.id, 5, agent)

        assert registration.is_promoted
        assert registration.promotion_payment_amount == 0.0

        result = await project_service.list_agents(project.id)
        assert result["total_agents"] == 1
        assert [a["agent"]["id"] for a in result["featured_agents"]] == [str(agent.id)]
        assert result["regular_agents"] == []

    async def test_buyer_cannot_register(self, project_service, project, buyer):
        with pytest.raises(InsufficientPermissionsError):
            await project_service.register_agent(project.id, buyer)

    async def test_duplicate_registration_rejected(self, project_service, project, agent):
        await project_service.register_agent(project.id, agent)
        with pytest.raises(DuplicateResourceError):
            await project_service.register_agent(project.id, agent)

    async def test_promote_without_registration(self, project_service, project, agent):
        with pytest.raises(NotFoundError):
            await project_service.promote_agent(project.id, 3, agent)

    async def test_expired_promotion_swept_on_read(self, project_service, project, agent, db_session):
        registration = await project_service.register_agent(project.id, agent)
        registration.is_promoted = True
        registration.promotion_start_date = utc_now() - timedelta(days=6)
        registration.promotion_end_date = utc_now() - timedelta(days=1)
        await db_session.commit()

        result = await project_service.list_agents(project.id)
        assert result["featured_agents"] == []
        assert result["regular_agents"][0]["is_featured"] is False

        await db_session.refresh(registration)
        assert registration.is_promoted is False
        assert registration.promotion_end_date is None

    async def test_featured_agents_capped(self, project_service, project, db_session):
        for i in range(settings.featured_limit + 2):
            user = await UserFactory.create(db_session, role=UserRole.AGENT)
            await project_service.register_agent(project.id, user)
            await project_service.promote_agent(project.id, 1 + i % 5, user)

        result = await project_service.list_agents(project.id)
        assert len(result["featured_agents"]) == settings.featured_limit
        assert len(result["regular_agents"]) == 2
        assert result["total_agents"] == settings.featured_limit + 2


class TestProjectPropertyPromotion:

    @pytest.fixture
    def project_service(self, db_session) -> ProjectService:
        return ProjectService(db_session)

    async def test_promote_own_listing(self, project_service, project, seller, db_session):
        listing = await PropertyFactory.create(db_session, seller, project=project)
        link = await project_service.promote_property(project.id, listing.id, 14, seller)
        assert link.is_promoted

        result = await project_service.list_properties(project.id)
        assert result["total_properties"] == 1
        assert result["featured_properties"][0]["property"]["id"] == str(listing.id)
        assert result["regular_properties"] == []

    async def test_repromote_reuses_link(self, project_service, project, seller, db_session):
        listing = await PropertyFactory.create(db_session, seller, project=project)
        first = await project_service.promote_property(project.id, listing.id, 2, seller)
        second = await project_service.promote_property(project.id, listing.id, 7, seller)
        assert first.id == second.id

    async def test_listing_outside_project_rejected(self, project_service, project, seller, db_session):
        listing = await PropertyFactory.create(db_session, seller)
        with pytest.raises(OwnershipError):
            await project_service.promote_property(project.id, listing.id, 3, seller)

    async def test_someone_elses_listing_rejected(self, project_service, project, seller, buyer, db_session):
        listing = await PropertyFactory.create(db_session, seller, project=project)
        with pytest.raises(OwnershipError):
            await project_service.promote_property(project.id, listing.id, 3, buyer)

    async def test_duration_above_two_weeks_rejected(self, project_service, project, seller, db_session):
        listing = await PropertyFactory.create(db_session, seller, project=project)
        with pytest.raises(InvalidDurationError):
            await project_service.promote_property(project.id, listing.id, 15, seller)
