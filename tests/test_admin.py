"""
Admin dashboard API tests: access checks, headline figures and the
transaction history.
"""

import pytest
from datetime import timedelta
from httpx import AsyncClient

from grihome.config import settings
from grihome.models.ad import Ad, AdStatus, PaymentStatus
from grihome.models.user import User
from grihome.repositories.base import BaseRepository
from grihome.services.project import ProjectService
from tests.conftest import PropertyFactory, api, auth_headers, days_ago


@pytest.fixture
def production_admins(monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "admin_emails", ["buyer@example.com"])


async def paid_ad(session, user, listing, slot_number, days, payment_status=PaymentStatus.COMPLETED, created_at=None):
    start = days_ago(0)
    return await BaseRepository(Ad, session).create({
        "slot_number": slot_number,
        "user_id": user.id,
        "property_id": listing.id,
        "start_date": start,
        "end_date": start + timedelta(days=days),
        "total_days": days,
        "price_per_day": 1000.0,
        "total_amount": 1000.0 * days,
        "status": AdStatus.ACTIVE,
        "payment_status": payment_status,
        "created_at": created_at or days_ago(0),
    })


class TestAdminAccess:

    async def test_anonymous(self, client: AsyncClient):
        data = (await client.get(api("/admin/check-access"))).json()
        assert data == {"can_access_admin": False, "is_production": False, "is_authenticated": False}

    async def test_everyone_outside_production(self, client: AsyncClient, seller: User):
        data = (await client.get(api("/admin/check-access"), headers=auth_headers(seller))).json()
        assert data["can_access_admin"] is True

    async def test_production_uses_admin_list(self, client: AsyncClient, buyer: User, seller: User, production_admins):
        data = (await client.get(api("/admin/check-access"), headers=auth_headers(seller))).json()
        assert data["can_access_admin"] is False
        assert data["is_production"] is True

        data = (await client.get(api("/admin/check-access"), headers=auth_headers(buyer))).json()
        assert data["can_access_admin"] is True

    async def test_stats_forbidden_for_non_admin(self, client: AsyncClient, seller: User, production_admins):
        response = await client.get(api("/admin/stats"), headers=auth_headers(seller))
        assert response.status_code == 403

    async def test_stats_require_login(self, client: AsyncClient):
        assert (await client.get(api("/admin/stats"))).status_code == 401


class TestAdminStats:

    async def test_figures(self, client: AsyncClient, buyer: User, seller: User, agent: User, listing, db_session):
        buyer.created_at = days_ago(10)
        await db_session.commit()
        await paid_ad(db_session, seller, listing, 1, 7)
        await paid_ad(db_session, seller, listing, 2, 3, payment_status=PaymentStatus.PENDING)

        response = await client.get(api("/admin/stats"), headers=auth_headers(seller))
        assert response.status_code == 200
        assert response.json() == {
            "total_users": 3,
            "users_24h": 2,
            "users_7d": 2,
            "users_30d": 3,
            "total_agents": 1,
            "ad_revenue": 7000.0,
        }


class TestTransactions:

    async def test_sources_merged_newest_first(
        self, client: AsyncClient, seller: User, agent: User, project, listing, db_session
    ):
        service = ProjectService(db_session)
        ad = await paid_ad(db_session, seller, listing, 1, 3, created_at=days_ago(1))
        registration = await service.register_agent(project.id, agent)
        registration.registered_at = days_ago(2)
        in_project = await PropertyFactory.create(db_session, seller, title="Tower B flat", project=project)
        link = await service.promote_property(project.id, in_project.id, 5, seller)
        link.created_at = days_ago(3)
        await db_session.commit()

        response = await client.get(api("/admin/transactions"), headers=auth_headers(seller))
        assert response.status_code == 200
        items = response.json()["transactions"]
        assert [i["id"] for i in items] == [f"ad-{ad.id}", f"pa-{registration.id}", f"pp-{link.id}"]
        assert [i["type"] for i in items] == ["AD_PURCHASE", "AGENT_REGISTRATION", "PROPERTY_PROMOTION"]

        assert items[0]["amount"] == 3000.0
        assert items[0]["duration"] == 3
        assert items[0]["details"] == "Spacious 3BHK apartment"
        assert items[1]["user_email"] == "agent@example.com"
        assert items[1]["details"] == "Lakeside Towers"
        assert items[2]["details"] == "Tower B flat -> Lakeside Towers"

    async def test_paged(self, client: AsyncClient, seller: User, listing, db_session):
        for slot in (1, 2, 3):
            await paid_ad(db_session, seller, listing, slot, slot, created_at=days_ago(slot))

        data = (await client.get(api("/admin/transactions"), params={"page_size": 2, "page": 2},
                                 headers=auth_headers(seller))).json()
        assert [i["duration"] for i in data["transactions"]] == [3]
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["has_previous"] is True
