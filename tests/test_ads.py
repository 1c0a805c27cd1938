"""
Ad slot marketplace API tests: slot setup, quotes, purchases, renewals and
the expiry job.
"""

import pytest
import uuid
from datetime import timedelta
from httpx import AsyncClient
from sqlalchemy import select

from grihome.config import settings
from grihome.models.ad import Ad, AdStatus, PaymentStatus
from grihome.models.user import User
from grihome.repositories.base import BaseRepository
from grihome.utils.time import utc_now
from tests.conftest import PropertyFactory, api, auth_headers


@pytest.fixture(autouse=True)
def regular_pricing(monkeypatch):
    """Run ad tests with the pre-launch offer switched off."""
    monkeypatch.setattr(settings, "ad_prelaunch_offer_end", None)


async def purchase(client, user, listing, slot_number=1, days=7, **extra):
    body = {"slot_number": slot_number, "days": days, "property_id": str(listing.id), **extra}
    return await client.post(api("/ads/purchase"), json=body, headers=auth_headers(user))


async def create_ad(session, user, listing, slot_number, start, days) -> Ad:
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
        "payment_status": PaymentStatus.COMPLETED,
    })


class TestSlots:

    async def test_init_slots_once(self, client: AsyncClient):
        response = await client.post(api("/ads/init-slots"))
        assert response.status_code == 201
        assert response.json() == {"message": "Initialized 6 ad slots", "created": 6}

        response = await client.post(api("/ads/init-slots"))
        assert response.status_code == 200
        assert response.json() == {"message": "Ad slots already initialized", "created": 0}

    async def test_slot_prices_by_row(self, client: AsyncClient, ad_slots):
        response = await client.get(api("/ads/slots"))
        data = response.json()
        assert [s["base_price"] for s in data["slots"]] == [1000.0, 1000.0, 1000.0, 900.0, 900.0, 900.0]
        assert data["prelaunch_offer_active"] is False
        assert data["max_days"] == settings.ad_max_days
        assert not any(s["has_ad"] for s in data["slots"])

    async def test_occupied_slot_marked(self, client: AsyncClient, seller: User, buyer: User, listing, ad_slots):
        await purchase(client, seller, listing, slot_number=2, days=2)

        anonymous = (await client.get(api("/ads/slots"))).json()["slots"]
        assert anonymous[1]["has_ad"] is True
        assert anonymous[1]["is_expiring_soon"] is True
        assert anonymous[1]["is_user_ad"] is False
        assert anonymous[1]["ad"]["target"]["title"] == listing.title

        owner_view = (await client.get(api("/ads/slots"), headers=auth_headers(seller))).json()["slots"]
        assert owner_view[1]["is_user_ad"] is True


class TestQuote:

    async def test_quote_two_slots(self, client: AsyncClient, ad_slots, listing):
        response = await client.post(api("/ads/quote"), json={"slots": [
            {"slot_number": 1, "days": 7, "property_id": str(listing.id)},
            {"slot_number": 4, "days": 1, "property_id": str(listing.id)},
        ]})

        assert response.status_code == 200
        data = response.json()
        assert [item["final_amount"] for item in data["items"]] == [6300.0, 900.0]
        assert data["items"][0]["discount_percent"] == 10
        assert data["total_base"] == 7900.0
        assert data["total_discount"] == 700.0
        assert data["total_amount"] == 7200.0
        assert data["prelaunch_applied"] is False

    async def test_days_above_maximum(self, client: AsyncClient, ad_slots, listing):
        response = await client.post(api("/ads/quote"), json={"slots": [
            {"slot_number": 1, "days": settings.ad_max_days + 1, "property_id": str(listing.id)},
        ]})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DURATION"

    async def test_repeated_slot(self, client: AsyncClient, ad_slots, listing):
        item = {"slot_number": 3, "days": 2, "property_id": str(listing.id)}
        response = await client.post(api("/ads/quote"), json={"slots": [item, item]})
        assert response.status_code == 400

    async def test_unknown_slot(self, client: AsyncClient, ad_slots, listing):
        response = await client.post(api("/ads/quote"), json={"slots": [
            {"slot_number": 99, "days": 2, "property_id": str(listing.id)},
        ]})
        assert response.status_code == 404

    async def test_both_targets_rejected(self, client: AsyncClient, ad_slots, listing, project):
        response = await client.post(api("/ads/quote"), json={"slots": [
            {"slot_number": 1, "days": 2, "property_id": str(listing.id), "project_id": str(project.id)},
        ]})
        assert response.status_code == 422


class TestPurchase:

    async def test_purchase_property_ad(self, client: AsyncClient, seller: User, listing, ad_slots):
        response = await purchase(client, seller, listing, slot_number=4, days=7, total_amount=5670)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Ad purchased successfully"
        assert data["ad"]["total_amount"] == 5670.0
        assert data["ad"]["total_days"] == 7
        assert data["ad"]["payment_id"].startswith("demo_")

    async def test_purchase_project_ad_as_builder_contact(self, client: AsyncClient, seller: User, project, ad_slots):
        response = await client.post(
            api("/ads/purchase"),
            json={"slot_number": 1, "days": 3, "project_id": str(project.id)},
            headers=auth_headers(seller)
        )
        assert response.status_code == 201
        assert response.json()["ad"]["total_amount"] == 2850.0

    async def test_project_ad_requires_builder_contact(self, client: AsyncClient, buyer: User, project, ad_slots):
        response = await client.post(
            api("/ads/purchase"),
            json={"slot_number": 1, "days": 3, "project_id": str(project.id)},
            headers=auth_headers(buyer)
        )
        assert response.status_code == 403

    async def test_someone_elses_property(self, client: AsyncClient, buyer: User, listing, ad_slots):
        response = await purchase(client, buyer, listing)
        assert response.status_code == 403

    async def test_occupied_slot(self, client: AsyncClient, seller: User, buyer: User, listing, ad_slots, db_session):
        await purchase(client, seller, listing, slot_number=1)
        own = await PropertyFactory.create(db_session, buyer, title="Buyer's rental flat")

        response = await purchase(client, buyer, own, slot_number=1)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SLOT_OCCUPIED"

    async def test_amount_mismatch(self, client: AsyncClient, seller: User, listing, ad_slots):
        response = await purchase(client, seller, listing, slot_number=1, days=7, total_amount=7000)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAYMENT_MISMATCH"

    async def test_unverified_cannot_buy(self, client: AsyncClient, unverified_user: User, ad_slots, db_session):
        own = await PropertyFactory.create(db_session, unverified_user)
        response = await purchase(client, unverified_user, own)
        assert response.status_code == 403

    async def test_renew_own_ad(self, client: AsyncClient, seller: User, listing, ad_slots, db_session):
        first = (await purchase(client, seller, listing, slot_number=5, days=2)).json()["ad"]

        response = await purchase(
            client, seller, listing, slot_number=5, days=15, is_renewal=True, renewal_ad_id=first["id"]
        )
        assert response.status_code == 201
        assert response.json()["message"] == "Ad renewed successfully"
        assert response.json()["ad"]["total_amount"] == 10800.0

        previous = await db_session.get(Ad, uuid.UUID(first["id"]))
        await db_session.refresh(previous)
        assert previous.status == AdStatus.EXPIRED

    async def test_renewal_cannot_take_over_other_ad(self, client: AsyncClient, seller: User, buyer: User,
                                                    listing, ad_slots, db_session):
        await purchase(client, seller, listing, slot_number=1)
        own = await PropertyFactory.create(db_session, buyer, title="Buyer's rental flat")

        response = await purchase(client, buyer, own, slot_number=1, is_renewal=True)
        assert response.status_code == 400

    async def test_renewal_with_ad_from_another_slot(self, client: AsyncClient, seller: User,
                                                     listing, ad_slots, db_session):
        slot_one = (await purchase(client, seller, listing, slot_number=1)).json()["ad"]
        slot_two = (await purchase(client, seller, listing, slot_number=2)).json()["ad"]

        response = await purchase(
            client, seller, listing, slot_number=1, is_renewal=True, renewal_ad_id=slot_two["id"]
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

        result = await db_session.execute(select(Ad).where(Ad.status == AdStatus.ACTIVE))
        live = {str(ad.id): ad.slot_number for ad in result.scalars().all()}
        assert live == {slot_one["id"]: 1, slot_two["id"]: 2}

    async def test_renewal_of_unknown_ad(self, client: AsyncClient, seller: User, listing, ad_slots):
        await purchase(client, seller, listing, slot_number=3)

        response = await purchase(
            client, seller, listing, slot_number=3, is_renewal=True, renewal_ad_id=str(uuid.uuid4())
        )
        assert response.status_code == 404


class TestBatchPurchase:

    async def test_batch(self, client: AsyncClient, seller: User, listing, ad_slots):
        response = await client.post(
            api("/ads/purchase/batch"),
            json={
                "slots": [
                    {"slot_number": 1, "days": 30, "property_id": str(listing.id)},
                    {"slot_number": 6, "days": 3, "property_id": str(listing.id)},
                ],
                "total_amount": 23565,
            },
            headers=auth_headers(seller)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Purchased 2 ad slots"
        assert data["total_amount"] == 23565.0
        assert [ad["slot_number"] for ad in data["ads"]] == [1, 6]

    async def test_batch_is_all_or_nothing(self, client: AsyncClient, seller: User, buyer: User,
                                           listing, ad_slots, db_session):
        await purchase(client, seller, listing, slot_number=2)
        own = await PropertyFactory.create(db_session, buyer, title="Buyer's rental flat")

        response = await client.post(
            api("/ads/purchase/batch"),
            json={"slots": [
                {"slot_number": 1, "days": 3, "property_id": str(own.id)},
                {"slot_number": 2, "days": 3, "property_id": str(own.id)},
            ]},
            headers=auth_headers(buyer)
        )
        assert response.status_code == 400

        result = await db_session.execute(select(Ad).where(Ad.user_id == buyer.id))
        assert result.scalars().all() == []


class TestAdDetail:

    async def test_owner_sees_payment(self, client: AsyncClient, seller: User, listing, ad_slots):
        ad_id = (await purchase(client, seller, listing)).json()["ad"]["id"]

        response = await client.get(api(f"/ads/{ad_id}"), headers=auth_headers(seller))
        data = response.json()
        assert data["is_owner"] is True
        assert data["is_live"] is True
        assert data["payment_status"] == "COMPLETED"
        assert data["total_amount"] == 6300.0

    async def test_public_view_hides_payment(self, client: AsyncClient, seller: User, listing, ad_slots):
        ad_id = (await purchase(client, seller, listing)).json()["ad"]["id"]

        data = (await client.get(api(f"/ads/{ad_id}"))).json()
        assert data["is_owner"] is False
        assert data["total_amount"] is None
        assert data["payment_id"] is None

    async def test_unknown_ad(self, client: AsyncClient):
        response = await client.get(api(f"/ads/{uuid.uuid4()}"))
        assert response.status_code == 404


class TestExpiryJob:

    async def test_expire_overdue_ads(self, client: AsyncClient, seller: User, listing, ad_slots, db_session):
        stale = await create_ad(db_session, seller, listing, 1, utc_now() - timedelta(days=10), 3)
        live = await create_ad(db_session, seller, listing, 2, utc_now(), 3)

        response = await client.post(api("/cron/expire-ads"))
        assert response.status_code == 200
        assert response.json() == {"message": "Expired 1 ads", "expired_count": 1, "expired_ids": [str(stale.id)]}

        await db_session.refresh(stale)
        await db_session.refresh(live)
        assert stale.status == AdStatus.EXPIRED
        assert live.status == AdStatus.ACTIVE

    async def test_expired_ad_frees_slot(self, client: AsyncClient, seller: User, listing, ad_slots, db_session):
        await create_ad(db_session, seller, listing, 1, utc_now() - timedelta(days=10), 3)

        slots = (await client.get(api("/ads/slots"))).json()["slots"]
        assert slots[0]["has_ad"] is False

    async def test_secret_required_when_configured(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "nightly-job-secret")

        assert (await client.post(api("/cron/expire-ads"))).status_code == 401
        response = await client.get(api("/cron/expire-ads"), headers={"X-Cron-Secret": "nightly-job-secret"})
        assert response.status_code == 200
        assert response.json()["expired_count"] == 0
