"""
Promotion expiry reminders sent by the daily cron job.
"""

import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient

from grihome.config import settings
from grihome.services import reminders
from grihome.services.project import ProjectService
from grihome.services.reminders import PromotionReminderService, reminder_window
from grihome.utils.time import utc_now
from tests.conftest import PropertyFactory, api


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def record(*, to_email, subject, text):
        sent.append((to_email, subject))
        return True

    monkeypatch.setattr(reminders, "notify_quietly", record)
    monkeypatch.setattr(settings, "admin_emails", ["ops@grihome.in"])
    monkeypatch.setattr(settings, "promotion_reminder_days", [1, 3])
    return sent


def ending_in(days: int) -> datetime:
    start, _ = reminder_window(utc_now(), days)
    return start + timedelta(hours=12)


def test_reminder_window_is_a_utc_calendar_day():
    now = datetime(2026, 3, 10, 22, 30, tzinfo=timezone.utc)
    assert reminder_window(now, 3) == (
        datetime(2026, 3, 13, tzinfo=timezone.utc),
        datetime(2026, 3, 14, tzinfo=timezone.utc),
    )


class TestExpiryReminders:

    async def test_agent_promotion_reminded(self, outbox, project, agent, db_session):
        registration = await ProjectService(db_session).register_agent(project.id, agent)
        registration.is_promoted = True
        registration.promotion_start_date = utc_now() - timedelta(days=2)
        registration.promotion_end_date = ending_in(3)
        agent.mobile_number = "+919876543210"
        agent.mobile_verified_at = utc_now()
        await db_session.commit()

        tallies = await PromotionReminderService(db_session).send_expiry_reminders()

        assert [(t["kind"], t["days_remaining"]) for t in tallies] == [
            ("agent", 3), ("property", 3), ("agent", 1), ("property", 1)
        ]
        assert tallies[0] == {"kind": "agent", "days_remaining": 3, "found": 1, "email_sent": 1, "sms_sent": 1}
        assert all(t["found"] == 0 for t in tallies[1:])
        assert [to for to, _ in outbox] == ["agent@example.com", "ops@grihome.in"]
        assert outbox[0][1] == "Reminder: your agent promotion for Lakeside Towers ends in 3 days"

    async def test_property_promotion_reminded(self, outbox, project, seller, db_session):
        listing = await PropertyFactory.create(db_session, seller, project=project)
        link = await ProjectService(db_session).promote_property(project.id, listing.id, 2, seller)
        link.promotion_end_date = ending_in(1)
        await db_session.commit()

        tallies = await PromotionReminderService(db_session).send_expiry_reminders()

        assert tallies[3] == {"kind": "property", "days_remaining": 1, "found": 1, "email_sent": 1, "sms_sent": 0}
        assert outbox[0] == ("seller@example.com", "Reminder: your property promotion for Lakeside Towers ends in 1 day")

    async def test_unverified_email_not_contacted(self, outbox, project, unverified_user, db_session):
        listing = await PropertyFactory.create(db_session, unverified_user, project=project)
        link = await ProjectService(db_session).promote_property(project.id, listing.id, 3, unverified_user)
        link.promotion_end_date = ending_in(3)
        await db_session.commit()

        tallies = await PromotionReminderService(db_session).send_expiry_reminders()

        assert tallies[1]["found"] == 1
        assert tallies[1]["email_sent"] == 0
        assert [to for to, _ in outbox] == ["ops@grihome.in"]

    async def test_other_days_and_lapsed_promotions_skipped(self, outbox, project, agent, db_session):
        registration = await ProjectService(db_session).register_agent(project.id, agent)
        registration.is_promoted = True
        registration.promotion_end_date = ending_in(2)
        await db_session.commit()

        tallies = await PromotionReminderService(db_session).send_expiry_reminders()
        assert sum(t["found"] for t in tallies) == 0

        registration.is_promoted = False
        registration.promotion_end_date = ending_in(3)
        await db_session.commit()

        tallies = await PromotionReminderService(db_session).send_expiry_reminders()
        assert sum(t["found"] for t in tallies) == 0
        assert outbox == []


class TestReminderEndpoint:

    async def test_run_reminders(self, client: AsyncClient, outbox):
        response = await client.post(api("/cron/send-expiry-reminders"))
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Expiry reminders processed"
        assert len(data["reminders"]) == 4

    async def test_secret_required_when_configured(self, client: AsyncClient, outbox, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "nightly-job-secret")

        assert (await client.get(api("/cron/send-expiry-reminders"))).status_code == 401
        response = await client.get(
            api("/cron/send-expiry-reminders"), headers={"X-Cron-Secret": "nightly-job-secret"}
        )
        assert response.status_code == 200
