"""
Reminders for agent and property promotions that are about to end.

Run daily by the scheduler. A row is reminded on the calendar day (UTC) that
falls a configured number of days before its promotion end.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.config import settings
from grihome.models.project import Project
from grihome.models.user import User
from grihome.repositories.project import ProjectAgentRepository, ProjectPropertyRepository
from grihome.services.notifications import notify_quietly, sms_quietly, promotion_reminder_text
from grihome.utils.time import as_utc, utc_now
import logging

logger = logging.getLogger(__name__)


@dataclass
class ReminderTally:
    kind: str
    days_remaining: int
    found: int = 0
    email_sent: int = 0
    sms_sent: int = 0


def reminder_window(now: datetime, days: int) -> tuple:
    """The UTC calendar day that lies `days` days after today."""
    today = as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    start = today + timedelta(days=days)
    return start, start + timedelta(days=1)


class PromotionReminderService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.agent_repo = ProjectAgentRepository(db_session)
        self.link_repo = ProjectPropertyRepository(db_session)

    async def send_expiry_reminders(self, now: Optional[datetime] = None) -> List[dict]:
        now = now or utc_now()
        tallies = []
        for days in sorted(set(settings.promotion_reminder_days), reverse=True):
            start, end = reminder_window(now, days)

            tally = ReminderTally(kind="agent", days_remaining=days)
            for reg in await self.agent_repo.promotions_ending_between(start, end):
                await self._remind(tally, reg.user, reg.project, reg.promotion_end_date, "agent promotion", None)
            tallies.append(tally)

            tally = ReminderTally(kind="property", days_remaining=days)
            for link in await self.link_repo.promotions_ending_between(start, end):
                listing = link.listing
                await self._remind(
                    tally, listing.owner, link.project, link.promotion_end_date,
                    "property promotion", listing.title
                )
            tallies.append(tally)

        logger.info(
            "Promotion reminders: " + ", ".join(f"{t.kind}/{t.days_remaining}d={t.found}" for t in tallies)
        )
        return [asdict(t) for t in tallies]

    async def _remind(
        self,
        tally: ReminderTally,
        user: User,
        project: Project,
        end_date: datetime,
        what: str,
        listing_title: Optional[str]
    ) -> None:
        tally.found += 1
        label = f"{what} ({listing_title})" if listing_title else what
        ends = as_utc(end_date).strftime("%d %B %Y")
        text = promotion_reminder_text(
            name=user.full_name or user.username,
            what=label,
            project_name=project.name,
            end_date=ends,
            days_remaining=tally.days_remaining,
        )
        plural = "s" if tally.days_remaining > 1 else ""
        subject = f"Reminder: your {what} for {project.name} ends in {tally.days_remaining} day{plural}"

        if user.is_email_verified and await notify_quietly(to_email=user.email, subject=subject, text=text):
            tally.email_sent += 1
        if user.is_mobile_verified and user.mobile_number:
            if await sms_quietly(to_phone=user.mobile_number, text=text):
                tally.sms_sent += 1

        await self._notify_admins(
            subject=f"Promotion ending: {user.email} - {project.name}",
            text=(
                f"{label.capitalize()} by {user.full_name or user.username} <{user.email}>\n"
                f"Mobile: {user.mobile_number or 'N/A'}\n"
                f"Project: {project.name}\n"
                f"Ends: {ends} ({tally.days_remaining} day{plural})\n"
            ),
            recipients=settings.admin_emails,
        )

    @staticmethod
    async def _notify_admins(*, subject: str, text: str, recipients: Sequence[str]) -> None:
        for email in recipients:
            await notify_quietly(to_email=email, subject=subject, text=text)
