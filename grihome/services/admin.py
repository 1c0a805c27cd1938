"""
Admin dashboard figures: sign-ups, agents, ad revenue and the combined
transaction history of ads, property promotions and agent registrations.
"""

from typing import List, Dict, Any, Tuple
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.models.user import UserRole
from grihome.repositories.ad import AdRepository
from grihome.repositories.project import ProjectAgentRepository, ProjectPropertyRepository
from grihome.repositories.user import UserRepository
from grihome.utils.time import as_utc, utc_now

AD_PURCHASE = "AD_PURCHASE"
PROPERTY_PROMOTION = "PROPERTY_PROMOTION"
AGENT_REGISTRATION = "AGENT_REGISTRATION"


class AdminService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.ad_repo = AdRepository(db_session)
        self.agent_repo = ProjectAgentRepository(db_session)
        self.link_repo = ProjectPropertyRepository(db_session)

    async def stats(self) -> Dict[str, Any]:
        now = utc_now()
        return {
            "total_users": await self.user_repo.count_joined_since(),
            "users_24h": await self.user_repo.count_joined_since(now - timedelta(hours=24)),
            "users_7d": await self.user_repo.count_joined_since(now - timedelta(days=7)),
            "users_30d": await self.user_repo.count_joined_since(now - timedelta(days=30)),
            "total_agents": await self.user_repo.count_by_role(UserRole.AGENT),
            "ad_revenue": round(await self.ad_repo.completed_revenue(), 2),
        }

    async def transactions(self, skip: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        """All three sources merged newest first, then paged in memory."""
        items = []
        for ad in await self.ad_repo.list_recent():
            target = ad.target_dict()
            items.append({
                "id": f"ad-{ad.id}",
                "date": as_utc(ad.created_at),
                "type": AD_PURCHASE,
                "user_name": ad.user.full_name if ad.user else None,
                "user_email": ad.user.email if ad.user else None,
                "duration": ad.total_days,
                "amount": ad.total_amount,
                "details": target.get("title") or target.get("name") or f"Slot {ad.slot_number}",
            })
        for link in await self.link_repo.list_recent():
            owner = link.listing.owner if link.listing else None
            items.append({
                "id": f"pp-{link.id}",
                "date": as_utc(link.created_at),
                "type": PROPERTY_PROMOTION,
                "user_name": owner.full_name if owner else None,
                "user_email": owner.email if owner else None,
                "duration": None,
                "amount": 0.0,
                "details": f"{link.listing.title if link.listing else 'Property'} -> {link.project.name}",
            })
        for reg in await self.agent_repo.list_recent():
            items.append({
                "id": f"pa-{reg.id}",
                "date": as_utc(reg.registered_at),
                "type": AGENT_REGISTRATION,
                "user_name": reg.user.full_name,
                "user_email": reg.user.email,
                "duration": None,
                "amount": reg.promotion_payment_amount or 0.0,
                "details": reg.project.name,
            })

        items.sort(key=lambda item: item["date"], reverse=True)
        return items[skip:skip + limit], len(items)
