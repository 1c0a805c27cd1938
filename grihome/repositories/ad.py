"""
Ad slot configuration and purchased ads.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from grihome.repositories.base import BaseRepository
from grihome.models.ad import AdSlotConfig, Ad, AdStatus, PaymentStatus
from datetime import datetime
from typing import Optional, List, Dict
import logging

logger = logging.getLogger(__name__)


class AdSlotRepository(BaseRepository[AdSlotConfig]):

    def __init__(self, db: AsyncSession):
        super().__init__(AdSlotConfig, db)

    async def get_by_number(self, slot_number: int) -> Optional[AdSlotConfig]:
        result = await self.db.execute(select(AdSlotConfig).where(AdSlotConfig.slot_number == slot_number))
        return result.scalar_one_or_none()

    async def list_ordered(self) -> List[AdSlotConfig]:
        result = await self.db.execute(select(AdSlotConfig).order_by(AdSlotConfig.slot_number))
        return list(result.scalars().all())


class AdRepository(BaseRepository[Ad]):

    def __init__(self, db: AsyncSession):
        super().__init__(Ad, db)

    async def current_for_slot(self, slot_number: int, now: datetime) -> Optional[Ad]:
        """Newest ACTIVE ad in the slot whose end date has not passed."""
        result = await self.db.execute(
            select(Ad)
            .where(Ad.slot_number == slot_number, Ad.status == AdStatus.ACTIVE, Ad.end_date >= now)
            .order_by(Ad.created_at.desc())
        )
        return result.scalars().first()

    async def current_by_slot(self, now: datetime) -> Dict[int, Ad]:
        result = await self.db.execute(
            select(Ad)
            .where(Ad.status == AdStatus.ACTIVE, Ad.end_date >= now)
            .order_by(Ad.created_at.desc())
        )
        current: Dict[int, Ad] = {}
        for ad in result.scalars().all():
            current.setdefault(ad.slot_number, ad)
        return current

    async def expire_overdue(self, now: datetime) -> List[str]:
        """Flip ACTIVE ads whose end date has passed to EXPIRED. Returns their ids."""
        try:
            result = await self.db.execute(
                select(Ad.id).where(Ad.status == AdStatus.ACTIVE, Ad.end_date < now)
            )
            ids = list(result.scalars().all())
            if ids:
                await self.db.execute(
                    update(Ad)
                    .where(Ad.id.in_(ids))
                    .values(status=AdStatus.EXPIRED)
                )
            await self.db.commit()
            return [str(ad_id) for ad_id in ids]
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to expire ads: {e}")
            raise

    async def list_recent(self) -> List[Ad]:
        result = await self.db.execute(select(Ad).order_by(Ad.created_at.desc()))
        return list(result.scalars().all())

    async def completed_revenue(self) -> float:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Ad.total_amount), 0.0))
            .where(Ad.payment_status == PaymentStatus.COMPLETED)
        )
        return float(result.scalar() or 0.0)
