"""
Ad slot marketplace: slot setup, occupancy, quotes and demo-paid purchases.

Pricing lives in grihome.services.ad_pricing; this service adds the database
checks (slot exists, slot free, caller owns the listing) around it.
"""

from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from grihome.config import settings
from grihome.models.ad import Ad, AdStatus, PaymentStatus, PaymentMethod
from grihome.models.property import ListingStatus
from grihome.models.user import User
from grihome.repositories.ad import AdSlotRepository, AdRepository
from grihome.repositories.project import ProjectRepository
from grihome.repositories.property import PropertyRepository
from grihome.services.ad_pricing import (
    Bill,
    SlotSelection,
    base_price_for_slot,
    calculate_bill,
    is_prelaunch,
    max_days,
)
from grihome.utils.exceptions import (
    BadRequestError,
    NotFoundError,
    OwnershipError,
    SlotOccupiedError,
    PaymentMismatchError,
)
from grihome.utils.time import utc_now
import uuid
import logging

logger = logging.getLogger(__name__)


def demo_payment_id(now: datetime) -> str:
    return f"demo_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


class AdService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.slot_repo = AdSlotRepository(db_session)
        self.ad_repo = AdRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.project_repo = ProjectRepository(db_session)

    async def init_slots(self) -> int:
        """Create the configured slots when none exist. Returns how many were created."""
        if await self.slot_repo.count() > 0:
            return 0

        created = await self.slot_repo.bulk_create([
            {"slot_number": n, "base_price": base_price_for_slot(n), "is_active": True}
            for n in range(1, settings.ad_slot_count + 1)
        ])
        logger.info(f"Initialized {len(created)} ad slots")
        return len(created)

    async def get_slots(self, current_user: Optional[User] = None) -> Dict[str, Any]:
        now = utc_now()
        slots = await self.slot_repo.list_ordered()
        current = await self.ad_repo.current_by_slot(now)

        items = []
        for slot in slots:
            ad = current.get(slot.slot_number)
            item = {
                "slot_number": slot.slot_number,
                "base_price": slot.base_price,
                "is_active": slot.is_active,
                "has_ad": ad is not None,
                "is_expiring_soon": ad is not None and ad.days_remaining(now) <= settings.ad_expiring_soon_days,
                "is_user_ad": ad is not None and current_user is not None and ad.user_id == current_user.id,
                "ad": None,
            }
            if ad is not None:
                item["ad"] = {
                    "id": str(ad.id),
                    "end_date": ad.end_date,
                    "total_days": ad.total_days,
                    "user_id": str(ad.user_id),
                    "user_name": (ad.user.full_name or ad.user.username) if ad.user else "",
                    "target": ad.target_dict() or None,
                }
            items.append(item)

        return {
            "slots": items,
            "prelaunch_offer_active": is_prelaunch(now),
            "max_days": max_days(now),
        }

    async def _active_slot_prices(self) -> Dict[int, float]:
        return {s.slot_number: s.base_price for s in await self.slot_repo.list_ordered() if s.is_active}

    async def quote(self, selections: List[SlotSelection], now: Optional[datetime] = None) -> Bill:
        return calculate_bill(selections, await self._active_slot_prices(), now)

    async def _check_listing_owner(self, selection: SlotSelection, user: User) -> None:
        """
        Raises:
            OwnershipError: Property not the user's ACTIVE listing, or project builder
                does not list the user's email as a contact
        """
        if selection.property_id is not None:
            listing = await self.property_repo.get_by_id(selection.property_id)
            if listing is None or listing.user_id != user.id or listing.listing_status != ListingStatus.ACTIVE:
                raise OwnershipError("Property not found or you do not own it")
        if selection.project_id is not None:
            project = await self.project_repo.get_by_id(selection.project_id)
            owners = project.builder.contact_emails if project and project.builder else []
            if user.email.lower() not in owners:
                raise OwnershipError("Project not found or you do not own it")

    async def _check_slot_free(self, slot_number: int, user: User, is_renewal: bool, now: datetime) -> Optional[Ad]:
        """Returns the caller's live ad in the slot when renewing it."""
        current = await self.ad_repo.current_for_slot(slot_number, now)
        if current is None:
            return None
        if is_renewal and current.user_id == user.id:
            return current
        raise SlotOccupiedError(slot_number)

    async def _check_renewal_target(self, renewal_ad_id: uuid.UUID, slot_number: int,
                                    current: Optional[Ad], user: User) -> None:
        """
        Raises:
            NotFoundError: Renewal ad missing or not the caller's
            BadRequestError: Renewal ad is not the live ad of the slot being bought
        """
        renewed = await self.ad_repo.get_by_id(renewal_ad_id)
        if renewed is None or renewed.user_id != user.id:
            raise NotFoundError("Ad", str(renewal_ad_id))
        if renewed.slot_number != slot_number or (current is not None and renewed.id != current.id):
            raise BadRequestError(f"Ad {renewal_ad_id} is not the current ad of slot {slot_number}")

    @staticmethod
    def _check_amount(bill: Bill, client_total: Optional[float]) -> None:
        if client_total is not None and abs(client_total - bill.total) > settings.ad_amount_tolerance:
            raise PaymentMismatchError(bill.total, client_total)

    def _new_ad(self, selection: SlotSelection, bill_index: int, bill: Bill, user: User,
                payment_method: PaymentMethod, now: datetime) -> Dict[str, Any]:
        cost = bill.items[bill_index]
        return {
            "slot_number": selection.slot_number,
            "user_id": user.id,
            "property_id": selection.property_id,
            "project_id": selection.project_id,
            "start_date": now,
            "end_date": now + timedelta(days=selection.days),
            "total_days": selection.days,
            "price_per_day": cost.base_price,
            "discount_percent": cost.discount_percent,
            "total_amount": cost.final_amount,
            "status": AdStatus.ACTIVE,
            "payment_status": PaymentStatus.COMPLETED,
            "payment_method": payment_method,
            "payment_id": demo_payment_id(now),
        }

    async def purchase(
        self,
        selection: SlotSelection,
        current_user: User,
        payment_method: PaymentMethod = PaymentMethod.UPI,
        client_total: Optional[float] = None,
        is_renewal: bool = False,
        renewal_ad_id: Optional[uuid.UUID] = None
    ) -> Ad:
        """
        Buy one slot. Payment is recorded as completed with a demo payment id.

        Raises:
            NotFoundError: Slot missing or inactive, or renewal ad missing
            BadRequestError: Renewal ad belongs to another slot
            SlotOccupiedError: Slot carries someone's live ad
            OwnershipError: Caller does not own the advertised listing
            PaymentMismatchError: Client total differs from the server bill
            InvalidDurationError: Day count outside the allowed window
        """
        now = utc_now()
        slot = await self.slot_repo.get_by_number(selection.slot_number)
        if slot is None or not slot.is_active:
            raise NotFoundError("Ad slot", str(selection.slot_number))

        bill = calculate_bill([selection], {slot.slot_number: slot.base_price}, now)
        previous = await self._check_slot_free(slot.slot_number, current_user, is_renewal, now)
        if is_renewal and renewal_ad_id is not None:
            await self._check_renewal_target(renewal_ad_id, slot.slot_number, previous, current_user)
        await self._check_listing_owner(selection, current_user)
        self._check_amount(bill, client_total)

        if previous is not None:
            await self.ad_repo.update(previous, {"status": AdStatus.EXPIRED}, commit=False)

        ad = await self.ad_repo.create(
            self._new_ad(selection, 0, bill, current_user, payment_method, now),
            commit=False
        )
        await self.ad_repo.commit()

        logger.info(
            f"Ad {'renewed' if is_renewal else 'purchased'} by {current_user.email}: "
            f"slot {ad.slot_number}, {ad.total_days} days, amount {ad.total_amount}"
        )
        return ad

    async def purchase_batch(
        self,
        selections: List[SlotSelection],
        current_user: User,
        payment_method: PaymentMethod = PaymentMethod.UPI,
        client_total: Optional[float] = None
    ) -> Tuple[List[Ad], Bill]:
        """
        Buy several slots at once. Every selection is validated before anything
        is written, then all ads are committed together.
        """
        now = utc_now()
        bill = calculate_bill(selections, await self._active_slot_prices(), now)

        for selection in selections:
            await self._check_slot_free(selection.slot_number, current_user, False, now)
            await self._check_listing_owner(selection, current_user)
        self._check_amount(bill, client_total)

        ads = []
        for index, selection in enumerate(selections):
            ads.append(await self.ad_repo.create(
                self._new_ad(selection, index, bill, current_user, payment_method, now),
                commit=False
            ))
        await self.ad_repo.commit()

        logger.info(f"Batch ad purchase by {current_user.email}: {len(ads)} slots, amount {bill.total}")
        return ads, bill

    async def get_ad(self, ad_id: uuid.UUID, current_user: Optional[User] = None) -> Dict[str, Any]:
        ad = await self.ad_repo.get_by_id(ad_id)
        if ad is None:
            raise NotFoundError("Ad", str(ad_id))

        now = utc_now()
        is_owner = current_user is not None and ad.user_id == current_user.id
        result = {
            "id": str(ad.id),
            "slot_number": ad.slot_number,
            "status": ad.status,
            "start_date": ad.start_date,
            "end_date": ad.end_date,
            "total_days": ad.total_days,
            "days_remaining": round(max(ad.days_remaining(now), 0.0), 2),
            "is_live": ad.is_live(now),
            "target": ad.target_dict() or None,
            "is_owner": is_owner,
        }
        if is_owner:
            result.update({
                "price_per_day": ad.price_per_day,
                "discount_percent": ad.discount_percent,
                "total_amount": ad.total_amount,
                "payment_status": ad.payment_status,
                "payment_method": ad.payment_method,
                "payment_id": ad.payment_id,
            })
        return result

    async def expire_ads(self) -> List[str]:
        expired = await self.ad_repo.expire_overdue(utc_now())
        if expired:
            logger.info(f"Expired {len(expired)} ads")
        return expired
