"""
Ad slot pricing.

Cost of a slot = base price per day x days, reduced by a day-count discount tier.
While the pre-launch offer runs every slot is free and durations are capped lower.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence
import uuid

from grihome.config import settings
from grihome.utils.exceptions import BadRequestError, InvalidDurationError, NotFoundError
from grihome.utils.time import as_utc, utc_now

# (minimum days, percent off), longest first
DISCOUNT_TIERS = (
    (30, 30.0),
    (15, 20.0),
    (7, 10.0),
    (3, 5.0),
)
PRELAUNCH_DISCOUNT = 100.0
MIN_DAYS = 1


@dataclass(frozen=True)
class SlotSelection:
    slot_number: int
    days: int
    property_id: Optional[uuid.UUID] = None
    project_id: Optional[uuid.UUID] = None

    @property
    def has_target(self) -> bool:
        return self.property_id is not None or self.project_id is not None


@dataclass(frozen=True)
class SlotCost:
    slot_number: int
    days: int
    base_price: float
    base_amount: float
    discount_percent: float
    discount: float
    final_amount: float


@dataclass
class Bill:
    items: List[SlotCost] = field(default_factory=list)
    prelaunch_applied: bool = False

    @property
    def total_base(self) -> float:
        return round(sum(item.base_amount for item in self.items), 2)

    @property
    def total_discount(self) -> float:
        return round(sum(item.discount for item in self.items), 2)

    @property
    def total(self) -> float:
        return round(sum(item.final_amount for item in self.items), 2)


def is_prelaunch(now: Optional[datetime] = None, offer_end: Optional[datetime] = None) -> bool:
    """True until the configured pre-launch offer end (inclusive)."""
    end = as_utc(offer_end if offer_end is not None else settings.ad_prelaunch_offer_end)
    if end is None:
        return False
    return as_utc(now or utc_now()) <= end


def tier_discount(days: int) -> float:
    for minimum, percent in DISCOUNT_TIERS:
        if days >= minimum:
            return percent
    return 0.0


def discount_percent(days: int, now: Optional[datetime] = None) -> float:
    if is_prelaunch(now):
        return PRELAUNCH_DISCOUNT
    return tier_discount(days)


def max_days(now: Optional[datetime] = None) -> int:
    return settings.ad_prelaunch_max_days if is_prelaunch(now) else settings.ad_max_days


def validate_days(days, now: Optional[datetime] = None) -> int:
    """
    Raises:
        InvalidDurationError: If days is not an integer within the allowed window
    """
    upper = max_days(now)
    if isinstance(days, bool) or not isinstance(days, int) or days < MIN_DAYS or days > upper:
        raise InvalidDurationError(days, MIN_DAYS, upper)
    return days


def base_price_for_slot(slot_number: int) -> float:
    """Row pricing used when slots are first created: one price per row of slots."""
    if slot_number < 1:
        raise ValueError("Slot numbers start at 1")
    row = (slot_number - 1) // settings.ad_row_size
    prices = settings.ad_row_prices
    return float(prices[min(row, len(prices) - 1)])


def calculate_slot_cost(
    slot_number: int,
    base_price: float,
    days: int,
    now: Optional[datetime] = None
) -> SlotCost:
    base_amount = round(base_price * days, 2)
    percent = discount_percent(days, now)
    discount = round(base_amount * percent / 100.0, 2)
    return SlotCost(
        slot_number=slot_number,
        days=days,
        base_price=base_price,
        base_amount=base_amount,
        discount_percent=percent,
        discount=discount,
        final_amount=round(base_amount - discount, 2),
    )


def calculate_bill(
    selections: Sequence[SlotSelection],
    slot_prices: Mapping[int, float],
    now: Optional[datetime] = None
) -> Bill:
    """
    Price a set of slot selections.

    Args:
        selections: Requested slots with day counts and target listing
        slot_prices: Base price per day for each purchasable slot
        now: Evaluation time, defaults to the current time

    Raises:
        BadRequestError: Empty request, repeated slot or a slot without a listing
        InvalidDurationError: Day count outside the allowed window
        NotFoundError: Unknown or inactive slot
    """
    now = as_utc(now or utc_now())
    if not selections:
        raise BadRequestError("Select at least one ad slot")

    seen: Dict[int, bool] = {}
    bill = Bill(prelaunch_applied=is_prelaunch(now))
    for selection in selections:
        if selection.slot_number in seen:
            raise BadRequestError(f"Slot {selection.slot_number} selected more than once")
        seen[selection.slot_number] = True

        if not selection.has_target:
            raise BadRequestError(f"Slot {selection.slot_number}: select a property or project to advertise")

        validate_days(selection.days, now)

        if selection.slot_number not in slot_prices:
            raise NotFoundError("Ad slot", str(selection.slot_number))

        bill.items.append(
            calculate_slot_cost(selection.slot_number, slot_prices[selection.slot_number], selection.days, now)
        )
    return bill
