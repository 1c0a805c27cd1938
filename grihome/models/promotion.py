"""
Time-boxed promotion columns shared by agent registrations and project listings.
"""

from sqlalchemy import Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from grihome.utils.time import as_utc
from datetime import datetime, timedelta
from typing import Optional


class PromotionMixin:
    """
    A promotion is live while is_promoted is set and promotion_end_date has not passed.
    Expired rows are cleared lazily when they are read.
    """

    is_promoted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    promotion_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    promotion_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def promotion_expired(self, now: datetime) -> bool:
        end = as_utc(self.promotion_end_date)
        return bool(self.is_promoted) and end is not None and end < now

    def promotion_active(self, now: datetime) -> bool:
        end = as_utc(self.promotion_end_date)
        return bool(self.is_promoted) and end is not None and end >= now

    def start_promotion(self, now: datetime, days: int) -> None:
        self.is_promoted = True
        self.promotion_start_date = now
        self.promotion_end_date = now + timedelta(days=days)

    def clear_promotion(self) -> None:
        self.is_promoted = False
        self.promotion_start_date = None
        self.promotion_end_date = None

    def promotion_dict(self, now: datetime) -> dict:
        return {
            "is_promoted": self.promotion_active(now),
            "promotion_start_date": as_utc(self.promotion_start_date),
            "promotion_end_date": as_utc(self.promotion_end_date),
        }
