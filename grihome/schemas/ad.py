"""
Pydantic schemas for the advertisement slot marketplace.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from grihome.models.ad import AdStatus, PaymentStatus, PaymentMethod
import uuid


class SlotSelectionRequest(BaseModel):
    """One slot in a quote or purchase. Exactly one listing is advertised per slot."""

    slot_number: int = Field(..., ge=1, examples=[1])
    days: int = Field(..., description="Run length in days", examples=[7])
    property_id: Optional[uuid.UUID] = None
    project_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def validate_single_target(self):
        if self.property_id is not None and self.project_id is not None:
            raise ValueError("Advertise either a property or a project, not both")
        return self


class QuoteRequest(BaseModel):
    slots: List[SlotSelectionRequest] = Field(..., min_length=1)


class SlotCostResponse(BaseModel):
    slot_number: int
    days: int
    base_price: float = Field(..., description="Price per day before discount")
    base_amount: float
    discount_percent: float
    discount: float
    final_amount: float


class QuoteResponse(BaseModel):
    items: List[SlotCostResponse]
    total_base: float
    total_discount: float
    total_amount: float
    prelaunch_applied: bool = Field(..., description="Pre-launch offer made every slot free")
    max_days: int


class PurchaseRequest(SlotSelectionRequest):
    payment_method: PaymentMethod = PaymentMethod.UPI
    total_amount: Optional[float] = Field(
        None,
        ge=0,
        description="Amount shown to the user. Rejected when it differs from the server bill"
    )
    is_renewal: bool = False
    renewal_ad_id: Optional[uuid.UUID] = None


class BatchPurchaseRequest(BaseModel):
    slots: List[SlotSelectionRequest] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.UPI
    total_amount: Optional[float] = Field(None, ge=0)


class PurchasedAd(BaseModel):
    id: str
    slot_number: int
    start_date: datetime
    end_date: datetime
    total_days: int
    total_amount: float
    payment_id: Optional[str] = None


class PurchaseResponse(BaseModel):
    message: str
    ad: PurchasedAd


class BatchPurchaseResponse(BaseModel):
    message: str
    ads: List[PurchasedAd]
    total_amount: float


class AdTarget(BaseModel):
    kind: str
    id: str
    title: str
    price: Optional[float] = None
    thumbnail_url: Optional[str] = None
    city: Optional[str] = None


class SlotAd(BaseModel):
    id: str
    end_date: datetime
    total_days: int
    user_id: str
    user_name: str
    target: Optional[AdTarget] = None


class SlotResponse(BaseModel):
    slot_number: int
    base_price: float
    is_active: bool
    has_ad: bool
    is_expiring_soon: bool
    is_user_ad: bool
    ad: Optional[SlotAd] = None


class SlotsResponse(BaseModel):
    slots: List[SlotResponse]
    prelaunch_offer_active: bool
    max_days: int


class InitSlotsResponse(BaseModel):
    message: str
    created: int


class AdDetailResponse(BaseModel):
    id: str
    slot_number: int
    status: AdStatus
    start_date: datetime
    end_date: datetime
    total_days: int
    days_remaining: float
    is_live: bool
    target: Optional[AdTarget] = None
    is_owner: bool
    # Owner only
    price_per_day: Optional[float] = None
    discount_percent: Optional[float] = None
    total_amount: Optional[float] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    payment_id: Optional[str] = None


class ExpireAdsResponse(BaseModel):
    message: str
    expired_count: int
    expired_ids: List[str]
