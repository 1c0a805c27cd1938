"""
Ad slot marketplace endpoints.

Payments are simulated: every purchase is recorded as completed with a demo
payment id.
"""

from dataclasses import asdict
from fastapi import APIRouter, Depends, Response, status
from typing import Optional, List
from grihome.models.ad import Ad
from grihome.models.user import User
from grihome.services.ad import AdService
from grihome.services.ad_pricing import SlotSelection, Bill, max_days
from grihome.schemas.ad import (
    SlotSelectionRequest,
    QuoteRequest,
    QuoteResponse,
    SlotCostResponse,
    PurchaseRequest,
    BatchPurchaseRequest,
    PurchasedAd,
    PurchaseResponse,
    BatchPurchaseResponse,
    SlotsResponse,
    InitSlotsResponse,
    AdDetailResponse,
)
from grihome.utils.dependencies import (
    get_ad_service,
    get_current_verified_user,
    get_optional_current_user,
)
import uuid

router = APIRouter(prefix="/ads", tags=["Ads"])


def _selection(item: SlotSelectionRequest) -> SlotSelection:
    return SlotSelection(
        slot_number=item.slot_number,
        days=item.days,
        property_id=item.property_id,
        project_id=item.project_id,
    )


def _purchased(ad: Ad) -> PurchasedAd:
    return PurchasedAd(
        id=str(ad.id),
        slot_number=ad.slot_number,
        start_date=ad.start_date,
        end_date=ad.end_date,
        total_days=ad.total_days,
        total_amount=ad.total_amount,
        payment_id=ad.payment_id,
    )


def _quote_response(bill: Bill) -> QuoteResponse:
    return QuoteResponse(
        items=[SlotCostResponse(**asdict(item)) for item in bill.items],
        total_base=bill.total_base,
        total_discount=bill.total_discount,
        total_amount=bill.total,
        prelaunch_applied=bill.prelaunch_applied,
        max_days=max_days(),
    )


@router.post(
    "/init-slots",
    response_model=InitSlotsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create the ad slots",
    description="Idempotent: returns 200 without changes once slots exist"
)
async def init_slots(
    response: Response,
    ad_service: AdService = Depends(get_ad_service)
) -> InitSlotsResponse:
    created = await ad_service.init_slots()
    if not created:
        response.status_code = status.HTTP_200_OK
        return InitSlotsResponse(message="Ad slots already initialized", created=0)
    return InitSlotsResponse(message=f"Initialized {created} ad slots", created=created)


@router.get("/slots", response_model=SlotsResponse, summary="Slots with their current ads")
async def list_slots(
    current_user: Optional[User] = Depends(get_optional_current_user),
    ad_service: AdService = Depends(get_ad_service)
) -> SlotsResponse:
    return SlotsResponse.model_validate(await ad_service.get_slots(current_user))


@router.post("/quote", response_model=QuoteResponse, summary="Price a slot selection")
async def quote(
    data: QuoteRequest,
    ad_service: AdService = Depends(get_ad_service)
) -> QuoteResponse:
    """
    Raises:
        BadRequestError: Repeated slot or slot without a listing
        InvalidDurationError: Day count outside the allowed window
        NotFoundError: Unknown or inactive slot
    """
    bill = await ad_service.quote([_selection(item) for item in data.slots])
    return _quote_response(bill)


@router.post(
    "/purchase",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy or renew one slot"
)
async def purchase(
    data: PurchaseRequest,
    current_user: User = Depends(get_current_verified_user),
    ad_service: AdService = Depends(get_ad_service)
) -> PurchaseResponse:
    """
    Raises:
        SlotOccupiedError: Slot carries someone else's live ad
        OwnershipError: Caller does not own the advertised listing
        PaymentMismatchError: total_amount differs from the server bill
    """
    ad = await ad_service.purchase(
        _selection(data),
        current_user,
        payment_method=data.payment_method,
        client_total=data.total_amount,
        is_renewal=data.is_renewal,
        renewal_ad_id=data.renewal_ad_id,
    )
    message = "Ad renewed successfully" if data.is_renewal else "Ad purchased successfully"
    return PurchaseResponse(message=message, ad=_purchased(ad))


@router.post(
    "/purchase/batch",
    response_model=BatchPurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy several slots in one payment"
)
async def purchase_batch(
    data: BatchPurchaseRequest,
    current_user: User = Depends(get_current_verified_user),
    ad_service: AdService = Depends(get_ad_service)
) -> BatchPurchaseResponse:
    ads, bill = await ad_service.purchase_batch(
        [_selection(item) for item in data.slots],
        current_user,
        payment_method=data.payment_method,
        client_total=data.total_amount,
    )
    return BatchPurchaseResponse(
        message=f"Purchased {len(ads)} ad slots",
        ads=[_purchased(ad) for ad in ads],
        total_amount=bill.total,
    )


@router.get(
    "/{ad_id}",
    response_model=AdDetailResponse,
    summary="Ad details",
    description="Payment fields are included for the ad's owner only"
)
async def get_ad(
    ad_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_optional_current_user),
    ad_service: AdService = Depends(get_ad_service)
) -> AdDetailResponse:
    return AdDetailResponse.model_validate(await ad_service.get_ad(ad_id, current_user))
