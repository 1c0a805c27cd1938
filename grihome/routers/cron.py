"""
Scheduled maintenance endpoints, called by an external scheduler with the cron secret.
"""

from fastapi import APIRouter, Depends
from grihome.services.ad import AdService
from grihome.services.reminders import PromotionReminderService
from grihome.schemas.ad import ExpireAdsResponse
from grihome.schemas.project import ExpiryRemindersResponse
from grihome.utils.dependencies import get_ad_service, get_reminder_service, verify_cron_secret

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


async def _expire(ad_service: AdService) -> ExpireAdsResponse:
    expired_ids = await ad_service.expire_ads()
    return ExpireAdsResponse(
        message=f"Expired {len(expired_ids)} ads",
        expired_count=len(expired_ids),
        expired_ids=expired_ids,
    )


async def _remind(reminder_service: PromotionReminderService) -> ExpiryRemindersResponse:
    return ExpiryRemindersResponse(
        message="Expiry reminders processed",
        reminders=await reminder_service.send_expiry_reminders(),
    )


@router.post("/expire-ads", response_model=ExpireAdsResponse, summary="Expire ads past their end date")
async def expire_ads(ad_service: AdService = Depends(get_ad_service)) -> ExpireAdsResponse:
    """
    Raises:
        UnauthorizedError: Missing or wrong X-Cron-Secret header
    """
    return await _expire(ad_service)


@router.get("/expire-ads", response_model=ExpireAdsResponse, include_in_schema=False)
async def expire_ads_get(ad_service: AdService = Depends(get_ad_service)) -> ExpireAdsResponse:
    return await _expire(ad_service)


@router.post(
    "/send-expiry-reminders",
    response_model=ExpiryRemindersResponse,
    summary="Remind agents and owners whose promotions end soon"
)
async def send_expiry_reminders(
    reminder_service: PromotionReminderService = Depends(get_reminder_service)
) -> ExpiryRemindersResponse:
    return await _remind(reminder_service)


@router.get("/send-expiry-reminders", response_model=ExpiryRemindersResponse, include_in_schema=False)
async def send_expiry_reminders_get(
    reminder_service: PromotionReminderService = Depends(get_reminder_service)
) -> ExpiryRemindersResponse:
    return await _remind(reminder_service)
