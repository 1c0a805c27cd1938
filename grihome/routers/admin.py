"""
Admin dashboard endpoints.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from grihome.config import settings
from grihome.models.user import User
from grihome.services.admin import AdminService
from grihome.schemas.admin import AdminAccessResponse, AdminStatsResponse, TransactionsResponse, TransactionItem
from grihome.schemas.common import PageMeta, page_offset
from grihome.utils.auth import is_admin
from grihome.utils.dependencies import get_admin_service, get_current_admin_user, get_optional_current_user

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/check-access", response_model=AdminAccessResponse, summary="Whether the caller may open the admin pages")
async def check_access(
    current_user: Optional[User] = Depends(get_optional_current_user)
) -> AdminAccessResponse:
    return AdminAccessResponse(
        can_access_admin=current_user is not None and is_admin(current_user),
        is_production=settings.is_production,
        is_authenticated=current_user is not None,
    )


@router.get("/stats", response_model=AdminStatsResponse, summary="Sign-up, agent and revenue figures")
async def stats(
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> AdminStatsResponse:
    """
    Raises:
        InsufficientPermissionsError: Caller is not an administrator
    """
    return AdminStatsResponse(**await admin_service.stats())


@router.get(
    "/transactions",
    response_model=TransactionsResponse,
    summary="Transaction history",
    description="Ad purchases, property promotions and agent registrations, newest first"
)
async def transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> TransactionsResponse:
    items, total = await admin_service.transactions(page_offset(page, page_size), page_size)
    return TransactionsResponse(
        transactions=[TransactionItem.model_validate(item) for item in items],
        pagination=PageMeta.build(total, page, page_size),
    )
