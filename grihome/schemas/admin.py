"""Admin dashboard schemas."""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from grihome.schemas.common import PageMeta


class AdminAccessResponse(BaseModel):
    can_access_admin: bool
    is_production: bool
    is_authenticated: bool


class AdminStatsResponse(BaseModel):
    total_users: int
    users_24h: int
    users_7d: int
    users_30d: int
    total_agents: int
    ad_revenue: float


class TransactionItem(BaseModel):
    id: str
    date: datetime
    type: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    duration: Optional[int] = None
    amount: float
    details: Optional[str] = None


class TransactionsResponse(BaseModel):
    transactions: List[TransactionItem]
    pagination: PageMeta
