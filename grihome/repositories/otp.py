"""OTP code storage: one live code per identifier and purpose."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from grihome.repositories.base import BaseRepository
from grihome.models.otp import OtpCode
from datetime import datetime
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class OtpRepository(BaseRepository[OtpCode]):

    def __init__(self, db: AsyncSession):
        super().__init__(OtpCode, db)

    async def replace_code(self, identifier: str, purpose: str, code: str, expires_at: datetime) -> OtpCode:
        """Drop earlier codes for the pair and store a new one."""
        try:
            await self.db.execute(
                delete(OtpCode).where(OtpCode.identifier == identifier, OtpCode.purpose == purpose)
            )
            return await self.create(
                {"identifier": identifier, "purpose": purpose, "code": code, "expires_at": expires_at}
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to store OTP for {identifier}: {e}")
            raise

    async def find_valid(self, identifier: str, purpose: str, code: str, now: datetime) -> Optional[OtpCode]:
        result = await self.db.execute(
            select(OtpCode)
            .where(
                OtpCode.identifier == identifier,
                OtpCode.purpose == purpose,
                OtpCode.code == code,
                OtpCode.expires_at > now,
            )
            .order_by(OtpCode.created_at.desc())
        )
        return result.scalars().first()

    async def consume(self, identifier: str, purpose: str, commit: bool = True) -> None:
        await self.db.execute(
            delete(OtpCode).where(OtpCode.identifier == identifier, OtpCode.purpose == purpose)
        )
        if commit:
            await self.commit()
