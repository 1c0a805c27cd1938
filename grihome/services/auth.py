"""
Authentication service: signup, password and OTP login, Google sign-in,
token management and account verification.
"""

from typing import Optional, Tuple, Dict, Any
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from google.oauth2 import id_token as google_id_token
from google.auth.transport import requests as google_auth_requests
from grihome.config import settings
from grihome.repositories.user import UserRepository
from grihome.repositories.otp import OtpRepository
from grihome.models.user import User, UserRole
from grihome.schemas.auth import SignupRequest
from grihome.services.notifications import send_otp, EmailSendError
from grihome.utils.auth import (
    create_access_token,
    create_refresh_token,
    verify_token,
    hash_password,
    verify_password,
    generate_otp,
)
from grihome.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidOTPError,
    TokenExpiredError,
    InactiveUserError,
    NotFoundError,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
    DuplicateResourceError,
    ServiceUnavailableError,
)
from grihome.utils.rate_limit import limiter
from grihome.utils.time import utc_now
from grihome.utils.validators import normalize_email, normalize_mobile
from jose import JWTError
import asyncio
import re
import secrets
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication and account service.
    Handles credentials, one-time codes, third-party sign-in and role checks.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.otp_repo = OtpRepository(db_session)

    async def signup(self, data: SignupRequest) -> User:
        """
        Create an unverified account.

        Raises:
            DuplicateResourceError: Email, username or mobile number already taken
        """
        if await self.user_repo.get_by_email(data.email):
            raise DuplicateResourceError("Email already registered")
        if await self.user_repo.get_by_username(data.username):
            raise DuplicateResourceError("Username already taken")
        if data.mobile_number and await self.user_repo.get_by_mobile(data.mobile_number):
            raise DuplicateResourceError("Mobile number already registered")

        user = await self.user_repo.create({
            "first_name": data.first_name,
            "last_name": data.last_name,
            "username": data.username,
            "email": data.email,
            "mobile_number": data.mobile_number,
            "hashed_password": hash_password(data.password),
            "role": UserRole.AGENT if data.is_agent else UserRole.BUYER,
            "company_name": data.company_name.strip() if data.company_name else None,
            "image_url": data.image_url,
        })

        logger.info(f"User signed up: {user.email} as {user.role.value} (ID: {user.id})")
        return user

    async def authenticate_user(self, identifier: str, password: str) -> User:
        """
        Check a password against the account found by email, username or mobile.

        Raises:
            InvalidCredentialsError: Unknown account or wrong password
            InactiveUserError: Account disabled
        """
        if not identifier or not password:
            raise ValidationError("Identifier and password are required")

        user = await self.user_repo.get_by_identifier(identifier)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed authentication attempt for identifier: {identifier}")
            raise InvalidCredentialsError()

        if not user.is_active:
            raise InactiveUserError()

        logger.info(f"User authenticated successfully: {user.email}")
        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        """Returns (access_token, refresh_token)."""
        access_token = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role.value
        )
        refresh_token = create_refresh_token(user_id=user.id, email=user.email)
        return access_token, refresh_token

    async def login(self, identifier: str, password: str) -> Tuple[User, str, str]:
        user = await self.authenticate_user(identifier, password)
        access_token, refresh_token = self.create_tokens(user)
        return user, access_token, refresh_token

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Raises:
            InvalidTokenError: If refresh token is invalid
            TokenExpiredError: If refresh token is expired
            InactiveUserError: If user account is inactive
        """
        try:
            token_payload = verify_token(refresh_token, token_type="refresh")
            user = await self.get_user_by_id(uuid.UUID(token_payload.user_id))
        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))
        except (ValueError, NotFoundError):
            raise InvalidTokenError()

        if not user.is_active:
            raise InactiveUserError()

        return create_access_token(user_id=user.id, email=user.email, role=user.role.value)

    async def get_current_user(self, token: str) -> User:
        """
        Resolve the user behind an access token.

        Raises:
            InvalidTokenError: If token is invalid or its user no longer exists
            TokenExpiredError: If token is expired
            InactiveUserError: If user account is inactive
        """
        try:
            token_payload = verify_token(token, token_type="access")
            user = await self.get_user_by_id(uuid.UUID(token_payload.user_id))
        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))
        except (ValueError, NotFoundError):
            raise InvalidTokenError()

        if not user.is_active:
            raise InactiveUserError()

        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    async def check_unique(self, field: str, value: str) -> bool:
        """
        Emails and mobile numbers only clash with verified accounts, so an
        abandoned unverified signup never blocks the real owner. Usernames
        always clash.

        Raises:
            ValidationError: Malformed email or mobile number
        """
        if field == "username":
            return await self.user_repo.get_by_username(value) is None

        try:
            if field == "email":
                return not await self.user_repo.verified_email_exists(normalize_email(value))
            return not await self.user_repo.verified_mobile_exists(normalize_mobile(value))
        except ValueError as e:
            raise ValidationError(str(e), field_errors=[{"field": field, "message": str(e)}])

    async def check_user(self, identifier: str) -> Dict[str, Any]:
        user = await self.user_repo.get_by_identifier(identifier)
        if not user:
            return {"exists": False, "is_verified": False, "has_password": False}
        return {
            "exists": True,
            "is_verified": user.is_verified,
            "has_password": bool(user.hashed_password),
        }

    # One-time codes

    def _normalize_identifier(self, identifier: str) -> Tuple[str, str]:
        """Returns (normalized identifier, channel)."""
        try:
            if "@" in identifier:
                return normalize_email(identifier), "email"
            return normalize_mobile(identifier), "mobile"
        except ValueError as e:
            raise ValidationError(str(e), field_errors=[{"field": "identifier", "message": str(e)}])

    async def _find_by_channel(self, identifier: str, channel: str) -> Optional[User]:
        if channel == "email":
            return await self.user_repo.get_by_email(identifier)
        return await self.user_repo.get_by_mobile(identifier)

    async def _check_verify_target(self, user: Optional[User], identifier: str, channel: str) -> None:
        """A user can only verify their own email, or a mobile number nobody else has verified."""
        if user is None:
            raise UnauthorizedError("Sign in to verify your email or mobile number")
        if channel == "email" and identifier != user.email:
            raise ForbiddenError("You can only verify the email on your account")
        if channel == "mobile" and identifier != user.mobile_number:
            if await self.user_repo.verified_mobile_exists(identifier):
                raise DuplicateResourceError("Mobile number already registered")

    async def send_otp(
        self,
        identifier: str,
        purpose: str,
        current_user: Optional[User] = None,
        client_key: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Generate, store and deliver a one-time code.

        Raises:
            RateLimitExceededError: Too many codes requested for the identifier
            NotFoundError: Login code requested for an unknown account
            ServiceUnavailableError: The email provider refused the message
        """
        identifier, channel = self._normalize_identifier(identifier)

        limiter.hit(
            key=f"otp:{purpose}:req:{identifier}",
            limit=settings.otp_send_limit,
            window_seconds=settings.otp_window_seconds,
            detail="Too many OTP requests",
        )
        limiter.hit(
            key=f"otp:req:ip:{client_key}",
            limit=settings.otp_send_limit * 4,
            window_seconds=settings.otp_window_seconds,
            detail="Too many OTP requests",
        )

        if purpose == "login":
            user = await self._find_by_channel(identifier, channel)
            if not user:
                raise NotFoundError("Account")
            if not user.is_active:
                raise InactiveUserError()
        else:
            await self._check_verify_target(current_user, identifier, channel)

        code = generate_otp()
        expires_at = utc_now() + timedelta(minutes=settings.otp_expire_minutes)
        await self.otp_repo.replace_code(identifier, purpose, code, expires_at)

        try:
            await send_otp(identifier=identifier, channel=channel, otp=code, purpose=purpose)
        except EmailSendError as e:
            logger.error(f"OTP delivery failed for {identifier}: {e}")
            raise ServiceUnavailableError("Could not deliver the OTP. Please try again later.")

        logger.info(f"OTP sent: purpose={purpose} channel={channel}")
        return {
            "message": f"OTP sent to your {'email' if channel == 'email' else 'mobile number'}",
            "channel": channel,
            "expires_in": settings.otp_expire_minutes * 60,
        }

    def _is_fallback_code(self, otp: str) -> bool:
        return (
            not settings.is_production
            and bool(settings.fallback_otp)
            and secrets.compare_digest(otp, settings.fallback_otp)
        )

    async def verify_otp(
        self,
        identifier: str,
        otp: str,
        purpose: str,
        current_user: Optional[User] = None
    ) -> Tuple[User, Optional[Tuple[str, str]]]:
        """
        Consume a one-time code.

        Purpose "login" signs the owner of the identifier in and returns tokens.
        Purpose "verify" marks the identifier as verified on the current user.
        Either way the channel the code went through counts as verified.

        Returns:
            (user, (access_token, refresh_token) or None)

        Raises:
            InvalidOTPError: Wrong, expired or consumed code
            RateLimitExceededError: Too many attempts
        """
        identifier, channel = self._normalize_identifier(identifier)

        limiter.hit(
            key=f"otp:{purpose}:verify:{identifier}",
            limit=settings.otp_verify_limit,
            window_seconds=settings.otp_window_seconds,
            detail="Too many OTP attempts",
        )

        if purpose == "login":
            user = await self._find_by_channel(identifier, channel)
            if not user:
                raise InvalidOTPError()
            if not user.is_active:
                raise InactiveUserError()
        else:
            await self._check_verify_target(current_user, identifier, channel)
            user = current_user

        now = utc_now()
        if not self._is_fallback_code(otp):
            record = await self.otp_repo.find_valid(identifier, purpose, otp, now)
            if not record:
                logger.warning(f"Invalid OTP attempt: purpose={purpose} channel={channel}")
                raise InvalidOTPError()

        await self.otp_repo.consume(identifier, purpose, commit=False)

        if channel == "email" and not user.is_email_verified:
            user.email_verified_at = now
        elif channel == "mobile":
            if user.mobile_number != identifier:
                user.mobile_number = identifier
            if not user.is_mobile_verified:
                user.mobile_verified_at = now

        await self.user_repo.commit()
        await self.db.refresh(user)

        logger.info(f"OTP verified: purpose={purpose} channel={channel} user={user.id}")
        if purpose == "login":
            return user, self.create_tokens(user)
        return user, None

    # Google sign-in

    def _verify_google_token(self, token: str) -> Dict[str, Any]:
        """Blocking: fetches Google's certificates. Run it off the event loop."""
        return google_id_token.verify_oauth2_token(token, google_auth_requests.Request())

    async def _unique_username(self, email: str) -> str:
        base = re.sub(r"[^a-zA-Z0-9_]+", "_", email.split("@", 1)[0]).strip("_")[:24] or "user"
        if len(base) < 3:
            base = f"{base}_user"
        username = base
        for _ in range(20):
            if not await self.user_repo.get_by_username(username):
                return username
            username = f"{base}_{secrets.randbelow(10_000)}"
        return f"user_{secrets.token_hex(4)}"

    async def google_login(self, token: str) -> Tuple[User, str, str, bool]:
        """
        Sign in with a Google ID token, creating the account on first use.

        Returns:
            (user, access_token, refresh_token, created)

        Raises:
            ServiceUnavailableError: No client ids configured in production
            InvalidTokenError: Bad signature, audience or unverified email
        """
        allowed_aud = settings.google_oauth_client_ids
        if settings.is_production and not allowed_aud:
            raise ServiceUnavailableError("Google sign-in is not configured")

        try:
            info = await asyncio.to_thread(self._verify_google_token, token.strip())
        except ValueError as e:
            logger.warning(f"Rejected Google token: {e}")
            raise InvalidTokenError("Invalid Google token")

        if allowed_aud and str(info.get("aud") or "") not in set(allowed_aud):
            raise InvalidTokenError("Google token audience mismatch")

        email = str(info.get("email") or "").strip().lower()
        if not email or "@" not in email:
            raise InvalidTokenError("Google token missing email")
        if info.get("email_verified") is False:
            raise InvalidTokenError("Google email is not verified")

        created = False
        user = await self.user_repo.get_by_email(email)
        if user is None:
            user = await self.user_repo.create({
                "first_name": str(info.get("given_name") or info.get("name") or "").strip(),
                "last_name": str(info.get("family_name") or "").strip(),
                "username": await self._unique_username(email),
                "email": email,
                "hashed_password": None,
                "role": UserRole.BUYER,
                "image_url": info.get("picture"),
                "email_verified_at": utc_now(),
                "auth_provider": "google",
            })
            created = True
            logger.info(f"User created through Google sign-in: {email}")
        else:
            if not user.is_active:
                raise InactiveUserError()
            if not user.is_email_verified:
                user = await self.user_repo.update(user, {"email_verified_at": utc_now()})

        access_token, refresh_token = self.create_tokens(user)
        return user, access_token, refresh_token, created

    # Account maintenance

    async def change_password(
        self,
        user: User,
        current_password: Optional[str],
        new_password: str
    ) -> User:
        """
        Raises:
            InvalidCredentialsError: Current password missing or wrong
            ValidationError: New password too short
        """
        if user.hashed_password:
            if not current_password or not verify_password(current_password, user.hashed_password):
                raise InvalidCredentialsError("Current password is incorrect")

        try:
            hashed = hash_password(new_password)
        except ValueError as e:
            raise ValidationError(str(e))

        updated = await self.user_repo.update(user, {"hashed_password": hashed})
        logger.info(f"Password changed for user: {user.id}")
        return updated

    async def update_profile(self, user: User, changes: Dict[str, Any]) -> User:
        """
        Raises:
            DuplicateResourceError: New mobile number already verified elsewhere
        """
        changes = {k: v for k, v in changes.items() if v is not None}

        new_mobile = changes.get("mobile_number")
        if new_mobile and new_mobile != user.mobile_number:
            other = await self.user_repo.get_by_mobile(new_mobile)
            if other and other.id != user.id:
                raise DuplicateResourceError("Mobile number already registered")
            changes["mobile_verified_at"] = None
            updated = await self.user_repo.update(user, changes, skip_none=False)
        else:
            changes.pop("mobile_number", None)
            if not changes:
                return user
            updated = await self.user_repo.update(user, changes)

        logger.info(f"Profile updated for user: {user.id}")
        return updated
