"""
Authentication utilities for JWT token management, password hashing and OTP codes.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext
from grihome.config import settings
from grihome.utils.time import utc_now
import secrets
import uuid


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenPayload:
    """JWT token payload structure."""

    def __init__(self, user_id: str, email: Optional[str], role: Optional[str], exp: datetime):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.exp = exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from dictionary."""
        return cls(
            user_id=data["sub"],
            email=data.get("email"),
            role=data.get("role"),  # Role is optional for refresh tokens
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )


def _encode(claims: Dict[str, Any], expire: datetime) -> str:
    to_encode = {**claims, "exp": expire, "iat": utc_now()}
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str],
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token with user claims.

    Args:
        user_id: User's UUID
        email: User's email address (may be empty for mobile-only accounts)
        role: User's role value
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return _encode(
        {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": "access",
        },
        expire
    )


def create_refresh_token(
    user_id: uuid.UUID,
    email: Optional[str],
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT refresh token."""
    expire = utc_now() + (expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days))
    return _encode(
        {
            "sub": str(user_id),
            "email": email,
            "type": "refresh",
        },
        expire
    )


def verify_token(token: str, token_type: str = "access") -> TokenPayload:
    """
    Verify and decode JWT token.

    Args:
        token: JWT token string
        token_type: Expected token type ("access" or "refresh")

    Returns:
        Decoded token payload

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError:
        raise JWTError("Token has expired")

    if payload.get("type") != token_type:
        raise JWTError(f"Invalid token type. Expected {token_type}")

    if not payload.get("sub"):
        raise JWTError("Invalid token payload")

    return TokenPayload.from_dict(payload)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Raises:
        ValueError: If password is too short
    """
    if not password or len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash. Accounts created through OAuth have no hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_otp(length: Optional[int] = None) -> str:
    """Numeric one-time code, zero padded."""
    digits = length or settings.otp_length
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


def is_admin(user) -> bool:
    """Admins are listed in settings.admin_emails. Outside production every user qualifies."""
    if not settings.is_production:
        return True
    return (user.email or "").lower() in settings.admin_emails
