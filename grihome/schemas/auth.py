"""
Pydantic schemas for signup, login, OTP and token flows.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Literal
from datetime import datetime
from grihome.models.user import UserRole
from grihome.schemas.user import UserResponse
from grihome.utils.validators import normalize_email, normalize_mobile
import re

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.]{3,30}$")

OtpPurpose = Literal["login", "verify"]


class SignupRequest(BaseModel):
    """New account. Agents must name their company."""

    first_name: str = Field(..., min_length=1, max_length=100, examples=["Asha"])
    last_name: str = Field("", max_length=100, examples=["Rao"])
    username: str = Field(..., description="3-30 letters, digits, dots or underscores", examples=["asha.rao"])
    email: str = Field(..., examples=["asha@example.com"])
    mobile_number: Optional[str] = Field(None, examples=["+919876543210"])
    password: str = Field(..., min_length=8, max_length=128, description="Minimum 8 characters")
    is_agent: bool = Field(False, description="Register as an agent")
    company_name: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=1024)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v):
        return v.strip()

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username must be 3-30 characters of letters, digits, dots or underscores")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile(cls, v):
        if v is None or not v.strip():
            return None
        return normalize_mobile(v)

    @model_validator(mode="after")
    def require_company_for_agents(self):
        if self.is_agent and not (self.company_name and self.company_name.strip()):
            raise ValueError("Company name is required for agents")
        return self


class LoginRequest(BaseModel):
    identifier: str = Field(
        ...,
        min_length=3,
        description="Email, username or mobile number",
        examples=["asha@example.com"]
    )
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("identifier")
    @classmethod
    def strip_identifier(cls, v):
        return v.strip()


class LoginResponse(BaseModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds", examples=[1800])


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., description="Valid refresh token")


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenValidationResponse(BaseModel):
    valid: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    expires_at: Optional[datetime] = None


class CheckUniqueRequest(BaseModel):
    field: Literal["username", "email", "mobile"]
    value: str = Field(..., min_length=1)


class CheckUniqueResponse(BaseModel):
    is_unique: bool


class CheckUserRequest(BaseModel):
    identifier: str = Field(..., min_length=3)


class CheckUserResponse(BaseModel):
    exists: bool
    is_verified: bool = False
    has_password: bool = False


class OtpSendRequest(BaseModel):
    identifier: str = Field(..., min_length=3, description="Email address or mobile number")
    purpose: OtpPurpose = "login"


class OtpSendResponse(BaseModel):
    message: str
    channel: Literal["email", "mobile"]
    expires_in: int = Field(..., description="Seconds until the code expires")


class OtpVerifyRequest(BaseModel):
    identifier: str = Field(..., min_length=3)
    otp: str = Field(..., min_length=4, max_length=12)
    purpose: OtpPurpose = "login"

    @field_validator("otp")
    @classmethod
    def strip_otp(cls, v):
        return v.strip()


class OtpVerifyResponse(BaseModel):
    verified: bool
    user: Optional[UserResponse] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=10, description="Google ID token from the client")


class GoogleLoginResponse(LoginResponse):
    is_new_user: bool
