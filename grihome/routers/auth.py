"""
Authentication API endpoints: signup, password and OTP login, Google sign-in and token management.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from grihome.models.user import User
from grihome.services.auth import AuthService
from grihome.schemas.auth import (
    SignupRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
    TokenValidationResponse,
    CheckUniqueRequest,
    CheckUniqueResponse,
    CheckUserRequest,
    CheckUserResponse,
    OtpSendRequest,
    OtpSendResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
    GoogleLoginRequest,
    GoogleLoginResponse,
)
from grihome.schemas.user import UserResponse
from grihome.utils.auth import verify_token
from grihome.utils.dependencies import (
    get_auth_service,
    get_current_active_user,
    get_optional_current_user,
    get_client_ip,
    security,
)
from grihome.utils.exceptions import (
    APIException,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
)
from grihome.utils.rate_limit import limiter
from grihome.config import settings
from jose import JWTError
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _login_response(user: User, access_token: str, refresh_token: str) -> dict:
    return {
        "user": UserResponse.model_validate(user.to_dict()),
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
    }


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
    description="Register a buyer or agent account. Email and mobile start unverified."
)
async def signup(
    request: Request,
    signup_data: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    """
    Raises:
        DuplicateResourceError: Email, username or mobile number already taken
    """
    limiter.hit_action("auth", get_client_ip(request))
    user = await auth_service.signup(signup_data)
    return UserResponse.model_validate(user.to_dict())


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate with email, username or mobile number plus password, returns JWT tokens"
)
async def login(
    request: Request,
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    limiter.hit_action("auth", get_client_ip(request))
    try:
        user, access_token, refresh_token = await auth_service.login(
            identifier=login_data.identifier,
            password=login_data.password
        )
        return LoginResponse(**_login_response(user, access_token, refresh_token))
    except (InvalidCredentialsError, InactiveUserError):
        raise


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Generate new access token using refresh token"
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AccessTokenResponse:
    """
    Raises:
        InvalidTokenError: If refresh token is invalid
        TokenExpiredError: If refresh token is expired
        InactiveUserError: If user account is inactive
    """
    try:
        access_token = await auth_service.refresh_access_token(refresh_token=refresh_data.refresh_token)
        return AccessTokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60
        )
    except (InvalidTokenError, TokenExpiredError, InactiveUserError):
        raise


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user"
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())


@router.post(
    "/validate",
    response_model=TokenValidationResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate token",
    description="Validate JWT token and return token information"
)
async def validate_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenValidationResponse:
    if not credentials:
        return TokenValidationResponse(valid=False)

    try:
        user = await auth_service.get_current_user(credentials.credentials)
        token_payload = verify_token(credentials.credentials, token_type="access")
    except (APIException, JWTError):
        return TokenValidationResponse(valid=False)

    return TokenValidationResponse(
        valid=True,
        user_id=str(user.id),
        email=user.email,
        role=user.role,
        expires_at=token_payload.exp
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="User logout",
    description="Logout user (client-side token removal)"
)
async def logout(
    current_user: User = Depends(get_current_active_user)
) -> None:
    """
    Tokens are stateless, so logout only confirms the caller was authenticated.
    """
    logger.info(f"User logged out: {current_user.id}")


@router.post(
    "/check-unique",
    response_model=CheckUniqueResponse,
    summary="Check username, email or mobile availability",
    description="Email and mobile only clash with verified accounts; usernames always clash"
)
async def check_unique(
    data: CheckUniqueRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> CheckUniqueResponse:
    """
    Raises:
        ValidationError: Email or mobile number malformed
    """
    return CheckUniqueResponse(is_unique=await auth_service.check_unique(data.field, data.value))


@router.post(
    "/check-user",
    response_model=CheckUserResponse,
    summary="Check whether an account exists"
)
async def check_user(
    request: Request,
    data: CheckUserRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> CheckUserResponse:
    limiter.hit_action("auth", get_client_ip(request))
    return CheckUserResponse(**await auth_service.check_user(data.identifier))


@router.post(
    "/otp/send",
    response_model=OtpSendResponse,
    summary="Send a one-time code",
    description="Purpose login signs in an existing account; purpose verify confirms the caller's email or mobile"
)
async def send_otp(
    request: Request,
    data: OtpSendRequest,
    current_user: Optional[User] = Depends(get_optional_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> OtpSendResponse:
    """
    Raises:
        RateLimitExceededError: Too many codes requested
        NotFoundError: No account for a login code
        UnauthorizedError: Verify code requested without signing in
    """
    result = await auth_service.send_otp(
        data.identifier,
        data.purpose,
        current_user=current_user,
        client_key=get_client_ip(request)
    )
    return OtpSendResponse(**result)


@router.post(
    "/otp/verify",
    response_model=OtpVerifyResponse,
    summary="Verify a one-time code"
)
async def verify_otp(
    data: OtpVerifyRequest,
    current_user: Optional[User] = Depends(get_optional_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> OtpVerifyResponse:
    """
    Raises:
        InvalidOTPError: Wrong, expired or consumed code
    """
    user, tokens = await auth_service.verify_otp(
        data.identifier,
        data.otp,
        data.purpose,
        current_user=current_user
    )
    if tokens is None:
        return OtpVerifyResponse(verified=True, user=UserResponse.model_validate(user.to_dict()))
    return OtpVerifyResponse(verified=True, **_login_response(user, *tokens))


@router.post(
    "/google",
    response_model=GoogleLoginResponse,
    summary="Sign in with Google",
    description="Verify a Google ID token, creating the account on first sign-in"
)
async def google_login(
    data: GoogleLoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> GoogleLoginResponse:
    user, access_token, refresh_token, created = await auth_service.google_login(data.id_token)
    return GoogleLoginResponse(is_new_user=created, **_login_response(user, access_token, refresh_token))
