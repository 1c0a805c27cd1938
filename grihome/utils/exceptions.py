"""
Custom exception classes for the Grihome API.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )


class ServiceUnavailableError(APIException):
    """Service unavailable exception."""

    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="SERVICE_UNAVAILABLE"
        )


# Authentication specific exceptions
class InvalidCredentialsError(UnauthorizedError):
    """Invalid login credentials exception."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(detail)


class TokenExpiredError(UnauthorizedError):
    """JWT token expired exception."""

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    """Invalid JWT token exception."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class InvalidOTPError(UnauthorizedError):
    """Wrong, expired or already consumed one-time code."""

    def __init__(self, detail: str = "Invalid or expired OTP"):
        super().__init__(detail)


class InactiveUserError(ForbiddenError):
    """Inactive user account exception."""

    def __init__(self, detail: str = "User account is inactive"):
        super().__init__(detail)


class VerificationRequiredError(ForbiddenError):
    """Raised when an action needs a verified email or mobile number."""

    def __init__(self, detail: str = "Please verify your email or mobile number to continue"):
        super().__init__(detail)


class InsufficientPermissionsError(ForbiddenError):
    """Insufficient permissions exception."""

    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


class OwnershipError(ForbiddenError):
    """Acting on a listing that belongs to someone else."""

    def __init__(self, detail: str = "You don't own this listing"):
        super().__init__(detail)


# Business rule exceptions
class BusinessRuleViolationError(BadRequestError):
    """Business rule violation exception."""

    def __init__(self, rule: str, detail: Optional[str] = None):
        message = f"Business rule violation: {rule}"
        if detail:
            message += f" - {detail}"
        super().__init__(message, error_code="BUSINESS_RULE_VIOLATION")


class DuplicateResourceError(BadRequestError):
    """Duplicate resource exception. Reported as a bad request like the rest of the API."""

    def __init__(self, detail: str):
        super().__init__(detail, error_code="DUPLICATE_RESOURCE")


class InvalidDurationError(BadRequestError):
    """Day count outside the allowed window."""

    def __init__(self, days: Any, minimum: int, maximum: int):
        super().__init__(
            f"Duration must be between {minimum} and {maximum} days (got {days})",
            error_code="INVALID_DURATION"
        )


class SlotOccupiedError(BadRequestError):
    """Ad slot already carries an active ad."""

    def __init__(self, slot_number: int):
        super().__init__(
            f"Slot {slot_number} is already occupied",
            error_code="SLOT_OCCUPIED"
        )


class PaymentMismatchError(BadRequestError):
    """Client supplied amount differs from the server computed bill."""

    def __init__(self, expected: float, received: float):
        super().__init__(
            f"Payment amount mismatch: expected {expected:.2f}, received {received:.2f}",
            error_code="PAYMENT_MISMATCH"
        )


class PostLockedError(ForbiddenError):
    """Replies are closed on this post."""

    def __init__(self, detail: str = "This post is locked"):
        super().__init__(detail)


class GeocodingError(BadRequestError):
    """Address could not be resolved to coordinates."""

    def __init__(self, address: str):
        super().__init__(
            f"Could not find location for address: {address}",
            error_code="GEOCODING_FAILED"
        )


# Rate limiting exceptions
class RateLimitExceededError(APIException):
    """Rate limit exceeded exception."""

    def __init__(self, retry_after: int, detail: str = "Rate limit exceeded"):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            error_code="RATE_LIMIT_EXCEEDED",
            headers={"Retry-After": str(max(int(retry_after), 1))}
        )
