"""
Request middleware: request ids, size and content-type checks, optional
per-client throttling and access logging.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from grihome.services.error_handler import ErrorHandlerService
from grihome.utils.dependencies import get_client_ip
from grihome.utils.exceptions import APIException, BadRequestError
from grihome.utils.rate_limit import limiter

logger = logging.getLogger(__name__)


class ValidationMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (echoed as X-Request-ID), rejects oversized
    or non-JSON API bodies and, when enabled, throttles each client address.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 10 * 1024 * 1024,
        enable_request_logging: bool = True,
        enable_rate_limiting: bool = False,
        api_prefix: str = "/api/"
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging
        self.enable_rate_limiting = enable_rate_limiting
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()

        try:
            self._validate_request_size(request)
            if self.enable_rate_limiting:
                limiter.hit_action("api", get_client_ip(request))
            self._validate_content_type(request)
        except APIException as exc:
            logger.warning(f"Request rejected [{request_id}]: {request.method} {request.url.path} - {exc.detail}")
            response = ErrorHandlerService.handle_api_exception(exc, request)
            response.headers["X-Request-ID"] = request_id
            return response

        if self.enable_request_logging:
            logger.info(
                f"Request [{request_id}]: {request.method} {request.url.path}",
                extra={"request_id": request_id, "client_ip": get_client_ip(request)}
            )

        response = await call_next(request)

        if self.enable_request_logging:
            logger.info(f"Response [{request_id}]: {response.status_code} - {time.time() - start_time:.3f}s")

        response.headers["X-Request-ID"] = request_id
        return response

    def _validate_request_size(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: Content-Length missing a number or above the limit
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return
        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")
        if size > self.max_request_size:
            raise BadRequestError(
                f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
            )

    def _validate_content_type(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: API write request with a body that is not JSON
        """
        if request.method not in ("POST", "PUT", "PATCH"):
            return
        if not request.url.path.startswith(self.api_prefix):
            return

        content_type = request.headers.get("content-type", "")
        if content_type and not content_type.startswith("application/json"):
            raise BadRequestError(f"Unsupported content type '{content_type}'. Expected 'application/json'")
