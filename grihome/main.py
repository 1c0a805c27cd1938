"""
FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
import logging

from grihome.config import settings
from grihome.database import test_database_connection, close_db_connection, create_tables
from grihome.routers import (
    auth_router,
    users_router,
    builders_router,
    projects_router,
    properties_router,
    interests_router,
    ads_router,
    forum_router,
    cron_router,
    agents_router,
    admin_router,
    project_requests_router,
)
from grihome.utils.exceptions import APIException, ServiceUnavailableError
from grihome.services.error_handler import ErrorHandlerService
from grihome.middleware.validation import ValidationMiddleware

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")
    elif settings.is_sqlite and not settings.is_testing:
        # Local SQLite databases have no migration step
        await create_tables()

    yield

    logger.info("Shutting down application")
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Backend for the Grihome real-estate marketplace.

    ## Features

    * **Listings**: properties for sale or rent, with sold and archived states and favourites
    * **Projects and builders**: project pages, agent registration and featured promotions
    * **Ad slots**: a fixed grid of homepage slots bought by the day, with duration discounts
    * **Forum**: city and property-type categories, threaded replies, reactions and search
    * **Authentication**: password, one-time code and Google sign-in with JWT tokens

    ## Authentication

    Sign in through `/api/v1/auth/login`, `/api/v1/auth/otp/verify` or `/api/v1/auth/google`
    and send the access token as `Authorization: Bearer <token>`.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Authentication", "description": "Sign-up, sign-in and token management"},
        {"name": "User", "description": "The signed-in user's profile and listings"},
        {"name": "Builders", "description": "Builder directory"},
        {"name": "Projects", "description": "Projects, their agents and promoted listings"},
        {"name": "Properties", "description": "Property listings and favourites"},
        {"name": "Interests", "description": "Buyer interest sent to builders and owners"},
        {"name": "Ads", "description": "Homepage ad slot marketplace"},
        {"name": "Forum", "description": "Community discussion forum"},
        {"name": "Cron", "description": "Scheduled maintenance jobs"},
        {"name": "Health", "description": "Service health"},
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

app.add_middleware(
    ValidationMiddleware,
    max_request_size=settings.max_request_size,
    enable_request_logging=settings.debug,
    enable_rate_limiting=settings.is_production,
    api_prefix=settings.api_v1_prefix,
)

for router in (
    auth_router,
    users_router,
    builders_router,
    projects_router,
    properties_router,
    interests_router,
    ads_router,
    forum_router,
    cron_router,
    agents_router,
    admin_router,
    project_requests_router,
):
    app.include_router(router, prefix=settings.api_v1_prefix)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Integrity errors become 409, anything else from the database a 500."""
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "healthy",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_v1_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check with a database round trip. Used by load balancers.

    Raises:
        ServiceUnavailableError: Database unreachable
    """
    if not await test_database_connection():
        raise ServiceUnavailableError("Database connection failed")

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "grihome.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
