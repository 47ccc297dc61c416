import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from employee_directory.api.v1 import api_router
from employee_directory.core.config import settings
from employee_directory.core.exceptions import AppError, format_validation_errors
from employee_directory.core.logging_config import RequestLoggingMiddleware, setup_logging
from employee_directory.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from employee_directory.core.rate_limiter import limiter, rate_limit_exceeded_handler
from employee_directory.core.storage import ObjectStorage, create_object_storage
from employee_directory.core.version import APP_VERSION, get_full_version
from employee_directory.db.session import Database
from employee_directory.schemas.misc import HealthResponse

# Configure structured logging (JSON in production, colored in development)
setup_logging()
logger = logging.getLogger("employee_directory")


def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build storage handles unless they were injected, and release them on shutdown."""
    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        app.state.database = Database.from_settings()
    if getattr(app.state, "storage", None) is None:
        app.state.storage = create_object_storage()

    if not await app.state.database.check_connection():
        logger.error("Database is not reachable at startup")
    logger.info(f"{settings.PROJECT_NAME} {get_full_version()} started ({settings.ENVIRONMENT})")

    yield

    if owns_database:
        await app.state.database.dispose()
    logger.info("Shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, format_validation_errors(exc.errors()))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
        return _error_response(status.HTTP_409_CONFLICT, "Duplicate field value")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = f"Route {request.url.path} not found"
        return _error_response(exc.status_code, message, getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Last-resort handler. In production, details are hidden behind a reference id.
        """
        error_id = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        logger.error(
            f"Unhandled exception [{error_id}] on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        if settings.ENVIRONMENT.lower() == "production":
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                f"Internal server error. Reference ID: {error_id}",
            )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"{exc.__class__.__name__}: {exc}",
        )

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def create_app(
    database: Optional[Database] = None,
    storage: Optional[ObjectStorage] = None,
) -> FastAPI:
    """
    Build the API application.

    `database` and `storage` may be injected (tests, scripts); otherwise they
    are created from settings when the application starts.
    """
    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Employee directory with token-based authentication and permissions",
        version=APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,  # Disable docs in production
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    if database is not None:
        app.state.database = database
    if storage is not None:
        app.state.storage = storage

    app.state.limiter = limiter
    register_exception_handlers(app)

    # Innermost first: rate limiting runs inside logging, CORS and size checks
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RequestSizeLimitMiddleware,
        max_size=settings.MAX_REQUEST_SIZE_MB * 1024 * 1024,
    )
    # When credentials are needed, we must specify exact origins (not "*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    # Prometheus metrics at /metrics (enabled with ENABLE_METRICS=true)
    Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        excluded_handlers=["/health", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False)

    @app.get("/health", response_model=HealthResponse)
    @limiter.exempt
    async def health_check(request: Request):
        """
        Returns 503 when the database is unreachable.
        """
        db_healthy = await request.app.state.database.check_connection()
        response = HealthResponse(
            status="healthy" if db_healthy else "unhealthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=get_full_version(),
            environment=settings.ENVIRONMENT,
            checks={"database": db_healthy},
        )
        if not db_healthy:
            logger.warning("Health check failed: database unreachable")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=response.model_dump(by_alias=True),
            )
        return response

    @app.get("/")
    @limiter.exempt
    async def root():
        return {"success": True, "message": f"Welcome to the {settings.PROJECT_NAME} API"}

    return app


app = create_app()
