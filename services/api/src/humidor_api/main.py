"""FastAPI application factory and main entry point."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from humidor_core.config import Settings, get_settings
from humidor_core.db.connection import DatabaseConnection
from humidor_core.logging.config import configure_logging, get_logger
from humidor_core.subscriptions import (
    DocumentBackend,
    EntitlementService,
    InMemoryDocumentBackend,
    SqlDocumentBackend,
    SubscriptionStore,
)

from .middleware import CorrelationIdMiddleware
from .routes import billing, health, subscription

logger = get_logger(__name__)

DB_INIT_ATTEMPTS = 30
DB_INIT_RETRY_DELAY_SECONDS = 2


def build_entitlement_service(settings: Settings, backend: DocumentBackend) -> EntitlementService:
    """Wire the store and service for one application instance."""
    store = SubscriptionStore(
        backend,
        app_id=settings.subscription.app_id,
        load_timeout=settings.subscription.load_timeout_seconds,
    )
    return EntitlementService(store, renewal_days=settings.subscription.renewal_days)


async def _init_database(db: DatabaseConnection) -> bool:
    """Connect and create tables, retrying while the database starts up."""
    for attempt in range(1, DB_INIT_ATTEMPTS + 1):
        try:
            await db.connect()
            await db.create_tables()
            logger.info("Database connection established and tables created")
            return True
        except (SQLAlchemyError, OSError) as e:
            if attempt == DB_INIT_ATTEMPTS:
                logger.error("Failed to initialize database", attempts=attempt, error=str(e))
                return False
            logger.warning(
                "Database initialization failed, retrying",
                attempt=attempt,
                max_attempts=DB_INIT_ATTEMPTS,
                retry_in_seconds=DB_INIT_RETRY_DELAY_SECONDS,
                error=str(e),
            )
            await asyncio.sleep(DB_INIT_RETRY_DELAY_SECONDS)
    return False


def create_app(
    settings: Settings | None = None,
    entitlements: EntitlementService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; read from the environment if None.
        entitlements: Pre-built service to serve. When None, the service is
            built at start-up from ``settings.subscription.backend``.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.service_name,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting application",
            service=settings.service_name,
            version=settings.service_version,
            environment=settings.environment,
        )
        app.state.db = None
        app.state.entitlements = entitlements

        if app.state.entitlements is None:
            if settings.subscription.backend == "memory":
                backend: DocumentBackend = InMemoryDocumentBackend()
            else:
                db = DatabaseConnection(
                    url=settings.database.url or None,
                    pool_size=settings.database.pool_size,
                    max_overflow=settings.database.max_overflow,
                    echo=settings.database.echo,
                )
                app.state.db = db
                # Reads degrade to FREE while the database is unavailable
                await _init_database(db)
                backend = SqlDocumentBackend(db)
            app.state.entitlements = build_entitlement_service(settings, backend)

        yield

        logger.info("Shutting down application")
        if app.state.db is not None:
            await app.state.db.close()

    app = FastAPI(
        title="Humidor Hub Entitlements API",
        description="Subscription tiers, usage limits and entitlement checks for Humidor Hub",
        version=settings.service_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        openapi_url="/openapi.json" if settings.api.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # First added = last executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(subscription.router)
    app.include_router(billing.router)

    return app


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    correlation_id = getattr(request.state, "correlation_id", None)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "correlation_id": correlation_id,
            }
        },
        headers={"X-Correlation-ID": correlation_id} if correlation_id else {},
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle request validation errors."""
    correlation_id = getattr(request.state, "correlation_id", None)

    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": 422,
                "message": "Validation Error",
                "details": errors,
                "correlation_id": correlation_id,
            }
        },
        headers={"X-Correlation-ID": correlation_id} if correlation_id else {},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.exception(
        "Unhandled exception",
        correlation_id=correlation_id,
        path=request.url.path,
        method=request.method,
    )

    content = {
        "code": 500,
        "message": "Internal Server Error",
        "correlation_id": correlation_id,
    }
    if request.app.state.settings.is_development:
        content["detail"] = f"{type(exc).__name__}: {exc}"

    return JSONResponse(
        status_code=500,
        content={"error": content},
        headers={"X-Correlation-ID": correlation_id} if correlation_id else {},
    )


def run() -> None:
    """Serve the API with uvicorn using host and port from settings."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "humidor_api.main:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
    )
