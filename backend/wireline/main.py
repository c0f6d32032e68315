import traceback
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from wireline.api.routes import activities, admin, auth, reports, tools
from wireline.core.config import settings
from wireline.core.database import SessionLocal
from wireline.core.logging import (
    generate_request_id,
    get_logger,
    set_request_id,
    setup_logging,
)
from wireline.core.rate_limiting import get_limiter
from wireline.services.cleanup import CleanupScheduler
from wireline.services.email import EmailService

# Configure logging before anything else
setup_logging(
    debug=settings.DEBUG,
    json_logs=settings.LOG_JSON_FORMAT,
    level=settings.LOG_LEVEL,
)

logger = get_logger(__name__)

# Initialize Sentry for error tracking and performance monitoring
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        # Don't send PII
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    scheduler = CleanupScheduler(SessionLocal, EmailService())
    app.state.cleanup_scheduler = scheduler
    if settings.CLEANUP_SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("User cleanup service disabled by configuration")

    yield

    scheduler.stop()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Tool inventory tracking for wireline operations",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure rate limiting
limiter = get_limiter()
app.state.limiter = limiter


def _cors_headers(request: Request) -> dict[str, str]:
    origin = request.headers.get("origin")
    headers: dict[str, str] = {}
    if origin and origin in settings.CORS_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    """Handle rate limit exceeded errors with CORS headers."""
    rate_exc = exc if isinstance(exc, RateLimitExceeded) else None
    detail = str(rate_exc.detail) if rate_exc else "Rate limit exceeded"

    return JSONResponse(
        status_code=429,
        content={"error": "rate_limit_exceeded", "detail": detail},
        headers=_cors_headers(request),
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request data as 400."""
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request data", "errors": jsonable_errors(exc)},
        headers=_cors_headers(request),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    return [
        {
            "loc": ".".join(str(part) for part in error.get("loc", ())),
            "msg": str(error.get("msg", "")),
        }
        for error in exc.errors()
    ]


# Global exception handler to ensure CORS headers on errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions and ensure CORS headers are present."""
    logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={"detail": str(exc) if settings.DEBUG else "Internal server error"},
        headers=_cors_headers(request),
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request correlation IDs for log tracing."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Reuse an upstream request ID (load balancer) when present
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        logger.info(f"Request started: {request.method} {request.url.path}")

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
        )
        return response


app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(tools.router, prefix="/api")
app.include_router(activities.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(admin.router, prefix="/api")


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.APP_VERSION}


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Wireline Inventory API", "docs": "/docs"}
