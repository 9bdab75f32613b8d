"""FastAPI application entry point.

Creates the app: security headers, CORS for the frontend origin, the
error envelope handlers, the /api/v1 router, /health, and a lifespan
that runs the expired magic link reaper.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.database import async_session_factory
from app.core.errors import APIError
from app.core.responses import ErrorDetail, ErrorResponse
from app.repositories.user_repository import sql_repository_scope
from app.services.expiry_reaper import ExpiryReaper

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to every response.

    Headers added:
    - X-Frame-Options / frame-ancestors: clickjacking
    - X-Content-Type-Options: MIME sniffing
    - Referrer-Policy: unless the endpoint already set a stricter one
    - Cache-Control: no-store on /api/ (session cookies, user data)
    - Content-Security-Policy: the API never serves HTML
    - Strict-Transport-Security: production only
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        # /auth/verify sets no-referrer; do not loosen it
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )

        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError in the error envelope with its status code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        ).model_dump(),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI request validation errors to 400 VALIDATION_ERROR.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse with field-level details.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details=[
                    {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                    for e in exc.errors()
                ],
            )
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log, then return a bare 500."""
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
            )
        ).model_dump(),
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Start the expired link reaper on startup, stop it on shutdown."""
    reaper: ExpiryReaper | None = None
    if settings.reaper_enabled:
        reaper = ExpiryReaper(
            sql_repository_scope(async_session_factory),
            interval_seconds=settings.reaper_interval_seconds,
        )
        reaper.start()
        logger.info(
            "reaper_enabled", interval_seconds=settings.reaper_interval_seconds
        )
    try:
        yield
    finally:
        if reaper is not None:
            await reaper.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Magic Link Auth API",
        version="1.0.0",
        description="Passwordless authentication via single-use email links",
        lifespan=lifespan,
    )

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(v1_router, prefix="/api/v1")

    # Health check endpoint (outside versioned API)
    @app.get("/health")
    def health_check() -> dict:
        """Liveness probe: {"status": "healthy"} while the process serves."""
        return {"status": "healthy"}

    return app


# Used by uvicorn: uvicorn app.main:app
app = create_app()
