"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest

from auth0_actions.config import settings
from auth0_actions.database import db_manager

# Metrics
REQUEST_COUNT = Counter(
    "auth0_actions_http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)
REQUEST_DURATION = Histogram(
    "auth0_actions_http_request_duration_seconds", "HTTP request duration", ["method", "endpoint"]
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting Auth0 Actions Manager", version=settings.app_version)

    try:
        await db_manager.initialize()
        logger.info(
            "Application startup completed",
            management_configured=settings.management_configured,
            deployment_configured=settings.deployment_configured,
        )
        yield
    finally:
        logger.info("Shutting down Auth0 Actions Manager")
        await db_manager.close()


async def management_health_check() -> Dict[str, Any]:
    """Check Management API connectivity with the environment credentials."""
    if not settings.management_configured:
        return {"status": "disabled", "error": None}

    from auth0_actions.management.dependencies import _management_client

    result = await _management_client().test_connection()
    return {
        "status": "healthy" if result.success else "unhealthy",
        "error": result.error,
    }


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Deploy and bind Auth0 post-login actions through the Management API",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Configure CORS
    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_credentials,
            allow_methods=settings.cors_methods,
            allow_headers=settings.cors_headers,
        )

    # Request logging and metrics middleware
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next) -> Response:
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code,
        ).inc()

        REQUEST_DURATION.labels(
            method=request.method,
            endpoint=request.url.path,
        ).observe(duration)

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=duration,
        )

        return response

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        checks = {
            "database": await db_manager.health_check(),
            "auth0": await management_health_check(),
        }

        overall_healthy = all(
            check["status"] in ("healthy", "disabled") for check in checks.values()
        )

        return {
            "status": "healthy" if overall_healthy else "degraded",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": time.time(),
            "checks": checks,
        }

    if settings.metrics_enabled:
        @app.get("/metrics")
        async def metrics():
            """Prometheus metrics endpoint."""
            return Response(
                generate_latest(),
                media_type="text/plain",
            )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        if settings.is_development:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal Server Error",
                    "detail": str(exc),
                    "type": type(exc).__name__,
                },
            )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error"},
        )

    # Include routers
    from auth0_actions.credentials.routes import router as settings_router
    from auth0_actions.management.routes import router as actions_router

    app.include_router(actions_router, prefix="/api/auth0")
    app.include_router(settings_router, prefix="/api/auth0")

    return app


# Create the app instance
app = create_app()
