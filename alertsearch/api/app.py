"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics,
health checks, and the alert search routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from alertsearch import __version__
from alertsearch.api.dependencies import build_services
from alertsearch.api.routes import router
from alertsearch.config import get_settings
from alertsearch.exceptions import AlertSearchError, ErrorCode
from alertsearch.logging_config import get_logger, setup_logging
from alertsearch.observability import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds backend services on startup unless already installed on
    ``app.state.services`` and closes the ones it built on shutdown.
    """
    # Startup
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting alert search",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    owned = None
    if getattr(app.state, "services", None) is None:
        owned = build_services(settings)
        app.state.services = owned

    yield

    # Shutdown
    logger.info("Shutting down alert search")
    if owned is not None:
        await owned.aclose()
        app.state.services = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Alert Search",
        description="Semantic and geo-aware retrieval over active alerts",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.services = None

    app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(AlertSearchError, alert_search_exception_handler)

    # Register routes
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])
    app.include_router(router)

    return app


async def alert_search_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle AlertSearchError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, AlertSearchError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    status_code = _get_status_code(exc.code.value)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(),
    )


def _get_status_code(error_code: str) -> int:
    """Map error code to HTTP status code."""
    # Validation errors -> 400
    if error_code in ("ALR-1002", "ALR-4000"):
        return 400

    # Not found errors -> 404
    if error_code in ("ALR-2001", "ALR-4002"):
        return 404

    # Rate limit -> 429
    if error_code in ("ALR-3001", "ALR-5002"):
        return 429

    # Upstream unavailable -> 503
    if error_code in ("ALR-2000", "ALR-3000", "ALR-4001", "ALR-5003", "ALR-6000"):
        return 503

    # Timeout -> 504
    if error_code in ("ALR-5001",):
        return 504

    # Default to 500 for internal errors
    return 500


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness probe.

    Returns:
        Readiness status with component checks.
    """
    checks: dict[str, str] = {
        "config": "ok",
        "services": "ok" if getattr(request.app.state, "services", None) else "pending",
    }

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
