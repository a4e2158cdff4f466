"""Application factory for the PayLog guard service."""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import guard_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="PayLog Guard",
        description=(
            "Rate limit checks for PayLog's login and password reset flows. "
            "The authentication layer calls these endpoints with the user's email "
            "before verifying credentials and rejects the attempt on HTTP 429."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(guard_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
