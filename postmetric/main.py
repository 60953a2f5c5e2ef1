"""
FastAPI application entrypoint for the PostMetric backend.
"""

from __future__ import annotations

from fastapi import FastAPI

from postmetric.api.routes import handle_postmetric_error
from postmetric.api.routes import router as api_router
from postmetric.core.config import get_settings
from postmetric.core.errors import PostMetricError
from postmetric.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="PostMetric",
        version="0.1.0",
        description="Link an X account and sync post engagement metrics.",
    )
    app.include_router(api_router, prefix="/api")
    app.add_exception_handler(PostMetricError, handle_postmetric_error)
    return app


app = create_app()

__all__ = ["app", "create_app"]
