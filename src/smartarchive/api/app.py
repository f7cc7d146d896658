"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from smartarchive.api.routes import classify, health
from smartarchive.core.config import AppSettings
from smartarchive.core.logging import configure_logging
from smartarchive.services.classification import ClassificationService, build_service


def create_app(service: ClassificationService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A pre-built service can be passed in; otherwise one is wired from
    AppSettings when the application starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = AppSettings()
        configure_logging(settings.log_level, json_output=settings.log_json)
        app.state.settings = settings
        app.state.service = service if service is not None else build_service(settings)
        yield
        await app.state.service.aclose()

    app = FastAPI(
        title="SmartArchive Classification Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(classify.router)
    return app
