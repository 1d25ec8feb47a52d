"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from midnight_admin import __version__
from midnight_admin.api.actions.router import router as actions_router
from midnight_admin.api.health import router as health_router
from midnight_admin.api.middleware.logging import RequestLoggingMiddleware
from midnight_admin.api.middleware.request_id import RequestIDMiddleware
from midnight_admin.common.errors import register_error_handlers
from midnight_admin.common.events import TemplateChangedEvent, event_bus
from midnight_admin.common.logging import configure_logging
from midnight_admin.config import get_settings
from midnight_admin.core.cache.template_cache import close_template_cache, get_template_cache
from midnight_admin.db.session import async_session_factory, engine
from midnight_admin.providers.http import close_http_client

logger = structlog.stdlib.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    log = structlog.stdlib.get_logger()
    await log.ainfo(
        "midnight.startup",
        version=__version__,
        env=settings.env,
        database=settings.database.url.split("@")[-1],
        cache_enabled=settings.cache.enabled,
        llm_configured=bool(settings.llm.api_key),
        email_configured=bool(settings.email.api_key),
    )

    cache = get_template_cache()
    if cache is not None:
        event_bus.subscribe(TemplateChangedEvent, cache.on_template_changed)

    app.state.settings = settings

    yield

    if cache is not None:
        event_bus.unsubscribe(TemplateChangedEvent, cache.on_template_changed)
    await close_template_cache()
    await close_http_client()
    await engine.dispose()
    await log.ainfo("midnight.shutdown")


def create_app() -> FastAPI:
    """Application factory, called by Uvicorn."""
    settings = get_settings()

    app = FastAPI(
        title="Midnight Protocol Admin API",
        description="Versioned prompt and email templates, prompt runs, test sends and LLM call logs.",
        version=__version__,
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
        lifespan=lifespan,
    )

    # LLM call logs are written outside the request session
    app.state.db_session_factory = async_session_factory

    # Middleware (order matters; the last one added is outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.env == "development" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(actions_router)
    app.include_router(health_router)

    return app
