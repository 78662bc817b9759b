"""Resource Links API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ResourceLinksError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, relation table and pub/sub hub initialized on startup via lifespan

Design Decisions:
    - health and events routers registered before associations: their fixed
      prefixes never reach the /{model}/... patterns
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resource_links.api.error_handlers import register_error_handlers
from resource_links.api.routes import associations, events, health
from resource_links.config import get_settings
from resource_links.infrastructure.database import init_db
from resource_links.infrastructure.model_registry import get_model_registry
from resource_links.infrastructure.observability import setup_logging
from resource_links.infrastructure.pubsub import init_pubsub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    get_model_registry()
    if settings.pubsub_enabled:
        init_pubsub(settings.pubsub_queue_size)
    logger.info("Resource Links API started")
    yield
    logger.info("Resource Links API shutting down")


app = FastAPI(
    title="Resource Links API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(events.router)
app.include_router(associations.router)

register_error_handlers(app)
