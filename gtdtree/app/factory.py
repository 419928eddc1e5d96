"""
Application factory - creates and configures the FastAPI application.
This isolates all initialization logic from main.py.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from gtdtree.api.routes import items_router, tree_router, tags_router, timers_router, health_router
from gtdtree.config import Settings
from gtdtree.dependencies.services import ServiceContainer, get_services, set_services
from gtdtree.exceptions.handlers import setup_exception_handlers
from gtdtree.logging_setup import setup_logging
from gtdtree.monitoring import MetricsMiddleware
from gtdtree.tracing import setup_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    logger.info("Application starting up...")

    # Opening the database creates the schema on first use
    services = get_services()
    logger.info(f"Services initialized (database {services.db.db_path})")

    try:
        setup_tracing()
        logger.info("Distributed tracing enabled")
    except Exception:
        logger.warning("Failed to initialize tracing, continuing without it", exc_info=True)

    yield

    logger.info("Application shutting down...")


def create_app(settings: Optional[Settings] = None, services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        services: Pre-built service container (tests pass one bound to a temp database)

    Returns:
        Configured FastAPI app instance ready to run.
    """
    settings = settings or (services.settings if services is not None else Settings.from_env())
    setup_logging(settings.log_level)
    if services is not None:
        set_services(services)

    app = FastAPI(
        title="GTD Tree Service",
        description="Hierarchical task and project store",
        version="0.1.0",
        lifespan=lifespan
    )

    app.add_middleware(MetricsMiddleware)
    setup_exception_handlers(app)

    app.include_router(items_router)
    app.include_router(tree_router)
    app.include_router(tags_router)
    app.include_router(timers_router)
    app.include_router(health_router)

    logger.info("FastAPI app created and configured")
    return app
