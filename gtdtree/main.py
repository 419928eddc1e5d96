"""
GTD Tree Service - REST API over the item hierarchy.

Main entry point. All initialization logic is in app/factory.py.
"""
import logging

import uvicorn

from gtdtree.app import create_app
from gtdtree.config import Settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = Settings.from_env()
    app = create_app(settings)

    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=settings.service_port,
        log_level=settings.log_level.lower(),
        access_log=True,
        # Graceful shutdown settings
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
    server = uvicorn.Server(config)

    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        # Cleanup is handled by the lifespan context manager in app/factory.py
        logger.info("Service stopped")


if __name__ == "__main__":
    main()
