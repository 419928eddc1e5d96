"""
Service container for dependency injection.
Centralizes service initialization and provides access to all services.
"""
import logging
from typing import Optional

from gtdtree.config import Settings
from gtdtree.database import ItemDatabase
from gtdtree.services import TreeService, ItemService, TagService, TimeService

logger = logging.getLogger(__name__)

# Global service instance
_service_instance: Optional['ServiceContainer'] = None


class ServiceContainer:
    """Container for all application services."""

    def __init__(self, settings: Optional[Settings] = None, db: Optional[ItemDatabase] = None):
        self.settings = settings or Settings.from_env()
        self.db = db or ItemDatabase(settings=self.settings)

        self.tree = TreeService(self.db, self.settings)
        self.items = ItemService(self.db, self.settings)
        self.tags = TagService(self.db)
        self.timers = TimeService(self.db)
        logger.info(f"Services initialized with database {self.db.db_path}")


def get_services() -> ServiceContainer:
    """Get the global service container instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ServiceContainer()
    return _service_instance


def set_services(container: Optional[ServiceContainer]) -> None:
    """Replace the global service container (None resets it)."""
    global _service_instance
    _service_instance = container


def get_db() -> ItemDatabase:
    """Get the database instance from the service container."""
    return get_services().db
