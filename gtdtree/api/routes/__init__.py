"""
API route modules.
"""
from .items import router as items_router
from .tree import router as tree_router
from .tags import router as tags_router
from .timers import router as timers_router
from .health import router as health_router

__all__ = ['items_router', 'tree_router', 'tags_router', 'timers_router', 'health_router']
