"""
Service layer - business logic independent of the HTTP framework.
"""
from .tree_service import TreeService
from .item_service import ItemService
from .tag_service import TagService
from .time_service import TimeService

__all__ = ['TreeService', 'ItemService', 'TagService', 'TimeService']
