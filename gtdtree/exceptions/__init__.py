"""
Domain exceptions raised by the item tree store and its services.
"""
from typing import Optional


class GTDTreeError(Exception):
    """Base class for all item tree errors."""


class NotFoundError(GTDTreeError, LookupError):
    """A referenced id does not exist among live rows."""

    def __init__(self, entity: str, entity_id: Optional[str]):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class InvalidRelationError(GTDTreeError, ValueError):
    """A structural request does not match the current shape of the tree."""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class TypeMismatchError(GTDTreeError):
    """An operation was applied to an item of the wrong kind."""

    def __init__(self, item_id: str, item_type: str, required_type: str):
        self.item_id = item_id
        self.item_type = item_type
        self.required_type = required_type
        super().__init__(
            f"Item {item_id} is a {item_type}; only items of type {required_type} support this operation"
        )


class ConfigurationMissingError(GTDTreeError):
    """A required sentinel folder or configured tag could not be located."""

    def __init__(self, name: str, detail: Optional[str] = None):
        self.name = name
        message = f"Required '{name}' is not configured"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class StorageUnavailableError(GTDTreeError):
    """The underlying database is unreachable, locked or corrupt. Safe to retry."""

    def __init__(self, message: str, db_path: Optional[str] = None):
        self.db_path = db_path
        super().__init__(message)
