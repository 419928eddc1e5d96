"""
Storage interface - defines the row-level contract the tree engine relies on.

Implementations are bound to one open connection for the duration of a single
operation; see ItemDatabase.session() / ItemDatabase.transaction().
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Iterable, Set


class RowStore(ABC):
    """Abstract interface for item, tag and time entry rows."""

    # Item operations
    @abstractmethod
    def get_item(self, item_id: str, include_deleted: bool = False) -> Optional[Dict[str, Any]]:
        """Get an item row by ID (live rows only unless include_deleted)."""
        pass

    @abstractmethod
    def get_items_by_ids(self, item_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Get live item rows keyed by ID; missing IDs are left out."""
        pass

    @abstractmethod
    def insert_item(self, row: Dict[str, Any]) -> None:
        """Insert a complete item row."""
        pass

    @abstractmethod
    def update_item(self, item_id: str, **fields: Any) -> None:
        """Update fields of an item and mark it as needing push."""
        pass

    @abstractmethod
    def list_children(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        """List live children of a parent (None for root items) ordered by sort_order."""
        pass

    @abstractmethod
    def scan_structure(self) -> List[Dict[str, Any]]:
        """Return id, parent_id, sort_order, item_type and title of every live item."""
        pass

    @abstractmethod
    def max_child_sort_order(self, parent_id: Optional[str]) -> Optional[int]:
        """Highest sort_order among live children of a parent, or None."""
        pass

    @abstractmethod
    def tombstone_items(self, item_ids: Iterable[str], deleted_at: int) -> int:
        """Set deleted_at on the given items and return how many were changed."""
        pass

    @abstractmethod
    def count_live_items(self) -> int:
        pass

    # Filtered item scans
    @abstractmethod
    def available_tasks(self, now: int, parent_id: Optional[str] = None, include_deferred: bool = False) -> List[Dict[str, Any]]:
        """Incomplete live tasks whose earliest start time is unset or not after now."""
        pass

    @abstractmethod
    def deferred_tasks(self, now: int, parent_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Incomplete live tasks whose earliest start time is after now."""
        pass

    @abstractmethod
    def items_due_between(self, start: Optional[int], end: int, include_completed: bool = False) -> List[Dict[str, Any]]:
        """Live items with a due date in [start, end); no lower bound when start is None."""
        pass

    @abstractmethod
    def search_items(self, pattern: str, include_completed: bool = True) -> List[Dict[str, Any]]:
        """Live items whose title or notes contain the pattern, newest first."""
        pass

    @abstractmethod
    def incomplete_tasks_by_age(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def completed_tasks(self, since: Optional[int] = None) -> List[Dict[str, Any]]:
        pass

    # Tag operations
    @abstractmethod
    def get_tag(self, tag_id: str) -> Optional[Dict[str, Any]]:
        """Get a live tag by ID."""
        pass

    @abstractmethod
    def find_tag_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Find a live tag by case-insensitive name, optionally ignoring one tag ID."""
        pass

    @abstractmethod
    def list_tags(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def insert_tag(self, tag_id: str, name: str, color: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def update_tag(self, tag_id: str, **fields: Any) -> None:
        """Update fields of a tag and mark it as needing push."""
        pass

    @abstractmethod
    def get_item_tag(self, item_id: str, tag_id: str) -> Optional[Dict[str, Any]]:
        """Get an association row, soft-deleted or not."""
        pass

    @abstractmethod
    def soft_delete_item_tag(self, item_id: str, tag_id: str, now: int) -> bool:
        """Soft-delete a live association; False when there was none."""
        pass

    @abstractmethod
    def soft_delete_tag_associations(self, tag_id: str, now: int) -> int:
        pass

    @abstractmethod
    def list_tags_for_item(self, item_id: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_live_tag_ids(self, item_id: str) -> List[str]:
        """IDs of the live tags attached to an item."""
        pass

    @abstractmethod
    def insert_item_tag(self, item_id: str, tag_id: str, now: int) -> None:
        """Attach a tag to an item (reviving a soft-deleted association)."""
        pass

    @abstractmethod
    def items_with_tag(self, tag_id: str, item_ids: Optional[Iterable[str]] = None) -> Set[str]:
        """Item IDs carrying a tag through a live association, optionally restricted."""
        pass

    @abstractmethod
    def items_with_all_tags(self, tag_ids: List[str], include_completed: bool = False) -> List[Dict[str, Any]]:
        """Live items carrying every one of the given tags."""
        pass

    # Time entry operations
    @abstractmethod
    def insert_time_entry(self, entry_id: str, item_id: str, started_at: int) -> None:
        pass

    @abstractmethod
    def get_time_entry(self, entry_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def update_time_entry(self, entry_id: str, **fields: Any) -> None:
        pass

    @abstractmethod
    def list_time_entries(self, item_id: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def latest_active_entry(self, item_id: str) -> Optional[Dict[str, Any]]:
        """Most recently started entry of an item that has not ended."""
        pass

    @abstractmethod
    def active_time_entries(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def completed_duration(self, item_id: str) -> int:
        """Sum of durations of the ended entries of an item."""
        pass
