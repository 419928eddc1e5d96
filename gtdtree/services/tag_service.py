"""
Tag service - business logic for tag operations.
This layer contains no HTTP framework dependencies.
Handles all business logic including validation and error handling.
"""
import logging
from typing import Optional, Dict, Any, List, Callable

from gtdtree.database import ItemDatabase
from gtdtree.exceptions import NotFoundError, InvalidRelationError
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tree import TreeIndex, Sentinel, SentinelDirectory, TraversalEngine
from gtdtree.tree.cloning import new_item_id

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    if not name or not name.strip():
        raise ValueError("Tag name cannot be empty or whitespace")
    return name.strip()


class TagService:
    """Service for tag business logic."""

    def __init__(
        self,
        db: ItemDatabase,
        clock: Callable[[], int] = now_epoch,
        id_factory: Callable[[], str] = new_item_id,
    ):
        """Initialize tag service with database dependency."""
        self.db = db
        self.clock = clock
        self.id_factory = id_factory

    def _require_tag(self, store: RowStore, tag_id: str) -> Dict[str, Any]:
        tag = store.get_tag(tag_id)
        if tag is None:
            raise NotFoundError("tag", tag_id)
        return tag

    def _require_item(self, store: RowStore, item_id: str) -> Dict[str, Any]:
        item = store.get_item(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    def list_tags(self) -> List[Dict[str, Any]]:
        """List all live tags by name."""
        with self.db.session() as store:
            return store.list_tags()

    def get_tag(self, tag_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a tag by ID.

        Args:
            tag_id: Tag ID

        Returns:
            Tag data as dictionary, or None if not found
        """
        with self.db.session() as store:
            return store.get_tag(tag_id)

    def get_tag_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        with self.db.session() as store:
            return store.find_tag_by_name(name)

    def create_tag(self, name: str, color: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a new tag.

        Args:
            name: Tag name, unique among live tags ignoring case
            color: Optional display color

        Returns:
            Created tag data as dictionary

        Raises:
            ValueError: If tag name is empty or whitespace
            InvalidRelationError: If a tag with that name already exists
        """
        name = _clean_name(name)
        with self.db.transaction() as store:
            existing = store.find_tag_by_name(name)
            if existing is not None:
                raise InvalidRelationError(f"Tag '{existing['name']}' already exists (id {existing['id']})")
            tag_id = self.id_factory()
            store.insert_tag(tag_id, name, color)
            logger.info(f"Created tag {tag_id} '{name}'")
            return store.get_tag(tag_id)

    def rename_tag(self, tag_id: str, new_name: str) -> Dict[str, Any]:
        """
        Rename a tag.

        Raises:
            NotFoundError: If the tag does not exist
            InvalidRelationError: If another tag already uses the name
        """
        new_name = _clean_name(new_name)
        with self.db.transaction() as store:
            tag = self._require_tag(store, tag_id)
            clash = store.find_tag_by_name(new_name, exclude_id=tag_id)
            if clash is not None:
                raise InvalidRelationError(f"Tag '{clash['name']}' already exists (id {clash['id']})")
            store.update_tag(tag_id, name=new_name)
            logger.info(f"Renamed tag {tag_id} from '{tag['name']}' to '{new_name}'")
            return store.get_tag(tag_id)

    def update_tag_color(self, tag_id: str, color: Optional[str]) -> Dict[str, Any]:
        with self.db.transaction() as store:
            self._require_tag(store, tag_id)
            store.update_tag(tag_id, color=color)
            return store.get_tag(tag_id)

    def delete_tag(self, tag_id: str) -> Dict[str, Any]:
        """
        Soft-delete a tag together with all of its item associations.

        Returns:
            The deleted tag and the number of detached items
        """
        with self.db.transaction() as store:
            tag = self._require_tag(store, tag_id)
            now = self.clock()
            detached = store.soft_delete_tag_associations(tag_id, now)
            store.update_tag(tag_id, deleted_at=now)
            logger.info(f"Deleted tag {tag_id} '{tag['name']}' ({detached} item associations removed)")
            return {"tag": tag, "detached_items": detached}

    def add_tag_to_item(self, item_id: str, tag_id: str) -> Dict[str, Any]:
        """
        Attach a tag to an item. Re-adding a removed tag revives the association.

        Returns:
            Dict with "added" False when the tag was already attached
        """
        with self.db.transaction() as store:
            item = self._require_item(store, item_id)
            tag = self._require_tag(store, tag_id)
            association = store.get_item_tag(item_id, tag_id)
            if association is not None and association["deleted_at"] is None:
                return {"item_id": item_id, "tag": tag, "added": False}
            store.insert_item_tag(item_id, tag_id, self.clock())
            logger.info(f"Assigned tag {tag_id} '{tag['name']}' to item {item_id} '{item['title']}'")
            return {"item_id": item_id, "tag": tag, "added": True}

    def remove_tag_from_item(self, item_id: str, tag_id: str) -> Dict[str, Any]:
        """Detach a tag from an item (soft delete of the association)."""
        with self.db.transaction() as store:
            self._require_item(store, item_id)
            tag = self._require_tag(store, tag_id)
            removed = store.soft_delete_item_tag(item_id, tag_id, self.clock())
            if removed:
                logger.info(f"Removed tag {tag_id} '{tag['name']}' from item {item_id}")
            return {"item_id": item_id, "tag": tag, "removed": removed}

    def get_item_tags(self, item_id: str) -> List[Dict[str, Any]]:
        with self.db.session() as store:
            self._require_item(store, item_id)
            return store.list_tags_for_item(item_id)

    def _items_with_all(
        self,
        store: RowStore,
        tag_ids: List[str],
        include_completed: bool,
        include_archive: bool,
    ) -> List[Dict[str, Any]]:
        rows = store.items_with_all_tags(tag_ids, include_completed=include_completed)
        index = TreeIndex.load(store)
        directory = SentinelDirectory(index, self.db.settings)
        hidden = [Sentinel.TRASH] if include_archive else [Sentinel.TRASH, Sentinel.ARCHIVE]
        traversal = TraversalEngine(index)
        roots = list(directory.ids(*hidden).values())
        return [
            row for row in rows
            if not any(traversal.is_within(row["id"], root) for root in roots)
        ]

    def get_items_by_tag_names(
        self,
        names: List[str],
        include_completed: bool = False,
        include_archive: bool = False,
    ) -> Dict[str, Any]:
        """
        Items carrying every one of the named tags.

        Raises:
            NotFoundError: If any of the names is not a live tag
        """
        if not names:
            raise ValueError("At least one tag name is required")
        with self.db.session() as store:
            tags = []
            for name in names:
                tag = store.find_tag_by_name(name.strip())
                if tag is None:
                    raise NotFoundError("tag", name)
                tags.append(tag)
            items = self._items_with_all(store, [tag["id"] for tag in tags], include_completed, include_archive)
            return {"tags": tags, "items": items}

    def get_items_by_tag_ids(
        self,
        tag_ids: List[str],
        include_completed: bool = False,
        include_archive: bool = False,
    ) -> Dict[str, Any]:
        """Items carrying every one of the given tag ids."""
        if not tag_ids:
            raise ValueError("At least one tag id is required")
        with self.db.session() as store:
            tags = [self._require_tag(store, tag_id) for tag_id in tag_ids]
            items = self._items_with_all(store, list(tag_ids), include_completed, include_archive)
            return {"tags": tags, "items": items}
