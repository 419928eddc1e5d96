"""
Item service - creation, field updates and filtered reads of items.
This layer contains no HTTP framework dependencies.
"""
import logging
from typing import Optional, Dict, Any, List, Set, Callable

from gtdtree.config import Settings
from gtdtree.database import ItemDatabase
from gtdtree.exceptions import NotFoundError, TypeMismatchError
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tracing import trace_span
from gtdtree.tree import TreeIndex, TreeNode, TraversalEngine, OrderMaintainer, Sentinel, SentinelDirectory
from gtdtree.tree.cloning import new_item_id
from gtdtree.services.tree_service import normalize_parent_id

logger = logging.getLogger(__name__)

DEFAULT_NODE_TREE_DEPTH = 10


def _require_title(title: str) -> str:
    if not title or not title.strip():
        raise ValueError("Title cannot be empty or whitespace")
    return title.strip()


class ItemService:
    """Service for item business logic."""

    def __init__(
        self,
        db: ItemDatabase,
        settings: Optional[Settings] = None,
        clock: Callable[[], int] = now_epoch,
        id_factory: Callable[[], str] = new_item_id,
    ):
        """Initialize item service with database dependency."""
        self.db = db
        self.settings = settings or db.settings
        self.clock = clock
        self.id_factory = id_factory

    # ---- helpers ----

    def _require_item(self, store: RowStore, item_id: str) -> Dict[str, Any]:
        row = store.get_item(item_id)
        if row is None:
            raise NotFoundError("item", item_id)
        return row

    def _excluded_ids(self, index: TreeIndex, *sentinels: Sentinel) -> Set[str]:
        """Sentinel folders and everything below them."""
        directory = SentinelDirectory(index, self.settings)
        traversal = TraversalEngine(index)
        excluded: Set[str] = set()
        for sentinel_id in directory.ids(*sentinels).values():
            excluded.add(sentinel_id)
            excluded |= traversal.descendants(sentinel_id)
        return excluded

    def _parent_filter(self, parent_id: Optional[str]):
        """Split a parent argument into a store filter and a root-items-only flag."""
        normalized = normalize_parent_id(parent_id)
        return normalized, parent_id is not None and normalized is None

    def _scope(self, index: TreeIndex, rows: List[Dict[str, Any]], root_id: Optional[str]) -> List[Dict[str, Any]]:
        """Keep only rows that lie below root_id (all rows when root_id is None)."""
        if root_id is None:
            return rows
        if root_id not in index:
            raise NotFoundError("item", root_id)
        traversal = TraversalEngine(index)
        return [row for row in rows if traversal.is_descendant_of(row["id"], root_id)]

    def _insert(
        self,
        store: RowStore,
        index: TreeIndex,
        title: str,
        parent_id: Optional[str],
        item_type: str,
        due_date: Optional[int] = None,
        earliest_start_time: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        ordering = OrderMaintainer(store, index, self.clock)
        now = self.clock()
        item_id = self.id_factory()
        position = ordering.append_position(parent_id)
        store.insert_item({
            "id": item_id,
            "title": title,
            "parent_id": parent_id,
            "sort_order": position,
            "created_at": now,
            "modified_at": now,
            "completed_at": None,
            "due_date": due_date,
            "earliest_start_time": earliest_start_time,
            "item_type": item_type,
            "notes": notes,
            "deleted_at": None,
        })
        index.add(TreeNode(id=item_id, parent_id=parent_id, sort_order=position, item_type=item_type, title=title))
        logger.info(f"Created {item_type} {item_id} under {parent_id or 'root'} at position {position}")
        return store.get_item(item_id)

    def _update_fields(self, item_id: str, operation: str, **fields: Any) -> Dict[str, Any]:
        with trace_span(f"item.{operation}", attributes={"item.id": item_id}):
            with self.db.transaction() as store:
                self._require_item(store, item_id)
                store.update_item(item_id, modified_at=self.clock(), **fields)
                logger.info(f"Updated {', '.join(fields)} of item {item_id}")
                return store.get_item(item_id)

    # ---- creation ----

    def add_to_inbox(
        self,
        title: str,
        item_type: Optional[str] = None,
        due_date: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Capture a new item as the last child of the Inbox folder.

        Raises:
            ValueError: If the title is empty
            ConfigurationMissingError: If there is no Inbox folder
        """
        title = _require_title(title)
        with trace_span("item.add_to_inbox"):
            with self.db.transaction() as store:
                index = TreeIndex.load(store)
                inbox_id = SentinelDirectory(index, self.settings).require(Sentinel.INBOX)
                return self._insert(
                    store, index, title, inbox_id, item_type or self.settings.task_kind,
                    due_date=due_date, notes=notes,
                )

    def create_item(
        self,
        title: str,
        parent_id: Optional[str],
        item_type: Optional[str] = None,
        due_date: Optional[int] = None,
        earliest_start_time: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create an item as the last child of parent_id (a root item when None).

        Raises:
            ValueError: If the title is empty
            NotFoundError: If the parent does not exist
        """
        title = _require_title(title)
        parent_id = normalize_parent_id(parent_id)
        with trace_span("item.create", attributes={"parent.id": parent_id}):
            with self.db.transaction() as store:
                index = TreeIndex.load(store)
                if parent_id is not None and parent_id not in index:
                    raise NotFoundError("parent item", parent_id)
                return self._insert(
                    store, index, title, parent_id, item_type or self.settings.task_kind,
                    due_date=due_date, earliest_start_time=earliest_start_time, notes=notes,
                )

    def create_root_item(self, title: str, item_type: Optional[str] = None, notes: Optional[str] = None) -> Dict[str, Any]:
        """Create a top-level item (a folder unless item_type says otherwise)."""
        return self.create_item(title, None, item_type or self.settings.folder_kind, notes=notes)

    # ---- reads ----

    def get_item(self, item_id: str) -> Dict[str, Any]:
        """Get a live item with its tags."""
        with self.db.session() as store:
            item = self._require_item(store, item_id)
            item["tags"] = store.list_tags_for_item(item_id)
            return item

    def get_children(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        parent_id = normalize_parent_id(parent_id)
        with self.db.session() as store:
            if parent_id is not None:
                self._require_item(store, parent_id)
            return store.list_children(parent_id)

    def get_root_items(self) -> List[Dict[str, Any]]:
        with self.db.session() as store:
            return store.list_children(None)

    def get_node_tree(self, root_id: Optional[str] = None, max_depth: Optional[int] = None) -> Dict[str, Any]:
        """
        Nested view of the hierarchy.

        Args:
            root_id: Subtree to render; None renders every root item
            max_depth: Levels below the top to include (capped by configuration)

        Returns:
            {"nodes": [...], "max_depth": n}; each node carries its row fields,
            a "children" list and "child_count" so truncated levels are visible.
        """
        depth = DEFAULT_NODE_TREE_DEPTH if max_depth is None else max_depth
        depth = max(0, min(depth, self.settings.node_tree_max_depth))
        root_id = normalize_parent_id(root_id)

        with trace_span("item.node_tree", attributes={"root.id": root_id, "max_depth": depth}):
            with self.db.session() as store:
                index = TreeIndex.load(store)
                traversal = TraversalEngine(index)
                if root_id is not None:
                    if root_id not in index:
                        raise NotFoundError("item", root_id)
                    tops = [index.get(root_id)]
                else:
                    tops = index.roots()

                layout = []
                for top in tops:
                    layout.append((top, 0))
                    layout.extend(traversal.walk(top.id, depth))
                rows = store.get_items_by_ids(node.id for node, _ in layout)

        built: Dict[str, Dict[str, Any]] = {}
        nodes: List[Dict[str, Any]] = []
        for node, level in layout:
            entry = dict(rows.get(node.id) or {"id": node.id, "title": node.title, "item_type": node.item_type})
            entry["child_count"] = len(index.children(node.id))
            entry["children"] = []
            built[node.id] = entry
            if level == 0:
                nodes.append(entry)
            else:
                built[node.parent_id]["children"].append(entry)
        return {"root_id": root_id, "max_depth": depth, "nodes": nodes}

    # ---- field updates ----

    def complete_task(self, item_id: str, completed: bool = True) -> Dict[str, Any]:
        """
        Mark a task completed (or not completed).

        Raises:
            NotFoundError: If the item does not exist
            TypeMismatchError: If the item is not a task
        """
        with trace_span("item.complete_task", attributes={"item.id": item_id, "completed": completed}):
            with self.db.transaction() as store:
                item = self._require_item(store, item_id)
                if item["item_type"] != self.settings.task_kind:
                    raise TypeMismatchError(item_id, item["item_type"], self.settings.task_kind)
                now = self.clock()
                store.update_item(item_id, completed_at=now if completed else None, modified_at=now)
                logger.info(f"Marked task {item_id} {'completed' if completed else 'not completed'}")
                return store.get_item(item_id)

    def complete_multiple_tasks(self, item_ids: List[str], completed: bool = True) -> Dict[str, Any]:
        """
        Complete several tasks at once; items that are missing or not tasks are
        reported rather than failing the whole batch.
        """
        outcomes = []
        with trace_span("item.complete_multiple", attributes={"item.count": len(item_ids)}):
            with self.db.transaction() as store:
                now = self.clock()
                for item_id in item_ids:
                    item = store.get_item(item_id)
                    if item is None:
                        outcomes.append({"id": item_id, "status": "not_found"})
                        continue
                    if item["item_type"] != self.settings.task_kind:
                        outcomes.append({"id": item_id, "status": "not_a_task", "item_type": item["item_type"]})
                        continue
                    store.update_item(item_id, completed_at=now if completed else None, modified_at=now)
                    outcomes.append({"id": item_id, "status": "completed" if completed else "uncompleted",
                                     "title": item["title"]})
        done = sum(1 for outcome in outcomes if outcome["status"] in ("completed", "uncompleted"))
        logger.info(f"Updated completion of {done}/{len(item_ids)} tasks")
        return {"results": outcomes, "updated": done, "requested": len(item_ids)}

    def change_item_type(self, item_id: str, new_type: str) -> Dict[str, Any]:
        """Change an item's kind; leaving Task clears its completion."""
        if not new_type or not new_type.strip():
            raise ValueError("Item type cannot be empty")
        new_type = new_type.strip()
        with self.db.transaction() as store:
            item = self._require_item(store, item_id)
            fields: Dict[str, Any] = {"item_type": new_type, "modified_at": self.clock()}
            if new_type != self.settings.task_kind:
                fields["completed_at"] = None
            store.update_item(item_id, **fields)
            logger.info(f"Changed item {item_id} from {item['item_type']} to {new_type}")
            return store.get_item(item_id)

    def update_title(self, item_id: str, title: str) -> Dict[str, Any]:
        return self._update_fields(item_id, "update_title", title=_require_title(title))

    def update_notes(self, item_id: str, notes: Optional[str]) -> Dict[str, Any]:
        return self._update_fields(item_id, "update_notes", notes=notes)

    def update_due_date(self, item_id: str, due_date: Optional[int]) -> Dict[str, Any]:
        return self._update_fields(item_id, "update_due_date", due_date=due_date)

    def update_earliest_start_time(self, item_id: str, earliest_start_time: Optional[int]) -> Dict[str, Any]:
        return self._update_fields(item_id, "update_earliest_start_time", earliest_start_time=earliest_start_time)

    # ---- filtered reads ----

    def get_available_tasks(
        self,
        parent_id: Optional[str] = None,
        root_id: Optional[str] = None,
        include_deferred: bool = False,
        include_archive: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Incomplete tasks that can be worked on now.

        Deferred tasks (earliest_start_time in the future) are left out unless
        include_deferred; the Trash is always left out and the Archive unless
        include_archive.
        """
        parent_id, roots_only = self._parent_filter(parent_id)
        with self.db.session() as store:
            index = TreeIndex.load(store)
            rows = store.available_tasks(self.clock(), parent_id=parent_id, include_deferred=include_deferred)
            if roots_only:
                rows = [row for row in rows if row["parent_id"] is None]
            hidden = [Sentinel.TRASH] if include_archive else [Sentinel.TRASH, Sentinel.ARCHIVE]
            excluded = self._excluded_ids(index, *hidden)
            rows = [row for row in rows if row["id"] not in excluded]
            return self._scope(index, rows, root_id)

    def get_deferred_tasks(self, parent_id: Optional[str] = None, include_archive: bool = False) -> List[Dict[str, Any]]:
        """Incomplete tasks whose earliest_start_time is still in the future."""
        parent_id, roots_only = self._parent_filter(parent_id)
        with self.db.session() as store:
            index = TreeIndex.load(store)
            rows = store.deferred_tasks(self.clock(), parent_id=parent_id)
            if roots_only:
                rows = [row for row in rows if row["parent_id"] is None]
            hidden = [Sentinel.TRASH] if include_archive else [Sentinel.TRASH, Sentinel.ARCHIVE]
            excluded = self._excluded_ids(index, *hidden)
            return [row for row in rows if row["id"] not in excluded]

    def get_overdue_items(self, include_completed: bool = False) -> List[Dict[str, Any]]:
        with self.db.session() as store:
            index = TreeIndex.load(store)
            rows = store.items_due_between(None, self.clock(), include_completed=include_completed)
            excluded = self._excluded_ids(index, Sentinel.TRASH)
            return [row for row in rows if row["id"] not in excluded]

    def get_due_between(self, start: int, end: int, include_completed: bool = False) -> List[Dict[str, Any]]:
        """Items due in [start, end)."""
        if end < start:
            raise ValueError("End of range must not be before its start")
        with self.db.session() as store:
            index = TreeIndex.load(store)
            rows = store.items_due_between(start, end, include_completed=include_completed)
            excluded = self._excluded_ids(index, Sentinel.TRASH)
            return [row for row in rows if row["id"] not in excluded]

    def search_items(
        self,
        query: str,
        root_id: Optional[str] = None,
        include_completed: bool = True,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """Case-insensitive substring search over titles and notes."""
        if not query or not query.strip():
            raise ValueError("Search query cannot be empty")
        with self.db.session() as store:
            index = TreeIndex.load(store)
            rows = store.search_items(query.strip(), include_completed=include_completed)
            rows = self._scope(index, rows, root_id)
            return rows[:max(0, limit)]

    def get_oldest_tasks(self, limit: int = 20, root_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Incomplete tasks by creation date, skipping Templates/Reference/Archive/Trash."""
        with self.db.session() as store:
            index = TreeIndex.load(store)
            excluded = self._excluded_ids(
                index, Sentinel.TEMPLATES, Sentinel.REFERENCE, Sentinel.ARCHIVE, Sentinel.TRASH
            )
            rows = [row for row in store.incomplete_tasks_by_age() if row["id"] not in excluded]
            rows = self._scope(index, rows, root_id)
            now = self.clock()
            for row in rows:
                row["age_days"] = max(0, (now - row["created_at"]) // 86400)
            return rows[:max(0, limit)]

    def get_completed_tasks(
        self,
        since: Optional[int] = None,
        root_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """Completed tasks, most recent first."""
        with self.db.session() as store:
            index = TreeIndex.load(store)
            rows = self._scope(index, store.completed_tasks(since), root_id)
            return rows[:max(0, limit)]
