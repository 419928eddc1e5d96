"""
Tree service - structural operations on the item hierarchy.
This layer contains no HTTP framework dependencies.

Every mutating operation loads a fresh TreeIndex inside one database
transaction, so a failure part-way through leaves no partial renumbering or
half-cloned subtree behind.
"""
import logging
from typing import Optional, Dict, Any, List, Callable, TypeVar

from gtdtree.config import Settings
from gtdtree.database import ItemDatabase
from gtdtree.exceptions import NotFoundError
from gtdtree.monitoring import record_tree_operation
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tracing import trace_span
from gtdtree.tree import (
    TreeIndex, TraversalEngine, OrderMaintainer, SentinelDirectory,
    Relocator, Cloner, StuckAreaFinder,
)
from gtdtree.tree.cloning import new_item_id

logger = logging.getLogger(__name__)

ROOT_PARENT = "root"

T = TypeVar("T")


def normalize_parent_id(parent_id: Optional[str]) -> Optional[str]:
    """Map the 'root' alias (and empty strings) to None."""
    if parent_id is None or parent_id == "" or parent_id.lower() == ROOT_PARENT:
        return None
    return parent_id


class TreeContext:
    """Collaborators for one operation, all sharing the same store and index."""

    def __init__(
        self,
        store: RowStore,
        settings: Settings,
        clock: Callable[[], int],
        id_factory: Callable[[], str],
    ):
        self.store = store
        self.index = TreeIndex.load(store)
        self.traversal = TraversalEngine(self.index)
        self.ordering = OrderMaintainer(store, self.index, clock)
        self.sentinels = SentinelDirectory(self.index, settings)
        self.relocator = Relocator(store, self.index, self.ordering, self.sentinels, clock)
        self.cloner = Cloner(
            store, self.index, self.ordering, clock, id_factory,
            sentinels=self.sentinels, settings=settings,
        )
        self.stuck = StuckAreaFinder(store, self.index, self.sentinels, settings)


class TreeService:
    """Service for structural tree operations."""

    def __init__(
        self,
        db: ItemDatabase,
        settings: Optional[Settings] = None,
        clock: Callable[[], int] = now_epoch,
        id_factory: Callable[[], str] = new_item_id,
    ):
        """Initialize tree service with database dependency."""
        self.db = db
        self.settings = settings or db.settings
        self.clock = clock
        self.id_factory = id_factory

    def _run(
        self,
        operation: str,
        action: Callable[[TreeContext], T],
        attributes: Optional[Dict[str, Any]] = None,
        write: bool = True,
    ) -> T:
        """Run action against a fresh TreeContext, counting the outcome."""
        with trace_span(f"tree.{operation}", attributes=attributes):
            try:
                session = self.db.transaction() if write else self.db.session()
                with session as store:
                    result = action(TreeContext(store, self.settings, self.clock, self.id_factory))
            except Exception as e:
                record_tree_operation(operation, type(e).__name__)
                raise
        record_tree_operation(operation, "ok")
        return result

    def _item(self, store: RowStore, item_id: str) -> Dict[str, Any]:
        row = store.get_item(item_id)
        if row is None:
            raise NotFoundError("item", item_id)
        return row

    # ---- ordering ----

    def swap_items(self, first_id: str, second_id: str) -> Dict[str, Any]:
        """Exchange the positions of two siblings."""
        def action(ctx: TreeContext) -> Dict[str, Any]:
            ctx.ordering.swap(first_id, second_id)
            return {
                "first": self._item(ctx.store, first_id),
                "second": self._item(ctx.store, second_id),
            }
        return self._run("swap", action, {"item.first": first_id, "item.second": second_id})

    def move_to_position(self, item_id: str, position: int) -> Dict[str, Any]:
        """Place an item at a clamped position among its siblings."""
        def action(ctx: TreeContext) -> Dict[str, Any]:
            used = ctx.ordering.move_to_position(item_id, position)
            item = self._item(ctx.store, item_id)
            return {"item": item, "position": used, "requested_position": position}
        return self._run("move_to_position", action, {"item.id": item_id, "position": position})

    def reorder_children(self, parent_id: Optional[str], ordered_ids: List[str]) -> Dict[str, Any]:
        """Assign positions to every child of parent_id in the given order."""
        parent_id = normalize_parent_id(parent_id)

        def action(ctx: TreeContext) -> Dict[str, Any]:
            changed = ctx.ordering.reorder_children(parent_id, list(ordered_ids))
            return {"parent_id": parent_id, "changed": changed, "count": len(ordered_ids)}

        result = self._run("reorder_children", action, {"parent.id": parent_id, "child.count": len(ordered_ids)})
        if not result["changed"]:
            record_tree_operation("reorder_children", "noop")
        return result

    def move_item(self, item_id: str, new_parent_id: Optional[str]) -> Dict[str, Any]:
        """Re-parent an item, appending it after the new parent's last child."""
        new_parent_id = normalize_parent_id(new_parent_id)

        def action(ctx: TreeContext) -> Dict[str, Any]:
            ctx.ordering.move(item_id, new_parent_id)
            return self._item(ctx.store, item_id)

        return self._run("move", action, {"item.id": item_id, "parent.id": new_parent_id})

    # ---- relocation ----

    def delete_item(self, item_id: str) -> Dict[str, Any]:
        """Move an item and its subtree to the Trash."""
        def action(ctx: TreeContext) -> Dict[str, Any]:
            ctx.relocator.delete(item_id)
            return self._item(ctx.store, item_id)
        return self._run("delete", action, {"item.id": item_id})

    def archive_item(self, item_id: str) -> Dict[str, Any]:
        """Move an item under Archive; archiving an archived item changes nothing."""
        def action(ctx: TreeContext) -> Dict[str, Any]:
            outcome = ctx.relocator.archive(item_id)
            return {
                "item": self._item(ctx.store, item_id),
                "archive_id": outcome.archive_id,
                "already_archived": outcome.already_archived,
            }

        result = self._run("archive", action, {"item.id": item_id})
        if result["already_archived"]:
            record_tree_operation("archive", "noop")
        return result

    def empty_trash(self, cutoff: Optional[int] = None) -> Dict[str, Any]:
        """Tombstone the direct children of Trash (older than cutoff, if given)."""
        def action(ctx: TreeContext) -> Dict[str, Any]:
            removed = ctx.relocator.empty_trash(cutoff)
            return {"removed_ids": removed, "count": len(removed), "cutoff": cutoff}
        return self._run("empty_trash", action, {"cutoff": cutoff})

    # ---- cloning ----

    def instantiate_template(
        self,
        template_id: str,
        parent_id: Optional[str] = None,
        title: Optional[str] = None,
        as_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Copy a template subtree; defaults to the Inbox and the project kind."""
        parent_id = normalize_parent_id(parent_id)

        def action(ctx: TreeContext) -> Dict[str, Any]:
            result = ctx.cloner.clone(template_id, parent_id, title, as_type)
            return {
                "item": self._item(ctx.store, result.root_id),
                "created_count": result.created_count,
                "template_id": template_id,
            }

        return self._run("instantiate_template", action, {"template.id": template_id, "parent.id": parent_id})

    # ---- reads ----

    def get_stuck_projects(self, root_id: Optional[str] = None) -> Dict[str, Any]:
        """Project folders with nothing tagged actionable in their top two levels."""
        def action(ctx: TreeContext) -> Dict[str, Any]:
            result = ctx.stuck.find_stuck_projects(root_id)
            return {
                "computable": result.computable,
                "reason": result.reason,
                "projects": result.projects,
                "count": len(result.projects),
            }
        return self._run("stuck_projects", action, {"root.id": root_id}, write=False)

    def get_descendants(self, item_id: str, max_depth: Optional[int] = None) -> List[str]:
        """Ids of live items below item_id, optionally limited to max_depth levels."""
        def action(ctx: TreeContext) -> List[str]:
            if item_id not in ctx.index:
                raise NotFoundError("item", item_id)
            return sorted(ctx.traversal.descendants(item_id, max_depth))
        return self._run("descendants", action, {"item.id": item_id, "max_depth": max_depth}, write=False)
