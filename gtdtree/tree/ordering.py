"""
Sibling ordering and re-parenting.

sort_order is only meaningful among live siblings. Renumbering operations
(move_to_position, reorder_children) leave the sibling set dense from 0; a
cross-parent move appends to the new parent and leaves the old parent's
numbering as it was.
"""
import logging
from typing import Optional, List, Callable

from gtdtree.exceptions import NotFoundError, InvalidRelationError
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tree.index import TreeIndex, TreeNode
from gtdtree.tree.traversal import TraversalEngine

logger = logging.getLogger(__name__)


class OrderMaintainer:
    """Writes sort_order / parent_id changes and keeps the TreeIndex in step."""

    def __init__(self, store: RowStore, index: TreeIndex, clock: Callable[[], int] = now_epoch):
        self.store = store
        self.index = index
        self.clock = clock
        self.traversal = TraversalEngine(index)

    def _require(self, item_id: str) -> TreeNode:
        node = self.index.get(item_id)
        if node is None:
            raise NotFoundError("item", item_id)
        return node

    def _write_order(self, item_id: str, sort_order: int, now: int) -> None:
        self.store.update_item(item_id, sort_order=sort_order, modified_at=now)
        self.index.set_sort_order(item_id, sort_order)

    def append_position(self, parent_id: Optional[str]) -> int:
        """Position one past the last live child of parent_id (0 when it has none)."""
        current = self.index.max_sort_order(parent_id)
        return 0 if current is None else current + 1

    def swap(self, first_id: str, second_id: str) -> None:
        """Exchange the positions of two siblings."""
        first = self._require(first_id)
        second = self._require(second_id)
        if first.parent_id != second.parent_id:
            raise InvalidRelationError(
                f"Items {first_id} and {second_id} do not share a parent "
                f"({first.parent_id} != {second.parent_id})"
            )
        if first_id == second_id:
            return
        now = self.clock()
        first_order, second_order = first.sort_order, second.sort_order
        self._write_order(first_id, second_order, now)
        self._write_order(second_id, first_order, now)
        logger.info(f"Swapped item {first_id} (now {second_order}) with {second_id} (now {first_order})")

    def move_to_position(self, item_id: str, target_index: int) -> int:
        """
        Place an item at target_index among its siblings and renumber them 0..n-1.

        Args:
            item_id: Item to place
            target_index: Desired position; clamped into [0, number of other siblings]

        Returns:
            The position actually used
        """
        node = self._require(item_id)
        others = [sibling for sibling in self.index.children(node.parent_id) if sibling.id != item_id]
        position = max(0, min(target_index, len(others)))
        others.insert(position, node)

        now = self.clock()
        for new_order, sibling in enumerate(others):
            if sibling.id == item_id or sibling.sort_order != new_order:
                self._write_order(sibling.id, new_order, now)
        logger.info(f"Moved item {item_id} to position {position} under {node.parent_id or 'root'}")
        return position

    def reorder_children(self, parent_id: Optional[str], ordered_ids: List[str]) -> bool:
        """
        Assign sort_order = index for every child of parent_id.

        ordered_ids must list every live child exactly once. Validation happens
        before any write.

        Returns:
            False if the children were already in that order (nothing written)
        """
        if parent_id is not None:
            self._require(parent_id)
        children = self.index.children(parent_id)
        child_ids = {child.id for child in children}

        if len(ordered_ids) != len(children):
            raise InvalidRelationError(
                f"Expected {len(children)} child ids for {parent_id or 'root'}, got {len(ordered_ids)}",
                expected=len(children),
                actual=len(ordered_ids),
            )
        if len(set(ordered_ids)) != len(ordered_ids):
            duplicates = sorted({item_id for item_id in ordered_ids if ordered_ids.count(item_id) > 1})
            raise InvalidRelationError(f"Duplicate ids in reorder list: {', '.join(duplicates)}")
        foreign = [item_id for item_id in ordered_ids if item_id not in child_ids]
        if foreign:
            raise InvalidRelationError(
                f"Items are not children of {parent_id or 'root'}: {', '.join(foreign)}"
            )

        if all(self.index.get(item_id).sort_order == position for position, item_id in enumerate(ordered_ids)):
            logger.debug(f"Children of {parent_id or 'root'} already in requested order")
            return False

        now = self.clock()
        for position, item_id in enumerate(ordered_ids):
            if self.index.get(item_id).sort_order != position:
                self._write_order(item_id, position, now)
        logger.info(f"Reordered {len(ordered_ids)} children of {parent_id or 'root'}")
        return True

    def move(self, item_id: str, new_parent_id: Optional[str]) -> int:
        """
        Re-parent an item, appending it after the new parent's last child.

        Raises:
            NotFoundError: item or new parent missing
            InvalidRelationError: new parent is the item itself or lies below it
        """
        self._require(item_id)
        if new_parent_id is not None:
            self._require(new_parent_id)
            if new_parent_id == item_id or self.traversal.is_descendant_of(new_parent_id, item_id):
                raise InvalidRelationError(
                    f"Cannot move item {item_id} under {new_parent_id}: it is the item or one of its descendants"
                )

        position = self.append_position(new_parent_id)
        now = self.clock()
        self.store.update_item(item_id, parent_id=new_parent_id, sort_order=position, modified_at=now)
        self.index.reparent(item_id, new_parent_id, position)
        logger.info(f"Moved item {item_id} to parent {new_parent_id or 'root'} at position {position}")
        return position
