"""
Subtree relocation: delete to Trash, archive, and emptying the Trash.
"""
import logging
from dataclasses import dataclass
from typing import Optional, List, Callable

from gtdtree.exceptions import NotFoundError
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tree.index import TreeIndex
from gtdtree.tree.ordering import OrderMaintainer
from gtdtree.tree.sentinels import Sentinel, SentinelDirectory
from gtdtree.tree.traversal import TraversalEngine

logger = logging.getLogger(__name__)


@dataclass
class ArchiveOutcome:
    item_id: str
    archive_id: str
    already_archived: bool
    sort_order: Optional[int] = None


class Relocator:
    """Moves whole subtrees between sentinel folders."""

    def __init__(
        self,
        store: RowStore,
        index: TreeIndex,
        ordering: OrderMaintainer,
        sentinels: SentinelDirectory,
        clock: Callable[[], int] = now_epoch,
    ):
        self.store = store
        self.index = index
        self.ordering = ordering
        self.sentinels = sentinels
        self.clock = clock
        self.traversal = TraversalEngine(index)

    def delete(self, item_id: str) -> int:
        """Move an item (and implicitly its subtree) under Trash. Returns its new position."""
        if item_id not in self.index:
            raise NotFoundError("item", item_id)
        trash_id = self.sentinels.require(Sentinel.TRASH)
        return self.ordering.move(item_id, trash_id)

    def archive(self, item_id: str) -> ArchiveOutcome:
        """
        Move an item under Archive.

        Archiving Archive itself or anything already below it writes nothing.
        """
        if item_id not in self.index:
            raise NotFoundError("item", item_id)
        archive_id = self.sentinels.require(Sentinel.ARCHIVE)
        if self.traversal.is_within(item_id, archive_id):
            logger.info(f"Item {item_id} is already archived")
            return ArchiveOutcome(item_id=item_id, archive_id=archive_id, already_archived=True)
        position = self.ordering.move(item_id, archive_id)
        return ArchiveOutcome(
            item_id=item_id, archive_id=archive_id, already_archived=False, sort_order=position
        )

    def empty_trash(self, cutoff: Optional[int] = None) -> List[str]:
        """
        Tombstone the direct children of Trash.

        Only children whose modified_at is older than cutoff are removed when a
        cutoff is given. Grandchildren keep their rows; they become unreachable
        once their parent is tombstoned.

        Returns:
            Ids of the tombstoned items
        """
        trash_id = self.sentinels.require(Sentinel.TRASH)
        children = self.store.list_children(trash_id)
        if cutoff is not None:
            children = [row for row in children if row["modified_at"] < cutoff]
        item_ids = [row["id"] for row in children]
        if not item_ids:
            return []
        now = self.clock()
        self.store.tombstone_items(item_ids, now)
        for item_id in item_ids:
            self.index.discard(item_id)
        logger.info(f"Emptied {len(item_ids)} items from trash")
        return item_ids
