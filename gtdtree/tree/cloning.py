"""
Subtree cloning (template instantiation).
"""
import uuid
import logging
from dataclasses import dataclass
from typing import Optional, Callable, Dict, Any

from gtdtree.config import Settings
from gtdtree.exceptions import NotFoundError, ConfigurationMissingError
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tree.index import TreeIndex, TreeNode
from gtdtree.tree.ordering import OrderMaintainer
from gtdtree.tree.sentinels import Sentinel, SentinelDirectory
from gtdtree.tree.traversal import TraversalEngine

logger = logging.getLogger(__name__)


def new_item_id() -> str:
    return str(uuid.uuid4()).upper()


@dataclass
class CloneResult:
    root_id: str
    created_count: int
    parent_id: str
    item_type: str


class Cloner:
    """Copies a template subtree under a destination parent."""

    def __init__(
        self,
        store: RowStore,
        index: TreeIndex,
        ordering: OrderMaintainer,
        clock: Callable[[], int] = now_epoch,
        id_factory: Callable[[], str] = new_item_id,
        sentinels: Optional[SentinelDirectory] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.index = index
        self.ordering = ordering
        self.clock = clock
        self.id_factory = id_factory
        self.sentinels = sentinels
        self.settings = settings or Settings()
        self.traversal = TraversalEngine(index)

    def _load(self, item_id: str) -> Dict[str, Any]:
        row = self.store.get_item(item_id)
        if row is None:
            raise NotFoundError("item", item_id)
        return row

    def _copy_tags(self, source_id: str, target_id: str, now: int) -> None:
        for tag_id in self.store.list_live_tag_ids(source_id):
            self.store.insert_item_tag(target_id, tag_id, now)

    def _resolve_destination(self, destination_parent_id: Optional[str]) -> str:
        if destination_parent_id is not None:
            if destination_parent_id not in self.index:
                raise NotFoundError("item", destination_parent_id)
            return destination_parent_id
        if self.sentinels is None:
            raise ConfigurationMissingError(self.settings.inbox_title, "no destination given")
        return self.sentinels.require(Sentinel.INBOX)

    def clone(
        self,
        template_id: str,
        destination_parent_id: Optional[str] = None,
        new_title: Optional[str] = None,
        new_kind: Optional[str] = None,
    ) -> CloneResult:
        """
        Copy template_id and every live descendant under destination_parent_id.

        The root copy takes new_title / new_kind (defaulting to the template's
        title and the configured project kind), keeps the notes and drops the
        dates. Descendants keep their own fields and positions; completion is
        always cleared, and nested template items become folders.
        """
        if template_id not in self.index:
            raise NotFoundError("item", template_id)
        template = self._load(template_id)
        parent_id = self._resolve_destination(destination_parent_id)
        kind = new_kind or self.settings.default_clone_kind

        # Materialize the walk before inserting so copies placed inside the
        # template subtree are not copied again.
        subtree = list(self.traversal.walk(template_id))

        now = self.clock()
        root_id = self.id_factory()
        position = self.ordering.append_position(parent_id)
        root_title = new_title if new_title else template["title"]
        self.store.insert_item({
            "id": root_id,
            "title": root_title,
            "parent_id": parent_id,
            "sort_order": position,
            "created_at": now,
            "modified_at": now,
            "completed_at": None,
            "due_date": None,
            "earliest_start_time": None,
            "item_type": kind,
            "notes": template.get("notes"),
            "deleted_at": None,
        })
        self.index.add(TreeNode(id=root_id, parent_id=parent_id, sort_order=position, item_type=kind, title=root_title))
        self._copy_tags(template_id, root_id, now)

        copies = {template_id: root_id}
        for node, _depth in subtree:
            source = self._load(node.id)
            item_type = source["item_type"]
            if item_type == self.settings.template_kind:
                item_type = self.settings.folder_kind
            copy_id = self.id_factory()
            copy_parent = copies[node.parent_id]
            self.store.insert_item({
                "id": copy_id,
                "title": source["title"],
                "parent_id": copy_parent,
                "sort_order": source["sort_order"],
                "created_at": now,
                "modified_at": now,
                "completed_at": None,
                "due_date": source.get("due_date"),
                "earliest_start_time": source.get("earliest_start_time"),
                "item_type": item_type,
                "notes": source.get("notes"),
                "deleted_at": None,
            })
            self.index.add(TreeNode(
                id=copy_id,
                parent_id=copy_parent,
                sort_order=source["sort_order"],
                item_type=item_type,
                title=source["title"],
            ))
            self._copy_tags(node.id, copy_id, now)
            copies[node.id] = copy_id

        created = len(copies)
        logger.info(f"Cloned template {template_id} as {root_id} under {parent_id} ({created} items)")
        return CloneResult(root_id=root_id, created_count=created, parent_id=parent_id, item_type=kind)
