"""
In-memory arena of the live item hierarchy.

A TreeIndex is built from one scan of the structural columns at the start of
an operation and is discarded when the operation ends. Writers keep it in step
with the rows they change so later steps of the same operation see the new
shape without re-reading the table.
"""
from dataclasses import dataclass
from typing import Optional, Dict, List, Iterable, Any

from gtdtree.storage.interface import RowStore


@dataclass
class TreeNode:
    """Structural view of one live item."""

    id: str
    parent_id: Optional[str]
    sort_order: int
    item_type: str
    title: str


class TreeIndex:
    """Arena of TreeNodes plus a parent -> children multimap."""

    def __init__(self, nodes: Iterable[TreeNode] = ()):
        self._nodes: Dict[str, TreeNode] = {}
        self._children: Dict[Optional[str], List[str]] = {}
        for node in nodes:
            self._nodes[node.id] = node
            self._children.setdefault(node.parent_id, []).append(node.id)

    @classmethod
    def load(cls, store: RowStore) -> "TreeIndex":
        """Build the index from a single scan of live rows."""
        return cls(
            TreeNode(
                id=row["id"],
                parent_id=row["parent_id"],
                sort_order=row["sort_order"] if row["sort_order"] is not None else 0,
                item_type=row["item_type"],
                title=row["title"],
            )
            for row in store.scan_structure()
        )

    def __contains__(self, item_id: Any) -> bool:
        return item_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, item_id: Optional[str]) -> Optional[TreeNode]:
        if item_id is None:
            return None
        return self._nodes.get(item_id)

    def children(self, parent_id: Optional[str]) -> List[TreeNode]:
        """Live children of a parent (None for roots) in ascending sort_order."""
        nodes = [self._nodes[child_id] for child_id in self._children.get(parent_id, ())]
        nodes.sort(key=lambda node: (node.sort_order, node.id))
        return nodes

    def roots(self) -> List[TreeNode]:
        return self.children(None)

    def max_sort_order(self, parent_id: Optional[str]) -> Optional[int]:
        orders = [self._nodes[child_id].sort_order for child_id in self._children.get(parent_id, ())]
        return max(orders) if orders else None

    # ---- maintenance ----

    def add(self, node: TreeNode) -> None:
        self._nodes[node.id] = node
        self._children.setdefault(node.parent_id, []).append(node.id)

    def reparent(self, item_id: str, new_parent_id: Optional[str], sort_order: int) -> None:
        node = self._nodes[item_id]
        siblings = self._children.get(node.parent_id, [])
        if item_id in siblings:
            siblings.remove(item_id)
        node.parent_id = new_parent_id
        node.sort_order = sort_order
        self._children.setdefault(new_parent_id, []).append(item_id)

    def set_sort_order(self, item_id: str, sort_order: int) -> None:
        self._nodes[item_id].sort_order = sort_order

    def discard(self, item_id: str) -> None:
        """Drop a node that is no longer live. Its children stay indexed under it."""
        node = self._nodes.pop(item_id, None)
        if node is None:
            return
        siblings = self._children.get(node.parent_id, [])
        if item_id in siblings:
            siblings.remove(item_id)
