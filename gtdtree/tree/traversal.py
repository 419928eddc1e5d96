"""
Bounded traversal over a TreeIndex.

Parent pointers are not constrained by the database, so downward walks are
capped at MAX_TREE_DEPTH and no walk visits the same id twice. The upward
ancestor check is bounded by the visited set alone.
"""
import logging
from typing import Optional, Set, Iterator, Tuple

from gtdtree.config import MAX_TREE_DEPTH
from gtdtree.tree.index import TreeIndex, TreeNode

logger = logging.getLogger(__name__)


class TraversalEngine:
    """Descendant and ancestor queries over one TreeIndex."""

    def __init__(self, index: TreeIndex):
        self.index = index

    def _limit(self, max_depth: Optional[int]) -> int:
        if max_depth is None:
            return MAX_TREE_DEPTH
        return min(max_depth, MAX_TREE_DEPTH)

    def descendants(self, root_id: str, max_depth: Optional[int] = None) -> Set[str]:
        """
        Ids of live items below root_id, excluding root_id itself.

        Args:
            root_id: Item to start from
            max_depth: Number of levels to descend; None means unbounded
                (still capped at MAX_TREE_DEPTH)
        """
        return {node.id for node, _ in self.walk(root_id, max_depth)}

    def walk(self, root_id: str, max_depth: Optional[int] = None) -> Iterator[Tuple[TreeNode, int]]:
        """
        Pre-order walk of the subtree below root_id.

        Yields (node, depth) pairs with depth 1 for direct children; siblings
        are visited in ascending sort_order. root_id itself is not yielded.
        """
        limit = self._limit(max_depth)
        if limit <= 0:
            return
        visited = {root_id}
        stack = [(child, 1) for child in reversed(self.index.children(root_id))]
        while stack:
            node, depth = stack.pop()
            if node.id in visited:
                logger.warning(f"Cycle detected in item hierarchy at {node.id}; skipping")
                continue
            visited.add(node.id)
            yield node, depth
            if depth >= limit:
                if max_depth is None and self.index.children(node.id):
                    logger.warning(f"Item hierarchy deeper than {MAX_TREE_DEPTH} below {root_id}; truncating")
                continue
            for child in reversed(self.index.children(node.id)):
                stack.append((child, depth + 1))

    def is_descendant_of(self, candidate_id: str, ancestor_id: str) -> bool:
        """True if ancestor_id appears on candidate_id's parent chain."""
        visited = {candidate_id}
        node = self.index.get(candidate_id)
        while node is not None and node.parent_id is not None:
            if node.parent_id == ancestor_id:
                return True
            if node.parent_id in visited:
                logger.warning(f"Cycle detected in parent chain of {candidate_id}")
                return False
            visited.add(node.parent_id)
            node = self.index.get(node.parent_id)
        return False

    def is_within(self, candidate_id: str, root_id: str) -> bool:
        """True if candidate_id is root_id or lies somewhere below it."""
        return candidate_id == root_id or self.is_descendant_of(candidate_id, root_id)
