"""
Stuck-project detection.

A project folder is stuck when nothing in its top two levels carries the
actionable ("next") tag.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Set

from gtdtree.config import Settings
from gtdtree.exceptions import NotFoundError
from gtdtree.storage.interface import RowStore
from gtdtree.tree.index import TreeIndex, TreeNode
from gtdtree.tree.sentinels import Sentinel, SentinelDirectory
from gtdtree.tree.traversal import TraversalEngine

logger = logging.getLogger(__name__)

SEARCH_DEPTH = 2


@dataclass
class StuckProjectsResult:
    computable: bool
    projects: List[Dict[str, Any]] = field(default_factory=list)
    reason: Optional[str] = None


class StuckAreaFinder:
    """Finds project folders with no actionable item near the top."""

    def __init__(self, store: RowStore, index: TreeIndex, sentinels: SentinelDirectory, settings: Settings):
        self.store = store
        self.index = index
        self.sentinels = sentinels
        self.settings = settings
        self.traversal = TraversalEngine(index)

    def _candidates(self, scope_root_id: Optional[str]) -> List[TreeNode]:
        if scope_root_id is not None:
            if scope_root_id not in self.index:
                raise NotFoundError("item", scope_root_id)
            areas = [self.index.get(scope_root_id)]
            excluded = set(self.sentinels.ids(Sentinel.ARCHIVE).values())
        else:
            excluded = set(self.sentinels.ids(
                Sentinel.ARCHIVE, Sentinel.REFERENCE, Sentinel.TEMPLATES, Sentinel.TRASH
            ).values())
            areas = [root for root in self.index.roots() if root.id not in excluded]

        candidates = []
        for area in areas:
            for child in self.index.children(area.id):
                if child.item_type == self.settings.folder_kind and child.id not in excluded:
                    candidates.append(child)
        return candidates

    def _excluded_by_tag(self, candidate_ids: Set[str]) -> Set[str]:
        dropped: Set[str] = set()
        for name in self.settings.stuck_excluded_tags:
            tag = self.store.find_tag_by_name(name)
            if tag is not None:
                dropped |= self.store.items_with_tag(tag["id"], candidate_ids)
        return dropped

    def find_stuck_projects(self, scope_root_id: Optional[str] = None) -> StuckProjectsResult:
        """
        Args:
            scope_root_id: Look only at folders directly under this item instead
                of under every root-level area

        Returns:
            StuckProjectsResult; computable is False when the actionable tag
            does not exist at all.
        """
        actionable = self.store.find_tag_by_name(self.settings.actionable_tag)
        if actionable is None:
            logger.warning(f"Actionable tag '{self.settings.actionable_tag}' not found; stuck projects not computable")
            return StuckProjectsResult(
                computable=False,
                reason=f"tag '{self.settings.actionable_tag}' does not exist",
            )

        candidates = self._candidates(scope_root_id)
        if not candidates:
            return StuckProjectsResult(computable=True)
        dropped = self._excluded_by_tag({candidate.id for candidate in candidates})
        candidates = [candidate for candidate in candidates if candidate.id not in dropped]

        near: Dict[str, Set[str]] = {
            candidate.id: self.traversal.descendants(candidate.id, SEARCH_DEPTH) for candidate in candidates
        }
        searched: Set[str] = set().union(*near.values()) if near else set()
        tagged = self.store.items_with_tag(actionable["id"], searched) if searched else set()

        projects = []
        for candidate in candidates:
            if near[candidate.id] & tagged:
                continue
            area = self.index.get(candidate.parent_id)
            projects.append({
                "id": candidate.id,
                "title": candidate.title,
                "parent_id": candidate.parent_id,
                "area_title": area.title if area else None,
                "child_count": len(self.index.children(candidate.id)),
            })
        logger.info(f"Found {len(projects)} stuck projects among {len(candidates)} candidates")
        return StuckProjectsResult(computable=True, projects=projects)
