"""
Well-known root folders (Trash, Archive, Reference, Templates, Inbox).

They are ordinary root items located by case-insensitive title. A
SentinelDirectory resolves them once per operation.
"""
import enum
import logging
from typing import Optional, Dict

from gtdtree.config import Settings
from gtdtree.exceptions import ConfigurationMissingError
from gtdtree.tree.index import TreeIndex

logger = logging.getLogger(__name__)


class Sentinel(str, enum.Enum):
    TRASH = "trash"
    ARCHIVE = "archive"
    REFERENCE = "reference"
    TEMPLATES = "templates"
    INBOX = "inbox"


class SentinelDirectory:
    """Name -> item id map of the sentinel folders present in one TreeIndex."""

    def __init__(self, index: TreeIndex, settings: Settings):
        self.titles: Dict[Sentinel, str] = {
            Sentinel.TRASH: settings.trash_title,
            Sentinel.ARCHIVE: settings.archive_title,
            Sentinel.REFERENCE: settings.reference_title,
            Sentinel.TEMPLATES: settings.templates_title,
            Sentinel.INBOX: settings.inbox_title,
        }
        self._ids: Dict[Sentinel, str] = {}
        wanted = {title.lower(): sentinel for sentinel, title in self.titles.items()}
        # Roots come back in sort_order, so the first match wins on duplicates
        for root in index.roots():
            sentinel = wanted.get((root.title or "").lower())
            if sentinel is not None and sentinel not in self._ids:
                self._ids[sentinel] = root.id

    def find(self, sentinel: Sentinel) -> Optional[str]:
        return self._ids.get(sentinel)

    def require(self, sentinel: Sentinel) -> str:
        """Id of a sentinel folder, or ConfigurationMissingError if there is none."""
        item_id = self._ids.get(sentinel)
        if item_id is None:
            title = self.titles[sentinel]
            logger.error(f"Sentinel folder '{title}' not found among root items")
            raise ConfigurationMissingError(title, "create a root-level folder with this title")
        return item_id

    def ids(self, *sentinels: Sentinel) -> Dict[Sentinel, str]:
        """Present sentinel ids for the requested names (absent ones are skipped)."""
        return {sentinel: self._ids[sentinel] for sentinel in sentinels if sentinel in self._ids}
