"""
Time tracking service - timers and time entries attached to items.
This layer contains no HTTP framework dependencies.
"""
import logging
from typing import Optional, Dict, Any, List, Callable

from gtdtree.database import ItemDatabase
from gtdtree.exceptions import NotFoundError, InvalidRelationError
from gtdtree.storage.interface import RowStore
from gtdtree.timeutil import now_epoch
from gtdtree.tree.cloning import new_item_id

logger = logging.getLogger(__name__)


class TimeService:
    """Service for time entry business logic."""

    def __init__(
        self,
        db: ItemDatabase,
        clock: Callable[[], int] = now_epoch,
        id_factory: Callable[[], str] = new_item_id,
    ):
        """Initialize time service with database dependency."""
        self.db = db
        self.clock = clock
        self.id_factory = id_factory

    def _require_item(self, store: RowStore, item_id: str) -> Dict[str, Any]:
        item = store.get_item(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    def _require_entry(self, store: RowStore, entry_id: str) -> Dict[str, Any]:
        entry = store.get_time_entry(entry_id)
        if entry is None:
            raise NotFoundError("time entry", entry_id)
        return entry

    def start_timer(self, item_id: str) -> Dict[str, Any]:
        """Open a new time entry for an item, starting now."""
        with self.db.transaction() as store:
            item = self._require_item(store, item_id)
            entry_id = self.id_factory()
            store.insert_time_entry(entry_id, item_id, self.clock())
            logger.info(f"Started timer {entry_id} for item {item_id} '{item['title']}'")
            return store.get_time_entry(entry_id)

    def stop_timer(self, entry_id: Optional[str] = None, item_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Stop a running timer.

        Args:
            entry_id: Entry to stop
            item_id: Alternatively, stop the most recently started running entry of this item

        Raises:
            ValueError: If neither argument is given
            NotFoundError: If there is no matching running entry
        """
        if entry_id is None and item_id is None:
            raise ValueError("Either entry_id or item_id is required")
        with self.db.transaction() as store:
            if entry_id is not None:
                entry = self._require_entry(store, entry_id)
                if entry["ended_at"] is not None:
                    raise InvalidRelationError(f"Time entry {entry_id} is already stopped")
            else:
                self._require_item(store, item_id)
                entry = store.latest_active_entry(item_id)
                if entry is None:
                    raise NotFoundError("running timer for item", item_id)
            now = self.clock()
            duration = max(0, now - entry["started_at"])
            store.update_time_entry(entry["id"], ended_at=now, duration=duration)
            logger.info(f"Stopped timer {entry['id']} after {duration}s")
            return store.get_time_entry(entry["id"])

    def get_time_entries(self, item_id: str) -> List[Dict[str, Any]]:
        with self.db.session() as store:
            self._require_item(store, item_id)
            return store.list_time_entries(item_id)

    def get_total_time(self, item_id: str) -> Dict[str, Any]:
        """Seconds spent on an item: finished entries plus any still running."""
        with self.db.session() as store:
            self._require_item(store, item_id)
            completed = store.completed_duration(item_id)
            now = self.clock()
            running = [
                entry for entry in store.list_time_entries(item_id) if entry["ended_at"] is None
            ]
            running_seconds = sum(max(0, now - entry["started_at"]) for entry in running)
        return {
            "item_id": item_id,
            "completed_seconds": completed,
            "running_seconds": running_seconds,
            "total_seconds": completed + running_seconds,
            "running_entries": len(running),
        }

    def get_active_timers(self) -> List[Dict[str, Any]]:
        now = self.clock()
        with self.db.session() as store:
            entries = store.active_time_entries()
        for entry in entries:
            entry["elapsed_seconds"] = max(0, now - entry["started_at"])
        return entries

    def update_start_time(self, entry_id: str, started_at: int) -> Dict[str, Any]:
        """Change when an entry started; duration is recomputed for stopped entries."""
        with self.db.transaction() as store:
            entry = self._require_entry(store, entry_id)
            fields: Dict[str, Any] = {"started_at": started_at}
            if entry["ended_at"] is not None:
                if entry["ended_at"] < started_at:
                    raise InvalidRelationError(
                        f"Start {started_at} is after the end {entry['ended_at']} of entry {entry_id}"
                    )
                fields["duration"] = entry["ended_at"] - started_at
            store.update_time_entry(entry_id, **fields)
            logger.info(f"Updated start of time entry {entry_id}")
            return store.get_time_entry(entry_id)

    def update_end_time(self, entry_id: str, ended_at: int) -> Dict[str, Any]:
        """Change when an entry ended (stopping it if it was running)."""
        with self.db.transaction() as store:
            entry = self._require_entry(store, entry_id)
            if ended_at < entry["started_at"]:
                raise InvalidRelationError(
                    f"End {ended_at} is before the start {entry['started_at']} of entry {entry_id}"
                )
            store.update_time_entry(entry_id, ended_at=ended_at, duration=ended_at - entry["started_at"])
            logger.info(f"Updated end of time entry {entry_id}")
            return store.get_time_entry(entry_id)
