"""
SQLite implementation of the storage interface.

A SQLiteRowStore wraps one open connection handed out by ItemDatabase and is
only valid inside the session()/transaction() block that created it.
"""
import sqlite3
from typing import Optional, List, Dict, Any, Iterable, Set, TYPE_CHECKING

from .interface import RowStore

if TYPE_CHECKING:
    from gtdtree.database import ItemDatabase

ITEM_COLUMNS = (
    "id", "title", "parent_id", "sort_order", "created_at", "modified_at",
    "completed_at", "due_date", "earliest_start_time", "item_type", "notes",
    "deleted_at", "needs_push",
)
_UPDATABLE_ITEM_COLUMNS = frozenset(ITEM_COLUMNS) - {"id"}
_UPDATABLE_TAG_COLUMNS = frozenset({"name", "color", "deleted_at"})
_UPDATABLE_TIME_COLUMNS = frozenset({"started_at", "ended_at", "duration"})

# Stay well under SQLITE_MAX_VARIABLE_NUMBER on older builds
_IN_CHUNK = 500


def _row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    data = dict(row)
    if "needs_push" in data and data["needs_push"] is not None:
        data["needs_push"] = bool(data["needs_push"])
    return data


def _chunks(values: List[str]) -> Iterable[List[str]]:
    for start in range(0, len(values), _IN_CHUNK):
        yield values[start:start + _IN_CHUNK]


class SQLiteRowStore(RowStore):
    """Row store bound to a single SQLite connection."""

    def __init__(self, db: "ItemDatabase", conn: sqlite3.Connection):
        self._db = db
        self._conn = conn

    # ---- low-level helpers ----

    def _execute(self, query: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        cursor = self._conn.cursor()
        self._db._execute_with_logging(cursor, query, tuple(params))
        return cursor

    def _fetchone(self, query: str, params: Iterable[Any] = ()) -> Optional[Dict[str, Any]]:
        return _row_to_dict(self._execute(query, params).fetchone())

    def _fetchall(self, query: str, params: Iterable[Any] = ()) -> List[Dict[str, Any]]:
        return [_row_to_dict(row) for row in self._execute(query, params).fetchall()]

    @staticmethod
    def _assignments(fields: Dict[str, Any], allowed: frozenset) -> str:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown columns: {', '.join(sorted(unknown))}")
        return ", ".join(f"{name} = ?" for name in fields)

    # ---- items ----

    def get_item(self, item_id: str, include_deleted: bool = False) -> Optional[Dict[str, Any]]:
        if include_deleted:
            return self._fetchone("SELECT * FROM items WHERE id = ?", (item_id,))
        return self._fetchone("SELECT * FROM items WHERE id = ? AND deleted_at IS NULL", (item_id,))

    def get_items_by_ids(self, item_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        found: Dict[str, Dict[str, Any]] = {}
        for chunk in _chunks(list(item_ids)):
            placeholders = ", ".join("?" for _ in chunk)
            for row in self._fetchall(
                f"SELECT * FROM items WHERE id IN ({placeholders}) AND deleted_at IS NULL", chunk
            ):
                found[row["id"]] = row
        return found

    def insert_item(self, row: Dict[str, Any]) -> None:
        data = {column: row.get(column) for column in ITEM_COLUMNS}
        data["needs_push"] = 1
        if data["sort_order"] is None:
            data["sort_order"] = 0
        placeholders = ", ".join("?" for _ in ITEM_COLUMNS)
        self._execute(
            f"INSERT INTO items ({', '.join(ITEM_COLUMNS)}) VALUES ({placeholders})",
            [data[column] for column in ITEM_COLUMNS],
        )

    def update_item(self, item_id: str, **fields: Any) -> None:
        fields.pop("needs_push", None)
        if fields:
            assignments = self._assignments(fields, _UPDATABLE_ITEM_COLUMNS) + ", needs_push = 1"
        else:
            assignments = "needs_push = 1"
        self._execute(
            f"UPDATE items SET {assignments} WHERE id = ?",
            list(fields.values()) + [item_id],
        )

    def list_children(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        return self._fetchall(
            "SELECT * FROM items WHERE parent_id IS ? AND deleted_at IS NULL ORDER BY sort_order ASC, id ASC",
            (parent_id,),
        )

    def scan_structure(self) -> List[Dict[str, Any]]:
        return self._fetchall(
            "SELECT id, parent_id, sort_order, item_type, title FROM items WHERE deleted_at IS NULL"
        )

    def max_child_sort_order(self, parent_id: Optional[str]) -> Optional[int]:
        row = self._fetchone(
            "SELECT MAX(sort_order) AS max_order FROM items WHERE parent_id IS ? AND deleted_at IS NULL",
            (parent_id,),
        )
        return row["max_order"] if row else None

    def tombstone_items(self, item_ids: Iterable[str], deleted_at: int) -> int:
        changed = 0
        for chunk in _chunks(list(item_ids)):
            placeholders = ", ".join("?" for _ in chunk)
            cursor = self._execute(
                f"UPDATE items SET deleted_at = ?, modified_at = ?, needs_push = 1 "
                f"WHERE id IN ({placeholders}) AND deleted_at IS NULL",
                [deleted_at, deleted_at] + chunk,
            )
            changed += cursor.rowcount
        return changed

    def count_live_items(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS count FROM items WHERE deleted_at IS NULL")
        return row["count"]

    # ---- filtered item scans ----

    def available_tasks(self, now: int, parent_id: Optional[str] = None, include_deferred: bool = False) -> List[Dict[str, Any]]:
        conditions = ["item_type = 'Task'", "completed_at IS NULL", "deleted_at IS NULL"]
        params: List[Any] = []
        if not include_deferred:
            conditions.append("(earliest_start_time IS NULL OR earliest_start_time <= ?)")
            params.append(now)
        if parent_id is not None:
            conditions.append("parent_id = ?")
            params.append(parent_id)
        return self._fetchall(
            f"SELECT * FROM items WHERE {' AND '.join(conditions)} ORDER BY parent_id, sort_order ASC",
            params,
        )

    def deferred_tasks(self, now: int, parent_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = (
            "SELECT * FROM items WHERE item_type = 'Task' AND completed_at IS NULL "
            "AND deleted_at IS NULL AND earliest_start_time > ?"
        )
        params: List[Any] = [now]
        if parent_id is not None:
            query += " AND parent_id = ?"
            params.append(parent_id)
        return self._fetchall(query + " ORDER BY earliest_start_time ASC", params)

    def items_due_between(
        self,
        start: Optional[int],
        end: int,
        include_completed: bool = False,
    ) -> List[Dict[str, Any]]:
        query = "SELECT * FROM items WHERE deleted_at IS NULL AND due_date IS NOT NULL AND due_date < ?"
        params: List[Any] = [end]
        if start is not None:
            query += " AND due_date >= ?"
            params.append(start)
        if not include_completed:
            query += " AND completed_at IS NULL"
        return self._fetchall(query + " ORDER BY due_date ASC", params)

    def search_items(self, pattern: str, include_completed: bool = True) -> List[Dict[str, Any]]:
        like = f"%{pattern}%"
        query = (
            "SELECT * FROM items WHERE deleted_at IS NULL "
            "AND (title LIKE ? COLLATE NOCASE OR notes LIKE ? COLLATE NOCASE)"
        )
        if not include_completed:
            query += " AND completed_at IS NULL"
        return self._fetchall(query + " ORDER BY modified_at DESC", (like, like))

    def incomplete_tasks_by_age(self) -> List[Dict[str, Any]]:
        return self._fetchall(
            "SELECT i.*, p.title AS parent_title FROM items i "
            "LEFT JOIN items p ON i.parent_id = p.id "
            "WHERE i.item_type = 'Task' AND i.completed_at IS NULL AND i.deleted_at IS NULL "
            "ORDER BY i.created_at ASC"
        )

    def completed_tasks(self, since: Optional[int] = None) -> List[Dict[str, Any]]:
        query = (
            "SELECT * FROM items WHERE item_type = 'Task' AND completed_at IS NOT NULL "
            "AND deleted_at IS NULL"
        )
        params: List[Any] = []
        if since is not None:
            query += " AND completed_at >= ?"
            params.append(since)
        return self._fetchall(query + " ORDER BY completed_at DESC", params)

    # ---- tags ----

    def get_tag(self, tag_id: str) -> Optional[Dict[str, Any]]:
        return self._fetchone("SELECT * FROM tags WHERE id = ? AND deleted_at IS NULL", (tag_id,))

    def find_tag_by_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        query = "SELECT * FROM tags WHERE LOWER(name) = LOWER(?) AND deleted_at IS NULL"
        params: List[Any] = [name]
        if exclude_id is not None:
            query += " AND id != ?"
            params.append(exclude_id)
        return self._fetchone(query + " LIMIT 1", params)

    def list_tags(self) -> List[Dict[str, Any]]:
        return self._fetchall("SELECT * FROM tags WHERE deleted_at IS NULL ORDER BY name COLLATE NOCASE ASC")

    def insert_tag(self, tag_id: str, name: str, color: Optional[str] = None) -> None:
        self._execute(
            "INSERT INTO tags (id, name, color, deleted_at, needs_push) VALUES (?, ?, ?, NULL, 1)",
            (tag_id, name, color),
        )

    def update_tag(self, tag_id: str, **fields: Any) -> None:
        assignments = self._assignments(fields, _UPDATABLE_TAG_COLUMNS)
        self._execute(
            f"UPDATE tags SET {assignments}, needs_push = 1 WHERE id = ?",
            list(fields.values()) + [tag_id],
        )

    def get_item_tag(self, item_id: str, tag_id: str) -> Optional[Dict[str, Any]]:
        return self._fetchone(
            "SELECT * FROM item_tags WHERE item_id = ? AND tag_id = ?", (item_id, tag_id)
        )

    def insert_item_tag(self, item_id: str, tag_id: str, now: int) -> None:
        self._execute(
            "INSERT INTO item_tags (item_id, tag_id, created_at, modified_at, deleted_at, needs_push) "
            "VALUES (?, ?, ?, ?, NULL, 1) "
            "ON CONFLICT(item_id, tag_id) DO UPDATE SET "
            "deleted_at = NULL, modified_at = excluded.modified_at, needs_push = 1",
            (item_id, tag_id, now, now),
        )

    def soft_delete_item_tag(self, item_id: str, tag_id: str, now: int) -> bool:
        cursor = self._execute(
            "UPDATE item_tags SET deleted_at = ?, modified_at = ?, needs_push = 1 "
            "WHERE item_id = ? AND tag_id = ? AND deleted_at IS NULL",
            (now, now, item_id, tag_id),
        )
        return cursor.rowcount > 0

    def soft_delete_tag_associations(self, tag_id: str, now: int) -> int:
        cursor = self._execute(
            "UPDATE item_tags SET deleted_at = ?, modified_at = ?, needs_push = 1 "
            "WHERE tag_id = ? AND deleted_at IS NULL",
            (now, now, tag_id),
        )
        return cursor.rowcount

    def list_live_tag_ids(self, item_id: str) -> List[str]:
        rows = self._fetchall(
            "SELECT it.tag_id FROM item_tags it JOIN tags t ON t.id = it.tag_id "
            "WHERE it.item_id = ? AND it.deleted_at IS NULL AND t.deleted_at IS NULL "
            "ORDER BY it.created_at ASC, it.tag_id ASC",
            (item_id,),
        )
        return [row["tag_id"] for row in rows]

    def list_tags_for_item(self, item_id: str) -> List[Dict[str, Any]]:
        return self._fetchall(
            "SELECT t.* FROM tags t JOIN item_tags it ON t.id = it.tag_id "
            "WHERE it.item_id = ? AND it.deleted_at IS NULL AND t.deleted_at IS NULL "
            "ORDER BY t.name COLLATE NOCASE ASC",
            (item_id,),
        )

    def items_with_tag(self, tag_id: str, item_ids: Optional[Iterable[str]] = None) -> Set[str]:
        base = "SELECT item_id FROM item_tags WHERE tag_id = ? AND deleted_at IS NULL"
        if item_ids is None:
            return {row["item_id"] for row in self._fetchall(base, (tag_id,))}
        found: Set[str] = set()
        for chunk in _chunks(list(item_ids)):
            placeholders = ", ".join("?" for _ in chunk)
            rows = self._fetchall(f"{base} AND item_id IN ({placeholders})", [tag_id] + chunk)
            found.update(row["item_id"] for row in rows)
        return found

    def items_with_all_tags(self, tag_ids: List[str], include_completed: bool = False) -> List[Dict[str, Any]]:
        placeholders = ", ".join("?" for _ in tag_ids)
        query = (
            "SELECT i.* FROM items i JOIN item_tags it ON i.id = it.item_id "
            f"WHERE it.tag_id IN ({placeholders}) AND it.deleted_at IS NULL AND i.deleted_at IS NULL"
        )
        if not include_completed:
            query += " AND i.completed_at IS NULL"
        query += " GROUP BY i.id HAVING COUNT(DISTINCT it.tag_id) = ? ORDER BY i.parent_id, i.sort_order ASC"
        return self._fetchall(query, list(tag_ids) + [len(set(tag_ids))])

    # ---- time entries ----

    def insert_time_entry(self, entry_id: str, item_id: str, started_at: int) -> None:
        self._execute(
            "INSERT INTO time_entries (id, item_id, started_at, ended_at, duration, needs_push) "
            "VALUES (?, ?, ?, NULL, NULL, 1)",
            (entry_id, item_id, started_at),
        )

    def get_time_entry(self, entry_id: str) -> Optional[Dict[str, Any]]:
        return self._fetchone("SELECT * FROM time_entries WHERE id = ?", (entry_id,))

    def update_time_entry(self, entry_id: str, **fields: Any) -> None:
        assignments = self._assignments(fields, _UPDATABLE_TIME_COLUMNS)
        self._execute(
            f"UPDATE time_entries SET {assignments}, needs_push = 1 WHERE id = ?",
            list(fields.values()) + [entry_id],
        )

    def list_time_entries(self, item_id: str) -> List[Dict[str, Any]]:
        return self._fetchall(
            "SELECT * FROM time_entries WHERE item_id = ? ORDER BY started_at DESC", (item_id,)
        )

    def latest_active_entry(self, item_id: str) -> Optional[Dict[str, Any]]:
        return self._fetchone(
            "SELECT * FROM time_entries WHERE item_id = ? AND ended_at IS NULL "
            "ORDER BY started_at DESC LIMIT 1",
            (item_id,),
        )

    def active_time_entries(self) -> List[Dict[str, Any]]:
        return self._fetchall(
            "SELECT te.*, i.title AS item_title FROM time_entries te "
            "LEFT JOIN items i ON te.item_id = i.id "
            "WHERE te.ended_at IS NULL ORDER BY te.started_at ASC"
        )

    def completed_duration(self, item_id: str) -> int:
        row = self._fetchone(
            "SELECT COALESCE(SUM(duration), 0) AS total FROM time_entries "
            "WHERE item_id = ? AND ended_at IS NOT NULL",
            (item_id,),
        )
        return int(row["total"])
