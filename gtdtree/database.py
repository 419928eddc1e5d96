"""
Database schema and connection management for the item tree store.

The schema matches the existing task database layout exactly; tables are only
created when missing so an existing database file is opened untouched.
"""
import os
import time
import sqlite3
import logging
from contextlib import contextmanager
from typing import Optional, Tuple, Iterator, Any

from opentelemetry import trace

from gtdtree.config import Settings
from gtdtree.exceptions import StorageUnavailableError
from gtdtree.tracing import trace_span, add_span_attribute

logger = logging.getLogger(__name__)

# sqlite3 error messages that mean the store itself is unusable (retryable by the caller)
_UNAVAILABLE_MARKERS = (
    "unable to open database",
    "database is locked",
    "file is not a database",
    "database disk image is malformed",
    "disk i/o error",
)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS items (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        parent_id TEXT,
        sort_order INTEGER NOT NULL DEFAULT 0,
        created_at INTEGER NOT NULL,
        modified_at INTEGER NOT NULL,
        completed_at INTEGER,
        due_date INTEGER,
        earliest_start_time INTEGER,
        item_type TEXT NOT NULL DEFAULT 'Task',
        notes TEXT,
        deleted_at INTEGER,
        needs_push BOOLEAN NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        color TEXT,
        deleted_at INTEGER,
        needs_push BOOLEAN NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS item_tags (
        item_id TEXT NOT NULL,
        tag_id TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        modified_at INTEGER NOT NULL,
        deleted_at INTEGER,
        needs_push BOOLEAN NOT NULL DEFAULT 1,
        PRIMARY KEY (item_id, tag_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS time_entries (
        id TEXT PRIMARY KEY,
        item_id TEXT NOT NULL,
        started_at INTEGER NOT NULL,
        ended_at INTEGER,
        duration INTEGER,
        needs_push BOOLEAN NOT NULL DEFAULT 1
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_items_parent ON items(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags(tag_id)",
    "CREATE INDEX IF NOT EXISTS idx_time_entries_item ON time_entries(item_id)",
)


def is_unavailable_error(exc: sqlite3.Error) -> bool:
    """Return True if a sqlite3 error means the store cannot be used at all."""
    message = str(exc).lower()
    return any(marker in message for marker in _UNAVAILABLE_MARKERS)


class ItemDatabase:
    """SQLite database holding the item hierarchy, tags and time entries."""

    def __init__(self, db_path: Optional[str] = None, settings: Optional[Settings] = None):
        """
        Initialize database connection and create schema if needed.

        Args:
            db_path: Path to the SQLite file. If None, uses settings/environment.
            settings: Optional settings; loaded from the environment when omitted.
        """
        self.settings = settings or Settings.from_env()
        self.db_path = db_path or self.settings.db_path
        self._ensure_db_directory()
        self._init_schema()

    def _ensure_db_directory(self):
        """Ensure database directory exists."""
        db_dir = os.path.dirname(os.path.abspath(self.db_path))
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode; transactions are begun explicitly."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageUnavailableError(
                f"Cannot open database at {self.db_path}: {e}", db_path=self.db_path
            ) from e
        conn.row_factory = sqlite3.Row
        return conn

    def _reraise(self, exc: sqlite3.Error):
        """Re-raise a sqlite3 error, as StorageUnavailableError when the store is unusable."""
        if is_unavailable_error(exc):
            raise StorageUnavailableError(
                f"Database at {self.db_path} is unavailable: {exc}", db_path=self.db_path
            ) from exc
        raise exc

    def _log_query(self, query: str, duration: float, rows_returned: Optional[int] = None):
        """
        Log query performance information.

        Slow queries are logged at WARNING level, others at DEBUG.
        """
        if not self.settings.enable_query_logging:
            return
        threshold = self.settings.query_slow_threshold
        log_level = logging.WARNING if duration >= threshold else logging.DEBUG
        query_preview = " ".join(query.split())
        if len(query_preview) > 200:
            query_preview = query_preview[:200] + "..."
        message = f"Query executed in {duration:.4f}s"
        if rows_returned is not None:
            message += f" ({rows_returned} rows)"
        logger.log(log_level, f"{message}: {query_preview}")

    def _execute_with_logging(self, cursor: sqlite3.Cursor, query: str, params: Optional[Tuple[Any, ...]] = None):
        """
        Execute a query with performance logging and tracing.

        Args:
            cursor: Database cursor
            query: SQL query string
            params: Query parameters

        Returns:
            Cursor after execution
        """
        query_type = query.strip().split(None, 1)[0].lower() if query.strip() else "unknown"
        start_time = time.time()
        with trace_span(
            f"db.{query_type}",
            attributes={"db.system": "sqlite", "db.operation": query_type},
            kind=trace.SpanKind.CLIENT
        ):
            try:
                result = cursor.execute(query, params or ())
            except sqlite3.Error as e:
                duration = time.time() - start_time
                logger.error(f"Query failed after {duration:.4f}s: {' '.join(query.split())[:200]}")
                self._reraise(e)
            duration = time.time() - start_time
            add_span_attribute("db.duration_ms", duration * 1000)
            self._log_query(query, duration, cursor.rowcount if cursor.rowcount >= 0 else None)
            return result

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            for statement in SCHEMA_STATEMENTS:
                self._execute_with_logging(cursor, statement)
            logger.info(f"Item database ready at {self.db_path}")
        finally:
            conn.close()

    @contextmanager
    def session(self) -> Iterator["SQLiteRowStore"]:
        """
        Acquire a store handle for reads. The connection is closed on every exit path.
        """
        from gtdtree.storage.sqlite_storage import SQLiteRowStore

        conn = self._get_connection()
        try:
            yield SQLiteRowStore(self, conn)
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator["SQLiteRowStore"]:
        """
        Acquire a store handle inside one write transaction.

        Commits when the block completes and rolls back on any exception, so a
        multi-row structural change is applied completely or not at all.
        """
        from gtdtree.storage.sqlite_storage import SQLiteRowStore

        conn = self._get_connection()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                self._reraise(e)
            try:
                yield SQLiteRowStore(self, conn)
            except BaseException:
                conn.rollback()
                raise
            try:
                conn.commit()
            except sqlite3.Error as e:
                self._reraise(e)
        finally:
            conn.close()
