"""
Tests for database setup, sessions, transactions and the SQLite row store.
"""
import os
import sqlite3
import shutil
import tempfile

import pytest

from gtdtree.config import Settings
from gtdtree.database import ItemDatabase, is_unavailable_error
from gtdtree.exceptions import StorageUnavailableError


def test_schema_created(temp_db):
    """Test that all tables exist after opening a new file."""
    _, db_path = temp_db
    conn = sqlite3.connect(db_path)
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert {"items", "tags", "item_tags", "time_entries"} <= tables


def test_existing_database_opened_untouched(settings):
    """Test that an existing database keeps its rows when opened."""
    temp_dir = tempfile.mkdtemp()
    try:
        db_path = os.path.join(temp_dir, "existing.db")
        ItemDatabase(db_path, settings=settings)
        conn = sqlite3.connect(db_path)
        conn.execute(
            "INSERT INTO items (id, title, parent_id, sort_order, created_at, modified_at, item_type, needs_push) "
            "VALUES ('A', 'Existing', NULL, 0, 1, 1, 'Folder', 0)"
        )
        conn.commit()
        conn.close()

        db = ItemDatabase(db_path, settings=settings)
        with db.session() as store:
            row = store.get_item("A")
        assert row["title"] == "Existing"
        assert row["needs_push"] is False
    finally:
        shutil.rmtree(temp_dir)


def test_transaction_commits(db, builder):
    """Test that a completed transaction is visible afterwards."""
    builder.add("P")
    with db.transaction() as store:
        store.update_item("P", title="Renamed", modified_at=5)

    assert builder.row("P")["title"] == "Renamed"


def test_transaction_rolls_back_on_error(db, builder):
    """Test that every write in a failed transaction is discarded."""
    builder.add("P")
    builder.add("Q")

    with pytest.raises(RuntimeError):
        with db.transaction() as store:
            store.update_item("P", title="Changed", modified_at=5)
            store.tombstone_items(["Q"], 5)
            raise RuntimeError("boom")

    assert builder.row("P")["title"] == "P"
    assert builder.row("Q")["deleted_at"] is None


def test_update_marks_needs_push(db, temp_db):
    """Test that every update sets needs_push even when the caller tries to clear it."""
    _, db_path = temp_db
    with db.transaction() as store:
        store.insert_item({"id": "P", "title": "P", "created_at": 1, "modified_at": 1, "item_type": "Folder"})
    conn = sqlite3.connect(db_path)
    conn.execute("UPDATE items SET needs_push = 0")
    conn.commit()
    conn.close()

    with db.transaction() as store:
        store.update_item("P", modified_at=2, needs_push=False)
        assert store.get_item("P")["needs_push"] is True


def test_update_rejects_unknown_columns(db, builder):
    builder.add("P")
    with pytest.raises(ValueError, match="Unknown columns"):
        with db.transaction() as store:
            store.update_item("P", colour="red")


def test_deleted_rows_hidden(db, builder):
    """Test that tombstoned rows are only visible when asked for."""
    builder.add("P")
    builder.add("c", parent_id="P")
    with db.transaction() as store:
        assert store.tombstone_items(["c"], 10) == 1
        assert store.tombstone_items(["c"], 11) == 0

    with db.session() as store:
        assert store.get_item("c") is None
        assert store.get_item("c", include_deleted=True)["deleted_at"] == 10
        assert store.list_children("P") == []
        assert store.max_child_sort_order("P") is None
        assert store.count_live_items() == 1


def test_item_tag_revived_after_soft_delete(db, builder):
    """Test that re-adding a removed tag revives the same association row."""
    builder.add("P")
    tag_id = builder.tag("P", "next")
    with db.transaction() as store:
        assert store.soft_delete_item_tag("P", tag_id, 20) is True
        assert store.list_live_tag_ids("P") == []
        store.insert_item_tag("P", tag_id, 30)
        association = store.get_item_tag("P", tag_id)

    assert association["deleted_at"] is None
    assert association["modified_at"] == 30


def test_garbage_file_is_unavailable(settings):
    """Test that a file that is not a database raises StorageUnavailableError."""
    temp_dir = tempfile.mkdtemp()
    try:
        db_path = os.path.join(temp_dir, "garbage.db")
        with open(db_path, "wb") as f:
            f.write(b"this is definitely not a sqlite database " * 200)

        with pytest.raises(StorageUnavailableError) as exc_info:
            ItemDatabase(db_path, settings=settings)

        assert isinstance(exc_info.value.__cause__, sqlite3.DatabaseError)
        assert exc_info.value.db_path == db_path
    finally:
        shutil.rmtree(temp_dir)


def test_other_sqlite_errors_propagate(db):
    """Test that ordinary SQL errors are not reported as unavailability."""
    with pytest.raises(sqlite3.OperationalError):
        with db.session() as store:
            store._execute("SELECT * FROM no_such_table")


def test_is_unavailable_error():
    assert is_unavailable_error(sqlite3.OperationalError("database is locked")) is True
    assert is_unavailable_error(sqlite3.DatabaseError("file is not a database")) is True
    assert is_unavailable_error(sqlite3.OperationalError("no such column: x")) is False


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("GTDTREE_TRASH_TITLE", "Bin")
    monkeypatch.setenv("GTDTREE_STUCK_EXCLUDED_TAGS", "someday, waiting")
    monkeypatch.setenv("DB_ENABLE_QUERY_LOGGING", "false")

    settings = Settings.from_env()

    assert settings.trash_title == "Bin"
    assert settings.stuck_excluded_tags == ("someday", "waiting")
    assert settings.enable_query_logging is False
