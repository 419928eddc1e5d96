"""
Shared fixtures: temporary databases, a controllable clock and a helper for
laying out item trees row by row.
"""
import os
import shutil
import tempfile
from typing import Optional, Dict, Any, List

import pytest

from gtdtree.config import Settings
from gtdtree.database import ItemDatabase

BASE_TIME = 1_700_000_000


class FakeClock:
    """Callable clock returning a fixed epoch second until advanced."""

    def __init__(self, start: int = BASE_TIME):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class TreeBuilder:
    """Inserts item/tag rows directly so tests control ids, positions and timestamps."""

    def __init__(self, db: ItemDatabase):
        self.db = db
        self._tags: Dict[str, str] = {}

    def add(
        self,
        item_id: str,
        title: Optional[str] = None,
        parent_id: Optional[str] = None,
        item_type: str = "Folder",
        sort_order: Optional[int] = None,
        modified_at: int = BASE_TIME - 86400,
        **fields: Any,
    ) -> str:
        with self.db.transaction() as store:
            if sort_order is None:
                current = store.max_child_sort_order(parent_id)
                sort_order = 0 if current is None else current + 1
            row = {
                "id": item_id,
                "title": title or item_id,
                "parent_id": parent_id,
                "sort_order": sort_order,
                "created_at": fields.pop("created_at", modified_at),
                "modified_at": modified_at,
                "item_type": item_type,
            }
            row.update(fields)
            store.insert_item(row)
        return item_id

    def tag(self, item_id: str, name: str) -> str:
        with self.db.transaction() as store:
            tag_id = self._tags.get(name.lower())
            if tag_id is None:
                tag_id = f"TAG-{name.upper()}"
                store.insert_tag(tag_id, name)
                self._tags[name.lower()] = tag_id
            store.insert_item_tag(item_id, tag_id, BASE_TIME - 86400)
        return tag_id

    def row(self, item_id: str) -> Optional[Dict[str, Any]]:
        with self.db.session() as store:
            return store.get_item(item_id, include_deleted=True)

    def children(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        with self.db.session() as store:
            return store.list_children(parent_id)

    def orders(self, parent_id: Optional[str]) -> Dict[str, int]:
        return {row["id"]: row["sort_order"] for row in self.children(parent_id)}

    def count(self) -> int:
        with self.db.session() as store:
            return store.count_live_items()

    def sentinels(self) -> None:
        """Create the standard root folders."""
        for name in ("Inbox", "Trash", "Archive", "Reference", "Templates"):
            self.add(name.upper(), title=name)


@pytest.fixture
def settings():
    return Settings(db_path=":unused:", enable_query_logging=False)


@pytest.fixture
def temp_db(settings):
    """Create a temporary database for testing."""
    temp_dir = tempfile.mkdtemp()
    db_path = os.path.join(temp_dir, "test.db")
    db = ItemDatabase(db_path, settings=settings)
    yield db, db_path
    shutil.rmtree(temp_dir)


@pytest.fixture
def db(temp_db):
    return temp_db[0]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def builder(db):
    return TreeBuilder(db)


@pytest.fixture
def gtd(builder):
    """Builder with Inbox, Trash, Archive, Reference and Templates in place."""
    builder.sentinels()
    return builder
