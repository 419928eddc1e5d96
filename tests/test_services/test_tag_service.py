"""
Unit tests for TagService.
Tests business logic in isolation without HTTP framework dependencies.
"""
import pytest
from unittest.mock import MagicMock

from gtdtree.exceptions import NotFoundError, InvalidRelationError
from gtdtree.services.tag_service import TagService


@pytest.fixture
def mock_store():
    """Create a mock row store."""
    return MagicMock()


@pytest.fixture
def mock_db(mock_store):
    """Create a mock database whose session()/transaction() yield the mock store."""
    db = MagicMock()
    db.session.return_value.__enter__.return_value = mock_store
    db.transaction.return_value.__enter__.return_value = mock_store
    return db


@pytest.fixture
def tag_service(mock_db):
    """Create a TagService instance with mocked database."""
    return TagService(mock_db, clock=lambda: 1000, id_factory=lambda: "TAG-1")


class TestCreateTag:
    """Tests for create_tag method."""

    def test_create_tag_success(self, tag_service, mock_store):
        """Test successful tag creation."""
        # Setup
        mock_store.find_tag_by_name.return_value = None
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "next", "color": None}

        # Execute
        result = tag_service.create_tag("next")

        # Verify
        assert result["id"] == "TAG-1"
        mock_store.insert_tag.assert_called_once_with("TAG-1", "next", None)
        mock_store.get_tag.assert_called_once_with("TAG-1")

    def test_create_tag_strips_whitespace(self, tag_service, mock_store):
        """Test that tag name is stripped of whitespace."""
        # Setup
        mock_store.find_tag_by_name.return_value = None
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "waiting"}

        # Execute
        tag_service.create_tag("  waiting  ", color="#ff0000")

        # Verify
        mock_store.insert_tag.assert_called_once_with("TAG-1", "waiting", "#ff0000")

    def test_create_tag_empty_name_raises_value_error(self, tag_service, mock_db):
        """Test that empty tag name raises ValueError."""
        # Execute & Verify
        with pytest.raises(ValueError, match="Tag name cannot be empty or whitespace"):
            tag_service.create_tag("   ")

        mock_db.transaction.assert_not_called()

    def test_create_tag_duplicate_any_case(self, tag_service, mock_store):
        """Test that a case-insensitive duplicate is rejected."""
        # Setup
        mock_store.find_tag_by_name.return_value = {"id": "TAG-0", "name": "Next"}

        # Execute & Verify
        with pytest.raises(InvalidRelationError, match="already exists"):
            tag_service.create_tag("NEXT")

        mock_store.insert_tag.assert_not_called()


class TestRenameTag:
    """Tests for rename_tag method."""

    def test_rename_success(self, tag_service, mock_store):
        # Setup
        mock_store.get_tag.side_effect = [
            {"id": "TAG-1", "name": "old"},
            {"id": "TAG-1", "name": "new"},
        ]
        mock_store.find_tag_by_name.return_value = None

        # Execute
        result = tag_service.rename_tag("TAG-1", "new")

        # Verify
        assert result["name"] == "new"
        mock_store.find_tag_by_name.assert_called_once_with("new", exclude_id="TAG-1")
        mock_store.update_tag.assert_called_once_with("TAG-1", name="new")

    def test_rename_to_existing_name(self, tag_service, mock_store):
        # Setup
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "old"}
        mock_store.find_tag_by_name.return_value = {"id": "TAG-2", "name": "taken"}

        # Execute & Verify
        with pytest.raises(InvalidRelationError):
            tag_service.rename_tag("TAG-1", "Taken")
        mock_store.update_tag.assert_not_called()

    def test_rename_missing_tag(self, tag_service, mock_store):
        # Setup
        mock_store.get_tag.return_value = None

        # Execute & Verify
        with pytest.raises(NotFoundError):
            tag_service.rename_tag("TAG-9", "x")


class TestDeleteTag:
    """Tests for delete_tag method."""

    def test_delete_soft_deletes_tag_and_associations(self, tag_service, mock_store):
        # Setup
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "next"}
        mock_store.soft_delete_tag_associations.return_value = 3

        # Execute
        result = tag_service.delete_tag("TAG-1")

        # Verify
        assert result["detached_items"] == 3
        mock_store.soft_delete_tag_associations.assert_called_once_with("TAG-1", 1000)
        mock_store.update_tag.assert_called_once_with("TAG-1", deleted_at=1000)


class TestItemTags:
    """Tests for attaching and detaching tags."""

    def test_add_tag(self, tag_service, mock_store):
        # Setup
        mock_store.get_item.return_value = {"id": "A", "title": "Task"}
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "next"}
        mock_store.get_item_tag.return_value = None

        # Execute
        result = tag_service.add_tag_to_item("A", "TAG-1")

        # Verify
        assert result["added"] is True
        mock_store.insert_item_tag.assert_called_once_with("A", "TAG-1", 1000)

    def test_add_tag_already_attached(self, tag_service, mock_store):
        # Setup
        mock_store.get_item.return_value = {"id": "A", "title": "Task"}
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "next"}
        mock_store.get_item_tag.return_value = {"item_id": "A", "tag_id": "TAG-1", "deleted_at": None}

        # Execute
        result = tag_service.add_tag_to_item("A", "TAG-1")

        # Verify
        assert result["added"] is False
        mock_store.insert_item_tag.assert_not_called()

    def test_add_tag_revives_removed_association(self, tag_service, mock_store):
        # Setup
        mock_store.get_item.return_value = {"id": "A", "title": "Task"}
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "next"}
        mock_store.get_item_tag.return_value = {"item_id": "A", "tag_id": "TAG-1", "deleted_at": 500}

        # Execute
        result = tag_service.add_tag_to_item("A", "TAG-1")

        # Verify
        assert result["added"] is True
        mock_store.insert_item_tag.assert_called_once_with("A", "TAG-1", 1000)

    def test_add_tag_missing_item(self, tag_service, mock_store):
        # Setup
        mock_store.get_item.return_value = None

        # Execute & Verify
        with pytest.raises(NotFoundError, match="Item not found: A"):
            tag_service.add_tag_to_item("A", "TAG-1")

    def test_remove_tag(self, tag_service, mock_store):
        # Setup
        mock_store.get_item.return_value = {"id": "A", "title": "Task"}
        mock_store.get_tag.return_value = {"id": "TAG-1", "name": "next"}
        mock_store.soft_delete_item_tag.return_value = True

        # Execute
        result = tag_service.remove_tag_from_item("A", "TAG-1")

        # Verify
        assert result["removed"] is True
        mock_store.soft_delete_item_tag.assert_called_once_with("A", "TAG-1", 1000)


class TestItemsByTags:
    """Tests for the all-tags item queries (real database)."""

    @pytest.fixture
    def tags(self, db):
        return TagService(db)

    def test_requires_every_tag(self, tags, gtd):
        gtd.add("a", item_type="Task", parent_id="INBOX")
        gtd.add("b", item_type="Task", parent_id="INBOX")
        gtd.tag("a", "next")
        gtd.tag("a", "errand")
        gtd.tag("b", "next")

        result = tags.get_items_by_tag_names(["Next", "errand"])

        assert [item["id"] for item in result["items"]] == ["a"]
        assert {tag["name"] for tag in result["tags"]} == {"next", "errand"}

    def test_archive_and_completed_hidden_by_default(self, tags, gtd):
        gtd.add("live", item_type="Task", parent_id="INBOX")
        gtd.add("done", item_type="Task", parent_id="INBOX", completed_at=5)
        gtd.add("shelved", item_type="Task", parent_id="ARCHIVE")
        for item_id in ("live", "done", "shelved"):
            gtd.tag(item_id, "next")

        default = tags.get_items_by_tag_names(["next"])
        everything = tags.get_items_by_tag_names(["next"], include_completed=True, include_archive=True)

        assert [item["id"] for item in default["items"]] == ["live"]
        assert {item["id"] for item in everything["items"]} == {"live", "done", "shelved"}

    def test_unknown_tag_name(self, tags, gtd):
        with pytest.raises(NotFoundError):
            tags.get_items_by_tag_names(["nope"])

    def test_deleted_tag_drops_associations(self, tags, gtd, db):
        gtd.add("a", item_type="Task", parent_id="INBOX")
        tag_id = gtd.tag("a", "next")

        tags.delete_tag(tag_id)

        assert tags.get_tag(tag_id) is None
        with db.session() as store:
            assert store.get_item_tag("a", tag_id)["deleted_at"] is not None
