"""
Route tests for /tree.
"""


class TestOrderingRoutes:
    """Test move, position, swap and reorder endpoints."""

    def test_move(self, client, gtd):
        gtd.add("P")
        gtd.add("Q")

        response = client.post("/tree/items/Q/move", json={"parent_id": "P"})

        assert response.status_code == 200
        assert response.json()["parent_id"] == "P"

    def test_move_into_descendant_conflicts(self, client, gtd):
        gtd.add("P")
        gtd.add("c", parent_id="P")

        response = client.post("/tree/items/P/move", json={"parent_id": "c"})

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_relation"

    def test_position(self, client, gtd):
        gtd.add("P")
        gtd.add("a", parent_id="P")
        gtd.add("b", parent_id="P")

        response = client.post("/tree/items/b/position", json={"position": -3})

        assert response.json()["position"] == 0
        assert gtd.orders("P") == {"b": 0, "a": 1}

    def test_swap(self, client, gtd):
        gtd.add("P")
        gtd.add("a", parent_id="P")
        gtd.add("b", parent_id="P")

        response = client.post("/tree/swap", json={"first_id": "a", "second_id": "b"})

        assert response.status_code == 200
        assert gtd.orders("P") == {"b": 0, "a": 1}

    def test_reorder_wrong_count(self, client, gtd):
        gtd.add("P")
        gtd.add("a", parent_id="P")
        gtd.add("b", parent_id="P")

        response = client.put("/tree/children/P/order", json={"ordered_ids": ["b"]})

        assert response.status_code == 409
        assert response.json()["expected"] == 2
        assert response.json()["actual"] == 1

    def test_reorder_roots(self, client, gtd):
        order = ["TEMPLATES", "REFERENCE", "ARCHIVE", "TRASH", "INBOX"]

        response = client.put("/tree/children/root/order", json={"ordered_ids": order})

        assert response.json()["changed"] is True
        assert [row["id"] for row in gtd.children(None)] == order


class TestRelocationRoutes:
    """Test delete, archive and empty trash endpoints."""

    def test_delete_then_empty(self, client, gtd):
        gtd.add("P")

        deleted = client.delete("/tree/items/P")
        assert deleted.json()["parent_id"] == "TRASH"

        emptied = client.post("/tree/trash/empty")
        assert emptied.json()["removed_ids"] == ["P"]

    def test_empty_trash_keeps_recent(self, client, gtd):
        gtd.add("old", parent_id="TRASH", modified_at=1_000_000)

        response = client.post("/tree/trash/empty", json={"keep_items_since": "1970-01-01T00:00:00Z"})

        assert response.json()["count"] == 0

    def test_archive_twice(self, client, gtd):
        gtd.add("P")

        first = client.post("/tree/items/P/archive").json()
        second = client.post("/tree/items/P/archive").json()

        assert first["already_archived"] is False
        assert second["already_archived"] is True
        assert second["item"]["modified_at"] == first["item"]["modified_at"]

    def test_delete_without_trash(self, client, builder):
        builder.add("P")

        response = client.delete("/tree/items/P")

        assert response.status_code == 500
        assert response.json()["error"] == "configuration_missing"


class TestTemplateAndStuckRoutes:
    def test_instantiate(self, client, gtd):
        gtd.add("T", parent_id="TEMPLATES", item_type="Template")
        gtd.add("s", parent_id="T", item_type="Task")

        response = client.post("/tree/templates/T/instantiate", json={"title": "Launch"})

        assert response.status_code == 201
        data = response.json()
        assert data["created_count"] == 2
        assert data["item"]["parent_id"] == "INBOX"
        assert data["item"]["item_type"] == "Project"

    def test_stuck_projects_not_computable(self, client, gtd):
        response = client.get("/tree/stuck-projects")

        assert response.status_code == 200
        assert response.json()["computable"] is False

    def test_stuck_projects(self, client, gtd):
        gtd.add("Work")
        gtd.add("F", parent_id="Work")
        gtd.add("x", parent_id="INBOX", item_type="Task")
        gtd.tag("x", "next")

        response = client.get("/tree/stuck-projects")

        assert [project["id"] for project in response.json()["projects"]] == ["F"]

    def test_descendants(self, client, gtd):
        gtd.add("c", parent_id="INBOX")
        gtd.add("g", parent_id="c")

        response = client.get("/tree/items/INBOX/descendants", params={"max_depth": 1})

        assert response.json()["descendant_ids"] == ["c"]
