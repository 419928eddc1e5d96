"""
Route tests for /items.
"""


class TestCreateItem:
    """Test POST /items and POST /items/inbox."""

    def test_create_item(self, client, gtd):
        gtd.add("P")

        response = client.post("/items", json={"title": "Draft plan", "parent_id": "P"})

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Draft plan"
        assert data["parent_id"] == "P"
        assert data["item_type"] == "Task"
        assert data["sort_order"] == 0

    def test_create_item_with_iso_due_date(self, client, gtd):
        response = client.post(
            "/items", json={"title": "Pay rent", "parent_id": "INBOX", "due_date": "2024-11-01T00:00:00Z"}
        )

        assert response.status_code == 201
        assert response.json()["due_date"] == 1730419200

    def test_create_item_blank_title(self, client, gtd):
        response = client.post("/items", json={"title": "   ", "parent_id": "INBOX"})

        assert response.status_code == 422
        assert "request_id" in response.json()

    def test_create_item_unknown_parent(self, client, gtd):
        response = client.post("/items", json={"title": "x", "parent_id": "missing"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_inbox_capture(self, client, gtd):
        response = client.post("/items/inbox", json={"title": "Idea"})

        assert response.status_code == 201
        assert response.json()["parent_id"] == "INBOX"

    def test_inbox_missing(self, client, builder):
        response = client.post("/items/inbox", json={"title": "Idea"})

        assert response.status_code == 500
        assert response.json()["error"] == "configuration_missing"


class TestReadItems:
    """Test item read endpoints."""

    def test_get_item(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")

        response = client.get("/items/t")

        assert response.status_code == 200
        assert response.json()["id"] == "t"
        assert response.json()["tags"] == []

    def test_get_missing_item(self, client, gtd):
        response = client.get("/items/missing")

        assert response.status_code == 404
        assert response.json()["entity_id"] == "missing"

    def test_roots_and_children(self, client, gtd):
        gtd.add("c", parent_id="INBOX", item_type="Task")

        assert len(client.get("/items/roots").json()) == 5
        assert [row["id"] for row in client.get("/items/INBOX/children").json()] == ["c"]

    def test_node_tree(self, client, gtd):
        gtd.add("c", parent_id="INBOX", item_type="Task")

        response = client.get("/items/tree", params={"root_id": "INBOX", "max_depth": 2})

        assert response.status_code == 200
        assert response.json()["nodes"][0]["children"][0]["id"] == "c"

    def test_search(self, client, gtd):
        gtd.add("a", title="Buy milk", parent_id="INBOX", item_type="Task")

        response = client.get("/items/search", params={"q": "MILK"})

        assert [row["id"] for row in response.json()] == ["a"]

    def test_available(self, client, gtd):
        gtd.add("a", parent_id="INBOX", item_type="Task")

        assert [row["id"] for row in client.get("/items/available").json()] == ["a"]


class TestUpdateItems:
    """Test completion and field update endpoints."""

    def test_complete_task(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")

        response = client.post("/items/t/complete")

        assert response.status_code == 200
        assert response.json()["completed_at"] is not None

    def test_complete_non_task(self, client, gtd):
        gtd.add("f", parent_id="INBOX", item_type="Folder")

        response = client.post("/items/f/complete", json={"completed": True})

        assert response.status_code == 422
        assert response.json()["error"] == "type_mismatch"

    def test_bulk_complete(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")

        response = client.post("/items/complete", json={"item_ids": ["t", "missing"]})

        assert response.status_code == 200
        assert response.json()["updated"] == 1

    def test_update_title_and_type(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")

        assert client.put("/items/t/title", json={"title": "New"}).json()["title"] == "New"
        assert client.put("/items/t/type", json={"item_type": "Note"}).json()["item_type"] == "Note"

    def test_clear_due_date(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task", due_date=100)

        response = client.put("/items/t/due-date", json={"value": None})

        assert response.json()["due_date"] is None
