"""
Route tests for /tags.
"""


class TestTagRoutes:
    def test_create_and_list(self, client, gtd):
        response = client.post("/tags", json={"name": "next", "color": "green"})

        assert response.status_code == 201
        assert [tag["name"] for tag in client.get("/tags").json()] == ["next"]

    def test_duplicate_name_conflicts(self, client, gtd):
        client.post("/tags", json={"name": "next"})

        response = client.post("/tags", json={"name": "NEXT"})

        assert response.status_code == 409

    def test_get_missing_tag(self, client, gtd):
        assert client.get("/tags/missing").status_code == 404

    def test_attach_query_detach(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")
        tag_id = client.post("/tags", json={"name": "errand"}).json()["id"]

        assert client.post(f"/tags/{tag_id}/items/t").json()["added"] is True
        assert [tag["id"] for tag in client.get("/tags/items/t").json()] == [tag_id]

        found = client.post("/tags/items/query", json={"tag_names": ["Errand"]}).json()
        assert [item["id"] for item in found["items"]] == ["t"]

        assert client.delete(f"/tags/{tag_id}/items/t").json()["removed"] is True
        assert client.get("/tags/items/t").json() == []

    def test_query_requires_tags(self, client, gtd):
        assert client.post("/tags/items/query", json={}).status_code == 400

    def test_rename_and_delete(self, client, gtd):
        tag_id = client.post("/tags", json={"name": "old"}).json()["id"]

        assert client.put(f"/tags/{tag_id}", json={"name": "new"}).json()["name"] == "new"
        assert client.delete(f"/tags/{tag_id}").json()["deleted"] is True
        assert client.get(f"/tags/{tag_id}").status_code == 404
