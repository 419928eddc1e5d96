"""
Route tests for /timers.
"""


class TestTimerRoutes:
    def test_start_stop_total(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")

        started = client.post("/timers/items/t/start")
        assert started.status_code == 201
        assert len(client.get("/timers/active").json()) == 1

        stopped = client.post("/timers/stop", json={"item_id": "t"})
        assert stopped.status_code == 200
        assert stopped.json()["ended_at"] is not None

        total = client.get("/timers/items/t/total").json()
        assert total["running_entries"] == 0

    def test_stop_without_arguments(self, client, gtd):
        response = client.post("/timers/stop", json={})

        assert response.status_code == 400

    def test_end_before_start(self, client, gtd):
        gtd.add("t", parent_id="INBOX", item_type="Task")
        entry_id = client.post("/timers/items/t/start").json()["id"]

        response = client.put(f"/timers/{entry_id}/end", json={"value": "2000-01-01T00:00:00Z"})

        assert response.status_code == 409
