import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from shutdown_log.app import create_app
from shutdown_log.auth import Identity, StaticAuthProvider
from shutdown_log.db import InMemoryDbClient
from shutdown_log.dependencies import get_auth_provider, get_db_client
from shutdown_log.errors import StoreFailure
from shutdown_log.types import default_log_data

ALICE = Identity(id="alice-id", email="alice@example.com")
BOB = Identity(id="bob-id", email="bob@example.com")


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.auth = StaticAuthProvider(tokens={"alice-token": ALICE, "bob-token": BOB})
        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        app.dependency_overrides[get_auth_provider] = lambda: self.auth
        self.client = TestClient(app)
        self.headers = {"Authorization": "Bearer alice-token"}

    def _today(self, headers=None):
        response = self.client.get("/api/logs/today", headers=headers or self.headers)
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_health_needs_no_auth(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/logs/today").status_code, 401)
        response = self.client.get(
            "/api/logs", headers={"Authorization": "Bearer forged"}
        )
        self.assertEqual(response.status_code, 401)

    def test_me(self):
        response = self.client.get("/api/me", headers=self.headers)
        self.assertEqual(response.json(), {"id": ALICE.id, "email": ALICE.email})

    def test_today_is_created_once(self):
        first = self._today()
        second = self._today()
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(first["user_id"], ALICE.id)
        self.assertEqual(first["log_data"], default_log_data(first["date"]))
        self.assertEqual(first["revision"], 1)

    def test_today_rejects_unknown_time_zone(self):
        response = self.client.get(
            "/api/logs/today", params={"tz": "Nowhere/Special"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 422)

    def test_history(self):
        for day in ("2024-01-01", "2024-01-03", "2024-01-02"):
            self.db.create_log(ALICE.id, day, default_log_data(day))
        self.db.create_log(BOB.id, "2024-01-05", default_log_data("2024-01-05"))

        response = self.client.get("/api/logs", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        logs = response.json()["logs"]
        self.assertEqual([log["date"] for log in logs], ["2024-01-03", "2024-01-02", "2024-01-01"])
        self.assertEqual(logs[0]["log_data"], {"accomplished": [], "in_progress": []})

    def test_other_users_logs_are_hidden(self):
        log = self._today()
        bob = {"Authorization": "Bearer bob-token"}
        self.assertEqual(self.client.get(f"/api/logs/{log['id']}", headers=bob).status_code, 404)
        response = self.client.patch(
            f"/api/logs/{log['id']}", json={"changes": {"shutdown_ritual": "x"}}, headers=bob
        )
        self.assertEqual(response.status_code, 404)

    def test_missing_log(self):
        self.assertEqual(self.client.get("/api/logs/nope", headers=self.headers).status_code, 404)

    def test_replace_then_fetch(self):
        log = self._today()
        new_data = dict(log["log_data"], accomplished=["shipped feature X"])
        response = self.client.put(
            f"/api/logs/{log['id']}", json={"log_data": new_data}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)

        fetched = self.client.get(f"/api/logs/{log['id']}", headers=self.headers).json()
        self.assertEqual(fetched["log_data"], new_data)
        self.assertEqual(fetched["revision"], 2)

    def test_replace_with_stale_revision_conflicts(self):
        log = self._today()
        url = f"/api/logs/{log['id']}"
        body = {"log_data": log["log_data"], "revision": 1}
        self.assertEqual(self.client.put(url, json=body, headers=self.headers).status_code, 200)

        response = self.client.put(url, json=body, headers=self.headers)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["revision"], 2)

    def test_patch_merges_fields(self):
        log = self._today()
        url = f"/api/logs/{log['id']}"
        self.client.patch(url, json={"changes": {"loose_thoughts": ["idea"]}}, headers=self.headers)
        response = self.client.patch(
            url, json={"changes": {"shutdown_ritual": "closed laptop"}}, headers=self.headers
        )
        data = response.json()["log_data"]
        self.assertEqual(data["loose_thoughts"], ["idea"])
        self.assertEqual(data["shutdown_ritual"], "closed laptop")

    def test_tag_items(self):
        log = self._today()
        url = f"/api/logs/{log['id']}/items/accomplished"
        self.client.post(url, json={"text": "wrote tests"}, headers=self.headers)
        response = self.client.post(url, json={"text": " wrote tests "}, headers=self.headers)
        self.assertEqual(response.json()["log_data"]["accomplished"], ["wrote tests"])

        response = self.client.delete(url, params={"text": "wrote tests"}, headers=self.headers)
        self.assertEqual(response.json()["log_data"]["accomplished"], [])

    def test_unknown_item_list(self):
        log = self._today()
        response = self.client.post(
            f"/api/logs/{log['id']}/items/blockers", json={"text": "x"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 404)

    def test_in_progress_reasoning_paths(self):
        log = self._today()
        base = f"/api/logs/{log['id']}"
        for item in ("migrate db", "fix flaky test"):
            self.client.post(f"{base}/items/in_progress", json={"text": item}, headers=self.headers)
        for item in ("migrate db", "fix flaky test"):
            self.client.put(
                f"{base}/reasons", json={"item": item, "reason": "waiting"}, headers=self.headers
            )

        # Removing through the tag list leaves the reasoning behind.
        response = self.client.delete(
            f"{base}/items/in_progress", params={"text": "fix flaky test"}, headers=self.headers
        )
        data = response.json()["log_data"]
        self.assertEqual(data["in_progress"], ["migrate db"])
        self.assertIn("fix flaky test", data["not_done_reasoning"])

        response = self.client.delete(
            f"{base}/reasons", params={"item": "migrate db"}, headers=self.headers
        )
        data = response.json()["log_data"]
        self.assertEqual(data["in_progress"], [])
        self.assertEqual(data["not_done_reasoning"], {"fix flaky test": "waiting"})

    def test_blank_reason_rejected(self):
        log = self._today()
        response = self.client.put(
            f"/api/logs/{log['id']}/reasons",
            json={"item": "x", "reason": "  "},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_reason_for_item_not_in_progress_rejected(self):
        log = self._today()
        response = self.client.put(
            f"/api/logs/{log['id']}/reasons",
            json={"item": "never added", "reason": "waiting"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)
        fetched = self.client.get(f"/api/logs/{log['id']}", headers=self.headers).json()
        self.assertEqual(fetched["log_data"]["not_done_reasoning"], {})

    def test_history_with_malformed_payloads(self):
        log = self._today()
        url = f"/api/logs/{log['id']}"
        for accomplished in ([1], "x"):
            self.client.put(
                url, json={"log_data": {"accomplished": accomplished}}, headers=self.headers
            )
            response = self.client.get("/api/logs", headers=self.headers)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()["logs"][0]["log_data"]["accomplished"], [])

    def test_edits_on_wrong_typed_fields(self):
        log = self._today()
        url = f"/api/logs/{log['id']}"
        self.client.put(url, json={"log_data": {"cleanup": ["x"]}}, headers=self.headers)
        response = self.client.post(f"{url}/cleanup/desk_reset/toggle", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["log_data"]["cleanup"]["desk_reset"])

        self.client.put(url, json={"log_data": {"blockers": "oops"}}, headers=self.headers)
        response = self.client.post(
            f"{url}/blockers", json={"item": "CI down", "needs": "infra fix"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["log_data"]["blockers"], [{"item": "CI down", "needs": "infra fix"}]
        )

    def test_blockers_and_decisions(self):
        log = self._today()
        base = f"/api/logs/{log['id']}"
        self.client.post(
            f"{base}/blockers", json={"item": "CI down", "needs": "infra fix"}, headers=self.headers
        )
        response = self.client.post(
            f"{base}/decisions", json={"item": "pick vendor", "needs": "pricing"}, headers=self.headers
        )
        data = response.json()["log_data"]
        self.assertEqual(data["blockers"], [{"item": "CI down", "needs": "infra fix"}])
        self.assertEqual(data["decisions_needed"], [{"item": "pick vendor", "needs": "pricing"}])

        response = self.client.delete(f"{base}/blockers/0", headers=self.headers)
        self.assertEqual(response.json()["log_data"]["blockers"], [])
        self.assertEqual(self.client.delete(f"{base}/blockers/0", headers=self.headers).status_code, 404)

        response = self.client.post(
            f"{base}/blockers", json={"item": "CI down", "needs": ""}, headers=self.headers
        )
        self.assertEqual(response.status_code, 422)

    def test_cleanup_toggle(self):
        log = self._today()
        url = f"/api/logs/{log['id']}/cleanup/updated_calendar/toggle"
        response = self.client.post(url, headers=self.headers)
        cleanup = response.json()["log_data"]["cleanup"]
        self.assertTrue(cleanup["updated_calendar"])
        self.assertFalse(cleanup["desk_reset"])

        bad = f"/api/logs/{log['id']}/cleanup/watered_plants/toggle"
        self.assertEqual(self.client.post(bad, headers=self.headers).status_code, 404)

    def test_shutdown_ritual(self):
        log = self._today()
        response = self.client.put(
            f"/api/logs/{log['id']}/shutdown-ritual",
            json={"text": "Closed laptop, said 'done' out loud"},
            headers=self.headers,
        )
        self.assertEqual(
            response.json()["log_data"]["shutdown_ritual"], "Closed laptop, said 'done' out loud"
        )

    def test_store_failure_maps_to_503(self):
        with patch.object(
            self.db, "list_log_summaries", side_effect=StoreFailure("unreachable")
        ):
            response = self.client.get("/api/logs", headers=self.headers)
        self.assertEqual(response.status_code, 503)
        self.assertIn("try again", response.json()["detail"])


if __name__ == "__main__":
    unittest.main()
