"""Tests for the governor admin endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient

VALID_URL = "https://youtu.be/dQw4w9WgXcQ"


def _exceed_limit(client: TestClient) -> None:
    for _ in range(4):
        client.get("/api/info", params={"url": VALID_URL})


class TestAdminAuth:
    """Admin routes are closed without a valid X-Admin-Key."""

    def test_missing_key_returns_403(self, client: TestClient) -> None:
        resp = client.get("/admin/stats")

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "missing_admin_key"

    def test_invalid_key_returns_403(self, client: TestClient) -> None:
        resp = client.get("/admin/blocked", headers={"X-Admin-Key": "nope"})

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_admin_key"

    def test_mutators_are_protected(self, client: TestClient, governor) -> None:
        governor.block("203.0.113.7", 600)

        assert client.delete("/admin/blocked").status_code == 403
        assert client.delete("/admin/blocked/203.0.113.7").status_code == 403
        assert client.post(
            "/admin/block", json={"client_key": "x", "duration_minutes": 5}
        ).status_code == 403
        assert governor.is_blocked("203.0.113.7").blocked is True

    def test_auth_can_be_disabled(self, client: TestClient) -> None:
        with patch("ytgrab.core.auth.settings") as mock_settings:
            mock_settings.app.admin_auth_required = False
            assert client.get("/admin/stats").status_code == 200


class TestAdminReads:
    def test_list_blocked_after_escalation(self, client: TestClient, admin_headers) -> None:
        _exceed_limit(client)

        resp = client.get("/admin/blocked", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 1
        entry = body["blocked"][0]
        assert entry["client_key"] == "testclient"
        assert entry["reason"] == "rate-exceeded"
        assert entry["remaining_minutes"] == 60
        assert entry["remaining_seconds"] == 3600

    def test_list_blocked_sorted_ascending(self, client: TestClient, governor, admin_headers) -> None:
        governor.block("c", 3000)
        governor.block("a", 60)
        governor.block("b", 600)

        body = client.get("/admin/blocked", headers=admin_headers).json()

        assert [b["client_key"] for b in body["blocked"]] == ["a", "b", "c"]

    def test_list_sessions(self, client: TestClient, clock, admin_headers) -> None:
        client.get("/api/info", params={"url": VALID_URL})
        client.get("/api/info", params={"url": VALID_URL})
        clock.advance(12)

        body = client.get("/admin/sessions", headers=admin_headers).json()

        assert body["count"] == 1
        assert body["max_clicks"] == 3
        session = body["sessions"][0]
        assert session["client_key"] == "testclient"
        assert session["click_count"] == 2
        assert session["elapsed_seconds"] == 12

    def test_list_sessions_hides_ended_windows(self, client: TestClient, clock, admin_headers) -> None:
        client.get("/api/info", params={"url": VALID_URL})
        clock.advance(61)

        body = client.get("/admin/sessions", headers=admin_headers).json()

        assert body["count"] == 0
        assert body["sessions"] == []

    def test_stats(self, client: TestClient, admin_headers) -> None:
        _exceed_limit(client)
        client.get("/api/info", params={"url": VALID_URL})

        body = client.get("/admin/stats", headers=admin_headers).json()

        assert body["enabled"] is True
        assert body["total_requests"] == 5
        assert body["total_rejected"] == 2
        assert body["total_escalations"] == 1
        assert body["blocked_clients"] == 1
        assert body["tracked_sessions"] == 0
        assert body["max_clicks"] == 3
        assert body["janitor"]["running"] is False
        assert body["janitor"]["interval_seconds"] > 0


class TestAdminWrites:
    def test_manual_block_rejects_client(self, client: TestClient, admin_headers) -> None:
        resp = client.post(
            "/admin/block",
            json={"client_key": "testclient", "duration_minutes": 15},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["duration_minutes"] == 15

        blocked = client.get("/api/info", params={"url": VALID_URL})
        assert blocked.status_code == 429
        assert blocked.json()["error"]["details"]["remaining_minutes"] == 15

    def test_manual_block_validates_duration(self, client: TestClient, admin_headers) -> None:
        resp = client.post(
            "/admin/block",
            json={"client_key": "testclient", "duration_minutes": 0},
            headers=admin_headers,
        )

        assert resp.status_code == 422

    def test_manual_block_rejects_blank_client_key(self, client: TestClient, governor, admin_headers) -> None:
        resp = client.post(
            "/admin/block",
            json={"client_key": "   ", "duration_minutes": 5},
            headers=admin_headers,
        )

        assert resp.status_code == 422
        assert governor.list_blocked() == []

    def test_manual_block_strips_client_key(self, client: TestClient, governor, admin_headers) -> None:
        resp = client.post(
            "/admin/block",
            json={"client_key": "  203.0.113.7 ", "duration_minutes": 5},
            headers=admin_headers,
        )

        assert resp.json()["client_key"] == "203.0.113.7"
        assert governor.is_blocked("203.0.113.7").blocked is True

    def test_unblock_restores_access(self, client: TestClient, admin_headers) -> None:
        _exceed_limit(client)

        resp = client.delete("/admin/blocked/testclient", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json() == {"client_key": "testclient", "unblocked": True}
        assert client.get("/api/info", params={"url": VALID_URL}).status_code == 200

    def test_unblock_unknown_client_returns_404(self, client: TestClient, admin_headers) -> None:
        resp = client.delete("/admin/blocked/198.51.100.9", headers=admin_headers)

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "client_not_blocked"

    def test_clear_all_blocks(self, client: TestClient, governor, admin_headers) -> None:
        governor.block("a", 60)
        governor.block("b", 60)

        resp = client.delete("/admin/blocked", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json() == {"cleared": 2}
        assert client.get("/admin/blocked", headers=admin_headers).json()["blocked"] == []
