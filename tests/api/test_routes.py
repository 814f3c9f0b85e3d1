"""Tests for API routes in src/api/routes.py and middleware in src/main.py."""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.http.client import RequestClient
from src.http.models import TransportResponse
from src.main import app

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SECRET = "s3cret-token"


def _client_factory(transport):
    """Replacement for RequestClient in routes that pins the transport."""

    def _factory(default_headers=None):
        return RequestClient(default_headers=default_headers, transport=transport)

    return _factory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> TestClient:
    """Return a synchronous TestClient for the FastAPI app."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def webhook_secret():
    with patch("src.config.WEBHOOK_SECRET", SECRET):
        yield SECRET


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


class TestHealth:
    """GET /api/health"""

    def test_health_returns_200(self, client: TestClient):
        response = client.get("/api/health")
        assert response.status_code == 200

    def test_health_body(self, client: TestClient):
        """Body reports status, version and a timestamp."""
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["version"]
        assert data["timestamp"]

    def test_security_headers_present(self, client: TestClient):
        """Security headers are added to every response."""
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


# ---------------------------------------------------------------------------
# Webhook endpoint
# ---------------------------------------------------------------------------


class TestWebhook:
    """POST /api/webhook"""

    def test_valid_secret_accepted(self, client: TestClient, webhook_secret):
        response = client.post(
            "/api/webhook",
            json={"update_id": 42, "message": {"text": "/start"}},
            headers={"X-Webhook-Secret-Token": webhook_secret},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"received": True, "update_id": 42}

    def test_wrong_secret_rejected(self, client: TestClient, webhook_secret):
        response = client.post(
            "/api/webhook",
            json={"update_id": 1},
            headers={"X-Webhook-Secret-Token": webhook_secret + "x"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_missing_secret_rejected(self, client: TestClient, webhook_secret):
        response = client.post("/api/webhook", json={"update_id": 1})
        assert response.status_code == 401

    def test_secret_compared_in_constant_time(self, client: TestClient, webhook_secret):
        """The route delegates to timing_safe_equal."""
        with patch("src.api.routes.timing_safe_equal", return_value=False) as compare:
            response = client.post(
                "/api/webhook",
                json={"update_id": 1},
                headers={"X-Webhook-Secret-Token": webhook_secret},
            )
        compare.assert_called_once_with(webhook_secret, webhook_secret)
        assert response.status_code == 401

    def test_unconfigured_secret_is_server_error(self, client: TestClient):
        with patch("src.config.WEBHOOK_SECRET", ""):
            response = client.post(
                "/api/webhook",
                json={"update_id": 1},
                headers={"X-Webhook-Secret-Token": ""},
            )
        assert response.status_code == 500
        assert response.json()["message"] == "Server configuration error"

    def test_oversized_body_rejected(self, client: TestClient, webhook_secret):
        with patch("src.config.MAX_REQUEST_SIZE", 16):
            response = client.post(
                "/api/webhook",
                content=json.dumps({"update_id": 1, "padding": "x" * 64}),
                headers={
                    "X-Webhook-Secret-Token": webhook_secret,
                    "Content-Type": "application/json",
                },
            )
        assert response.status_code == 400
        assert response.json()["message"] == "Request body too large"

    def test_invalid_json_rejected(self, client: TestClient, webhook_secret):
        response = client.post(
            "/api/webhook",
            content="{not json",
            headers={"X-Webhook-Secret-Token": webhook_secret},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_non_object_payload_rejected(self, client: TestClient, webhook_secret):
        response = client.post(
            "/api/webhook",
            json=[1, 2, 3],
            headers={"X-Webhook-Secret-Token": webhook_secret},
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Guarded fetch endpoint
# ---------------------------------------------------------------------------


class TestFetch:
    """POST /api/fetch"""

    def test_blocked_target_is_400_without_io(self, client: TestClient, transport):
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            response = client.post("/api/fetch", json={"url": "http://127.0.0.1/admin"})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_TARGET"
        assert transport.call_count == 0

    def test_network_error_is_500(self, client: TestClient, make_transport):
        transport = make_transport(error=ConnectionError("connection refused"))
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            response = client.post("/api/fetch", json={"url": "https://example.com/"})
        assert response.status_code == 500
        assert response.json()["message"] == "connection refused"

    def test_success_returns_upstream(self, client: TestClient, make_transport):
        transport = make_transport(
            [TransportResponse(status=404, headers=[("content-type", "text/plain")], body=b"nope")]
        )
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            response = client.post("/api/fetch", json={"url": "https://example.com/x"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == 404
        assert data["body"] == "nope"

    def test_user_agent_default_and_override(self, client: TestClient, transport):
        """Config User-Agent is the default layer; request headers override it."""
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            client.post("/api/fetch", json={"url": "https://example.com/"})
            client.post(
                "/api/fetch",
                json={"url": "https://example.com/", "headers": {"User-Agent": "custom/2"}},
            )
        assert transport.calls[0]["headers"]["User-Agent"].startswith("safefetch/")
        assert transport.calls[1]["headers"]["User-Agent"] == "custom/2"

    def test_json_body(self, client: TestClient, transport):
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            client.post(
                "/api/fetch",
                json={"url": "https://example.com/", "method": "POST", "json_body": {"name": "a"}},
            )
        call = transport.calls[0]
        assert call["method"] == "POST"
        assert json.loads(call["body"]) == {"name": "a"}
        assert call["headers"]["Content-Type"] == "application/json"

    def test_form_body(self, client: TestClient, transport):
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            client.post(
                "/api/fetch",
                json={
                    "url": "https://example.com/",
                    "method": "POST",
                    "form": {"name": "a", "city": "b"},
                },
            )
        call = transport.calls[0]
        assert call["body"] == "name=a&city=b"
        assert call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

    def test_body_encoding_keeps_requested_method(self, client: TestClient, transport):
        """json_body and form are encoded the same way under PUT and PATCH."""
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            client.post(
                "/api/fetch",
                json={"url": "https://example.com/", "method": "PUT", "json_body": [1]},
            )
            client.post(
                "/api/fetch",
                json={"url": "https://example.com/", "method": "PATCH", "form": {"a": "1"}},
            )
        put, patch_call = transport.calls
        assert put["method"] == "PUT"
        assert put["body"] == "[1]"
        assert put["headers"]["Content-Type"] == "application/json"
        assert patch_call["method"] == "PATCH"
        assert patch_call["body"] == "a=1"
        assert patch_call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

    def test_conflicting_bodies_is_422(self, client: TestClient):
        response = client.post(
            "/api/fetch",
            json={"url": "https://example.com/", "json_body": {}, "body": "x"},
        )
        assert response.status_code == 422

    def test_rate_limited(self, client: TestClient, transport):
        """Requests beyond the limit get 429."""
        with patch("src.api.routes.RequestClient", _client_factory(transport)):
            statuses = [
                client.post("/api/fetch", json={"url": "https://example.com/"}).status_code
                for _ in range(31)
            ]
        assert statuses[:30] == [200] * 30
        assert statuses[30] == 429


# ---------------------------------------------------------------------------
# API key middleware
# ---------------------------------------------------------------------------


class TestApiKey:
    """X-Api-Key enforcement when API_KEY is configured."""

    def test_missing_key_rejected(self, client: TestClient):
        with patch("src.config.API_KEY", "k-123"):
            response = client.post("/api/fetch", json={"url": "https://example.com/"})
        assert response.status_code == 401

    def test_correct_key_passes(self, client: TestClient, transport):
        with (
            patch("src.config.API_KEY", "k-123"),
            patch("src.api.routes.RequestClient", _client_factory(transport)),
        ):
            response = client.post(
                "/api/fetch",
                json={"url": "https://example.com/"},
                headers={"X-Api-Key": "k-123"},
            )
        assert response.status_code == 200

    def test_health_exempt(self, client: TestClient):
        with patch("src.config.API_KEY", "k-123"):
            response = client.get("/api/health")
        assert response.status_code == 200

    def test_webhook_exempt(self, client: TestClient, webhook_secret):
        """The webhook uses its own secret, not the API key."""
        with patch("src.config.API_KEY", "k-123"):
            response = client.post(
                "/api/webhook",
                json={"update_id": 1},
                headers={"X-Webhook-Secret-Token": webhook_secret},
            )
        assert response.status_code == 200
