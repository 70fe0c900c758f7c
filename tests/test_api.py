"""
Tests for the HTTP surface.

Runs the FastAPI app in-process with fake providers behind the router.
"""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from refiner_gateway.api.app import create_app, parse_bearer
from refiner_gateway.config.loader import GatewayConfig, QuotaConfig, UpdateConfig
from refiner_gateway.core.quota import QuotaTracker
from refiner_gateway.core.router import RequestRouter
from refiner_gateway.sdk.base import ProviderClient, ProviderError, ProviderErrorKind
from refiner_gateway.storage.repository import InMemoryQuotaStore


class StubProvider(ProviderClient):
    """Provider returning a canned reply, or failing with a fixed kind."""

    def __init__(self, name: str, reply: str = "ok", error: Optional[ProviderErrorKind] = None):
        super().__init__(name=name, model=f"{name}-model", timeout_seconds=1.0, shared_key=f"{name}-shared")
        self.reply = reply
        self.error = error
        self.keys: List[str] = []

    def generate(self, prompt: str, api_key: str) -> str:
        self.keys.append(api_key)
        if self.error is not None:
            raise ProviderError(self.error, "boom")
        return self.reply


class CrashingProvider(StubProvider):
    """Provider failing with an error outside the ProviderError contract."""

    def generate(self, prompt: str, api_key: str) -> str:
        raise RuntimeError("adapter bug")


def _client(primary=None, secondary=None, daily_limit=3, update=None) -> TestClient:
    config = GatewayConfig(
        quota=QuotaConfig(daily_limit=daily_limit),
        update=update or UpdateConfig(),
    )
    providers = [primary or StubProvider("gemini", reply="Refined.")]
    if secondary is not None:
        providers.append(secondary)
    router = RequestRouter(providers, QuotaTracker(InMemoryQuotaStore(), daily_limit=daily_limit))
    return TestClient(create_app(config=config, router=router))


class TestRefineEndpoint:
    """Test POST /refine."""

    def test_refine_with_own_key(self):
        """Test that a credentialed refine returns the refined text."""
        primary = StubProvider("gemini", reply="I am going to the office tomorrow.")
        client = _client(primary=primary)

        response = client.post(
            "/refine",
            json={"text": "i go office tmrw"},
            headers={"Authorization": "Bearer user-key"},
        )

        assert response.status_code == 200
        assert response.json() == {"refinedText": "I am going to the office tomorrow."}
        assert primary.keys == ["user-key"]

    def test_blank_text_returns_400(self):
        """Test that blank text is rejected with the fallback field set."""
        client = _client()

        response = client.post("/refine", json={"text": "   "}, headers={"Authorization": "Bearer k"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing 'text' in body", "refinedText": ""}

    def test_missing_body_returns_400(self):
        """Test that a request without a body is rejected."""
        client = _client()

        response = client.post("/refine", headers={"Authorization": "Bearer k"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing 'text' in body"

    def test_non_string_text_returns_400(self):
        """Test that a malformed body is reported as 400, not 422."""
        client = _client()

        response = client.post("/refine", json={"text": ["not", "a", "string"]})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing 'text' in body", "refinedText": ""}

    def test_all_providers_failing_returns_input(self):
        """Test that a 502 on /refine hands back the original text."""
        client = _client(
            primary=StubProvider("gemini", error=ProviderErrorKind.UPSTREAM_ERROR),
            secondary=StubProvider("groq", error=ProviderErrorKind.UNAVAILABLE),
        )

        response = client.post("/refine", json={"text": " keep me "}, headers={"X-Device-Id": "d1"})

        assert response.status_code == 502
        body = response.json()
        assert body["refinedText"] == "keep me"
        assert body["error"]

    def test_unexpected_error_returns_json_with_input(self):
        """Test that an unexpected adapter exception still yields the JSON failure body."""
        client = _client(primary=CrashingProvider("gemini"))

        response = client.post("/refine", json={"text": " keep me "}, headers={"Authorization": "Bearer k"})

        assert response.status_code == 502
        assert response.json() == {
            "error": "AI service is unavailable right now. Please try again later.",
            "refinedText": "keep me",
        }
        assert "X-Request-Id" in response.headers

    def test_fallback_adds_notification(self):
        """Test that a secondary-served reply carries a notification."""
        client = _client(
            primary=StubProvider("gemini", error=ProviderErrorKind.UNAVAILABLE),
            secondary=StubProvider("groq", reply="Fixed."),
        )

        response = client.post("/refine", json={"text": "fix me"}, headers={"X-Device-Id": "d1"})

        assert response.status_code == 200
        body = response.json()
        assert body["refinedText"] == "Fixed."
        assert "groq" in body["notification"]


class TestChatEndpoint:
    """Test POST /chat and the free tier."""

    def test_chat_without_key_or_device_returns_401(self):
        """Test that anonymous callers must identify a device."""
        client = _client()

        response = client.post("/chat", json={"text": "hello"})

        assert response.status_code == 401
        assert response.json()["chatText"] == ""

    def test_unexpected_error_returns_empty_chat_text(self):
        """Test that /chat answers an unexpected exception with chatText ''."""
        client = _client(primary=CrashingProvider("gemini"))

        response = client.post("/chat", json={"text": "hello"}, headers={"Authorization": "Bearer k"})

        assert response.status_code == 502
        assert response.json()["chatText"] == ""
        assert response.json()["error"]

    def test_malformed_authorization_is_treated_as_absent(self):
        """Test that a non-Bearer header does not count as a credential."""
        client = _client()

        response = client.post("/chat", json={"text": "hello"}, headers={"Authorization": "Token abc"})

        assert response.status_code == 401

    def test_free_tier_limit(self):
        """Test three free chats, then 429."""
        primary = StubProvider("gemini", reply="Hi!")
        client = _client(primary=primary, daily_limit=3)
        headers = {"X-Device-Id": "device-1"}

        for _ in range(3):
            response = client.post("/chat", json={"text": "hello"}, headers=headers)
            assert response.status_code == 200
            assert response.json() == {"chatText": "Hi!"}

        response = client.post("/chat", json={"text": "hello"}, headers=headers)

        assert response.status_code == 429
        assert response.json()["chatText"] == ""
        assert primary.keys == ["gemini-shared"] * 3

    def test_own_key_bypasses_free_tier_limit(self):
        """Test that a credentialed caller is never limited."""
        client = _client(daily_limit=1)
        headers = {"Authorization": "Bearer user-key", "X-Device-Id": "device-1"}

        for _ in range(3):
            response = client.post("/chat", json={"text": "hello"}, headers=headers)
            assert response.status_code == 200


class TestInfoEndpoints:
    """Test /app-update, /health and /."""

    def test_app_update_numeric_compare(self):
        """Test that 1.9.0 is told to update to 1.10.0."""
        client = _client(update=UpdateConfig(latest_version="1.10.0", force_update=True))

        response = client.get("/app-update", params={"version": "1.9.0"})

        assert response.status_code == 200
        body = response.json()
        assert body["updateAvailable"] is True
        assert body["latestVersion"] == "1.10.0"
        assert body["forceUpdate"] is True
        assert body["updateUrl"]
        assert body["changelog"]
        assert body["timestamp"].endswith("Z")

    def test_app_update_defaults_version(self):
        """Test that a missing version is read as 1.0.0."""
        client = _client()

        response = client.get("/app-update")

        assert response.json()["updateAvailable"] is True

    def test_app_update_current_version(self):
        """Test that the latest version gets no update."""
        client = _client()

        response = client.get("/app-update", params={"version": "2.0.0"})

        assert response.json()["updateAvailable"] is False

    def test_health(self):
        """Test the health payload."""
        client = _client()

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["model"] == "gemini-2.0-flash-lite"
        assert "timestamp" in body

    def test_root_banner(self):
        """Test the plain-text banner."""
        client = _client()

        response = client.get("/")

        assert response.status_code == 200
        assert "LIVE" in response.text
        assert "POST /refine" in response.text


class TestMiddleware:
    """Test request tracing and CORS."""

    def test_request_id_is_echoed(self):
        """Test that a client-sent request id comes back."""
        client = _client()

        response = client.get("/health", headers={"X-Request-Id": "abc123"})

        assert response.headers["X-Request-Id"] == "abc123"

    def test_request_id_is_generated(self):
        """Test that a request id is assigned when none is sent."""
        client = _client()

        response = client.get("/health")

        assert len(response.headers["X-Request-Id"]) == 8

    def test_cors_preflight_allows_any_origin(self):
        """Test that browsers from any origin may call the API."""
        client = _client()

        response = client.options(
            "/refine",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Authorization, Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestParseBearer:
    """Test Authorization header parsing."""

    @pytest.mark.parametrize("header, expected", [
        ("Bearer abc", "abc"),
        ("bearer   abc  ", "abc"),
        ("Bearer", None),
        ("Bearer    ", None),
        ("Token abc", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, header, expected):
        assert parse_bearer(header) == expected
