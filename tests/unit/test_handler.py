"""Tests for webhook handler."""

import asyncio
import hashlib
import hmac
import json
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient

from webex_github_bot.exceptions import WebexAPIError
from webex_github_bot.main import create_app
from webex_github_bot.metrics import WebhookMetrics

SECRET = "test-webhook-secret"


class FakeBot:
    """Records sends instead of talking to Webex."""

    def __init__(self, error: Exception | None = None, delay: float = 0.0):
        self.sent: list[tuple[str, str]] = []
        self.error = error
        self.delay = delay

    async def send(self, room_id: str, text: str) -> None:
        self.sent.append((room_id, text))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def handle_event(self, envelope: dict) -> None:
        pass


@pytest.fixture
def test_settings(monkeypatch: pytest.MonkeyPatch):
    """Set up test environment variables."""
    monkeypatch.setenv("GITHUB_SECRET", SECRET)
    monkeypatch.setenv("WEBEX_TOKEN", "webex-token-123")
    monkeypatch.setenv("ROOM_ID", "room-123")
    for key in ["INCOMPLETE_EVENT_POLICY", "UNIFORM_AUTH_RESPONSE", "MAX_BODY_SIZE"]:
        monkeypatch.delenv(key, raising=False)

    # Clear the settings cache
    from webex_github_bot.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def bot() -> FakeBot:
    return FakeBot()


@pytest.fixture
def metrics() -> WebhookMetrics:
    return WebhookMetrics()


@pytest.fixture
def client(test_settings, bot: FakeBot, metrics: WebhookMetrics):  # noqa: ARG001
    """Create test client with test settings and a fake chat session."""
    app = create_app(bot=bot, metrics=metrics)
    return TestClient(app)


def _sign_payload(payload: bytes, secret: str = SECRET) -> str:
    """Generate GitHub webhook signature."""
    return (
        "sha256="
        + hmac.new(
            secret.encode("utf-8"),
            payload,
            hashlib.sha256,
        ).hexdigest()
    )


def _post(client: TestClient, event: str, payload: dict | bytes, **headers: str):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return client.post(
        "/github",
        content=body,
        headers={
            "X-Hub-Signature-256": _sign_payload(body),
            "X-GitHub-Event": event,
            "Content-Type": "application/json",
            **headers,
        },
    )


ISSUE_OPENED = {
    "action": "opened",
    "issue": {
        "number": 12,
        "title": "Login fails",
        "html_url": "https://github.com/owner/repo/issues/12",
    },
    "sender": {"login": "octocat"},
    "repository": {"full_name": "owner/repo"},
}


def test_health_endpoint(client: TestClient):
    """Test health check endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert data["endpoints"]["github_webhook"] == "/github"
    assert "timestamp" in data


def test_webhook_rejects_missing_signature(client: TestClient, bot: FakeBot):
    response = client.post(
        "/github",
        content=json.dumps(ISSUE_OPENED).encode(),
        headers={"X-GitHub-Event": "issues", "Content-Type": "application/json"},
    )
    assert response.status_code == 401
    assert response.text == "Signature missing"
    assert bot.sent == []


def test_webhook_rejects_invalid_signature(client: TestClient, bot: FakeBot):
    """Test that webhook rejects invalid signatures."""
    response = client.post(
        "/github",
        json=ISSUE_OPENED,
        headers={
            "X-Hub-Signature-256": "sha256=invalid",
            "X-GitHub-Event": "issues",
        },
    )
    assert response.status_code == 401
    assert response.text == "Invalid signature"
    assert bot.sent == []


def test_uniform_auth_response(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from webex_github_bot.config import get_settings

    monkeypatch.setenv("UNIFORM_AUTH_RESPONSE", "true")
    get_settings.cache_clear()

    response = client.post("/github", content=b"{}", headers={"X-GitHub-Event": "push"})
    assert response.status_code == 401
    assert response.text == "Invalid signature"


def test_signature_checked_before_json(client: TestClient):
    response = client.post(
        "/github",
        content=b"not json",
        headers={"X-Hub-Signature-256": "sha256=" + "0" * 64, "X-GitHub-Event": "push"},
    )
    assert response.status_code == 401


def test_webhook_rejects_malformed_json(client: TestClient, bot: FakeBot):
    response = _post(client, "issues", b"{not json")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON payload"}
    assert bot.sent == []


def test_webhook_rejects_non_object_json(client: TestClient):
    response = _post(client, "push", b"[1, 2, 3]")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON payload"}


def test_webhook_ignores_unsupported_events(client: TestClient, bot: FakeBot):
    """Unsupported events are acknowledged without relaying."""
    response = _post(client, "deployment", {"deployment": {"id": 1}})
    assert response.status_code == 200
    assert response.text == "Event received"
    assert bot.sent == []


def test_webhook_without_event_header_is_acknowledged(client: TestClient, bot: FakeBot):
    body = json.dumps(ISSUE_OPENED).encode()
    response = client.post(
        "/github",
        content=body,
        headers={"X-Hub-Signature-256": _sign_payload(body), "Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.text == "Event received"
    assert bot.sent == []


def test_webhook_relays_issue_event(client: TestClient, bot: FakeBot, metrics: WebhookMetrics):
    response = _post(client, "issues", ISSUE_OPENED)

    assert response.status_code == 200
    assert response.text == "Event processed"
    assert bot.sent == [
        (
            "room-123",
            'Issue opened: #12 "Login fails" by octocat. '
            "URL: https://github.com/owner/repo/issues/12",
        )
    ]
    assert (
        metrics.count("github_webhooks_outcome_total", event_type="issues", outcome="relayed")
        == 1.0
    )


def test_webhook_relays_push_event(client: TestClient, bot: FakeBot):
    payload = {
        "ref": "refs/heads/main",
        "commits": [{"id": "a"}, {"id": "b"}, {"id": "c"}],
        "pusher": {"name": "alice"},
        "compare": "https://github.com/owner/repo/compare/a...c",
    }
    response = _post(client, "push", payload)

    assert response.status_code == 200
    assert bot.sent[0][1] == (
        "Push Event: 3 commits pushed to refs/heads/main by alice. "
        "Compare: https://github.com/owner/repo/compare/a...c"
    )


def test_relay_failure_still_returns_200(test_settings, metrics: WebhookMetrics):  # noqa: ARG001
    bot = FakeBot(error=WebexAPIError("Webex API POST /messages returned 404", 404))
    client = TestClient(create_app(bot=bot, metrics=metrics))

    response = _post(client, "issues", ISSUE_OPENED)

    assert response.status_code == 200
    assert response.text == "Event processed"
    assert len(bot.sent) == 1
    assert metrics.count("webex_relay_failures_total", event_type="issues") == 1.0


def test_unexpected_relay_error_is_contained(test_settings, metrics: WebhookMetrics):  # noqa: ARG001
    bot = FakeBot(error=RuntimeError("socket closed"))
    client = TestClient(create_app(bot=bot, metrics=metrics))

    response = _post(client, "issues", ISSUE_OPENED)

    assert response.status_code == 200
    assert len(bot.sent) == 1
    assert metrics.count("webex_relay_failures_total", event_type="issues") == 1.0


def test_relay_timeout_counts_as_failure(
    test_settings, metrics: WebhookMetrics, monkeypatch: pytest.MonkeyPatch  # noqa: ARG001
):
    from webex_github_bot.config import get_settings

    monkeypatch.setenv("RELAY_TIMEOUT", "0.05")
    get_settings.cache_clear()
    bot = FakeBot(delay=1.0)
    client = TestClient(create_app(bot=bot, metrics=metrics))

    response = _post(client, "issues", ISSUE_OPENED)

    assert response.status_code == 200
    assert response.text == "Event processed"
    assert metrics.count("webex_relay_failures_total", event_type="issues") == 1.0


def test_missing_room_id_skips_send(
    test_settings, bot: FakeBot, metrics: WebhookMetrics, monkeypatch: pytest.MonkeyPatch  # noqa: ARG001
):
    from webex_github_bot.config import get_settings

    monkeypatch.setenv("ROOM_ID", "")
    get_settings.cache_clear()
    client = TestClient(create_app(bot=bot, metrics=metrics))

    response = _post(client, "issues", ISSUE_OPENED)

    assert response.status_code == 200
    assert bot.sent == []
    assert metrics.count("webex_relay_failures_total", event_type="issues") == 1.0


def test_no_bot_session_counts_as_relay_failure(
    test_settings, metrics: WebhookMetrics  # noqa: ARG001
):
    client = TestClient(create_app(metrics=metrics))

    response = _post(client, "issues", ISSUE_OPENED)

    assert response.status_code == 200
    assert response.text == "Event processed"
    assert metrics.count("webex_relay_failures_total", event_type="issues") == 1.0


def test_incomplete_event_rejected_by_default(client: TestClient, bot: FakeBot):
    response = _post(client, "pull_request", {"action": "opened", "number": 3})

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Incomplete event payload"
    assert "pull_request" in data["missing"]
    assert bot.sent == []


def test_incomplete_event_acknowledged_by_policy(
    client: TestClient, bot: FakeBot, monkeypatch: pytest.MonkeyPatch
):
    from webex_github_bot.config import get_settings

    monkeypatch.setenv("INCOMPLETE_EVENT_POLICY", "acknowledge")
    get_settings.cache_clear()

    response = _post(client, "pull_request", {"action": "opened", "number": 3})

    assert response.status_code == 200
    assert response.text == "Event received"
    assert bot.sent == []


def test_oversized_body_rejected(
    client: TestClient, bot: FakeBot, monkeypatch: pytest.MonkeyPatch
):
    from webex_github_bot.config import get_settings

    monkeypatch.setenv("MAX_BODY_SIZE", "64")
    get_settings.cache_clear()

    payload = {**ISSUE_OPENED, "padding": "x" * 200}
    response = _post(client, "issues", payload)

    assert response.status_code == 413
    assert response.text == "Payload too large"
    assert bot.sent == []


def test_oversized_chunked_body_rejected(
    client: TestClient, bot: FakeBot, metrics: WebhookMetrics, monkeypatch: pytest.MonkeyPatch
):
    """Bodies without Content-Length are capped while streaming."""
    from webex_github_bot.config import get_settings

    monkeypatch.setenv("MAX_BODY_SIZE", "64")
    get_settings.cache_clear()

    body = json.dumps({**ISSUE_OPENED, "padding": "x" * 200}).encode()
    chunks = [body[i : i + 32] for i in range(0, len(body), 32)]
    response = client.post(
        "/github",
        content=iter(chunks),
        headers={
            "X-Hub-Signature-256": _sign_payload(body),
            "X-GitHub-Event": "issues",
            "Content-Type": "application/json",
        },
    )

    assert "content-length" not in response.request.headers
    assert response.status_code == 413
    assert response.text == "Payload too large"
    assert bot.sent == []
    assert metrics.count("github_webhooks_rejected_total", reason="too_large") == 1.0


def test_form_encoded_delivery(client: TestClient, bot: FakeBot):
    body = urlencode({"payload": json.dumps(ISSUE_OPENED)}).encode()
    response = client.post(
        "/github",
        content=body,
        headers={
            "X-Hub-Signature-256": _sign_payload(body),
            "X-GitHub-Event": "issues",
            "Content-Type": "application/x-www-form-urlencoded",
        },
    )

    assert response.status_code == 200
    assert response.text == "Event processed"
    assert len(bot.sent) == 1


def test_metrics_endpoint(client: TestClient):
    _post(client, "deployment", {})
    client.post("/github", content=b"{}", headers={"X-GitHub-Event": "push"})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "github_webhooks_received_total" in response.text
    assert 'github_webhooks_rejected_total{reason="missing_signature"} 1.0' in response.text
    assert 'outcome="acknowledged"' in response.text
