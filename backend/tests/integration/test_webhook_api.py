"""Integration tests for the intake webhooks and observability endpoints.

Runs the FastAPI app with the intake gateway overridden by one backed by
in-memory publisher and mail source fakes.
"""

import base64
from typing import Dict, List
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from docsync.dependencies import get_intake_gateway
from docsync.domain.errors import MailSourceError, PublishError
from docsync.domain.intake.message import EmailAttachment, EmailMessage
from docsync.domain.ports import MailSourcePort, MessagePublisherPort
from docsync.intake.gateway import IntakeGateway
from docsync.main import create_app
from docsync.observability.health import ComponentHealth, HealthStatus

CLIENT_STATE = "s3cret"


class FakePublisher(MessagePublisherPort):

    def __init__(self):
        self.published: List[EmailMessage] = []
        self.fail = False

    async def publish(self, message: EmailMessage) -> str:
        if self.fail:
            raise PublishError("broker unavailable")
        self.published.append(message)
        return f"task-{len(self.published)}"


class FakeMailSource(MailSourcePort):

    def __init__(self, messages: Dict[str, EmailMessage]):
        self.messages = messages

    async def fetch_message(self, message_id: str) -> EmailMessage:
        if message_id not in self.messages:
            raise MailSourceError(f"Message {message_id} not found")
        return self.messages[message_id]


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def graph_message():
    return EmailMessage(
        sender="jane@acme.example",
        subject="March invoice",
        message_id="AAMk-1",
        attachments=[EmailAttachment(file_name="invoice.pdf", content=b"%PDF")],
    )


@pytest.fixture
def client(publisher, graph_message):
    app = create_app()
    gateway = IntakeGateway(
        publisher=publisher,
        mail_source=FakeMailSource({"AAMk-1": graph_message}),
        client_state=CLIENT_STATE,
    )
    app.dependency_overrides[get_intake_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client


def _notification(message_id: str, change_type: str = "created", client_state: str = CLIENT_STATE) -> dict:
    return {
        "subscriptionId": "sub-1",
        "changeType": change_type,
        "clientState": client_state,
        "resource": f"Users/u-1/Messages/{message_id}",
        "resourceData": {"@odata.type": "#Microsoft.Graph.Message", "id": message_id},
    }


class TestGraphWebhook:
    """POST /api/v1/webhooks/graph"""

    def test_validation_handshake_echoes_token(self, client, publisher):
        response = client.post("/api/v1/webhooks/graph?validationToken=abc%20123")

        assert response.status_code == 200
        assert response.text == "abc 123"
        assert response.headers["content-type"].startswith("text/plain")
        assert publisher.published == []

    def test_created_notification_is_queued(self, client, publisher):
        response = client.post("/api/v1/webhooks/graph", json={"value": [_notification("AAMk-1")]})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "accepted"
        assert data["queued"] == 1
        assert data["task_ids"] == ["task-1"]
        assert publisher.published[0].message_id == "AAMk-1"

    def test_foreign_and_updated_notifications_skipped(self, client, publisher):
        response = client.post("/api/v1/webhooks/graph", json={"value": [
            _notification("AAMk-1", change_type="updated"),
            _notification("AAMk-1", client_state="forged"),
        ]})

        assert response.status_code == 200
        assert response.json()["skipped"] == 2
        assert publisher.published == []

    def test_malformed_body_rejected(self, client):
        response = client.post(
            "/api/v1/webhooks/graph",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["status"] == "rejected"

    def test_payload_without_value_rejected(self, client):
        response = client.post("/api/v1/webhooks/graph", json={"items": []})

        assert response.status_code == 400

    def test_fetch_failure_returns_503(self, client):
        response = client.post("/api/v1/webhooks/graph", json={"value": [_notification("missing")]})

        assert response.status_code == 503
        assert response.json()["status"] == "failed"

    def test_publish_failure_returns_503(self, client, publisher):
        publisher.fail = True

        response = client.post("/api/v1/webhooks/graph", json={"value": [_notification("AAMk-1")]})

        assert response.status_code == 503


class TestEmailWebhook:
    """POST /api/v1/webhooks/email"""

    def _payload(self) -> dict:
        return {
            "from": "Jane Doe <jane@acme.example>",
            "subject": "March documents",
            "attachments": [{
                "fileName": "invoice.pdf",
                "contentType": "application/pdf",
                "content": base64.b64encode(b"%PDF-1.4").decode(),
            }],
        }

    def test_valid_message_is_queued(self, client, publisher):
        response = client.post("/api/v1/webhooks/email", json=self._payload())

        assert response.status_code == 200
        assert response.json()["queued"] == 1
        message = publisher.published[0]
        assert message.sender_address == "jane@acme.example"
        assert message.attachments[0].content == b"%PDF-1.4"

    def test_request_id_header_echoed(self, client):
        response = client.post(
            "/api/v1/webhooks/email",
            json=self._payload(),
            headers={"X-Request-ID": "req-42"},
        )

        assert response.headers["X-Request-ID"] == "req-42"

    def test_invalid_json_rejected(self, client):
        response = client.post(
            "/api/v1/webhooks/email",
            content=b"{",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    def test_missing_sender_rejected(self, client, publisher):
        payload = self._payload()
        del payload["from"]

        response = client.post("/api/v1/webhooks/email", json=payload)

        assert response.status_code == 400
        assert publisher.published == []

    def test_bad_base64_rejected(self, client):
        payload = self._payload()
        payload["attachments"][0]["content"] = "***"

        response = client.post("/api/v1/webhooks/email", json=payload)

        assert response.status_code == 400

    def test_publish_failure_returns_503(self, client, publisher):
        publisher.fail = True

        response = client.post("/api/v1/webhooks/email", json=self._payload())

        assert response.status_code == 503
        assert response.json()["reason"] == "broker unavailable"


class TestObservabilityEndpoints:

    def test_health_ok(self, client):
        healthy = ComponentHealth(status=HealthStatus.HEALTHY)
        with patch("docsync.observability.router.check_database_health", return_value=healthy), \
                patch("docsync.observability.router.check_redis_health", return_value=healthy), \
                patch("docsync.observability.router.check_storage_health", return_value=healthy):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_unhealthy_returns_503(self, client):
        healthy = ComponentHealth(status=HealthStatus.HEALTHY)
        down = ComponentHealth(status=HealthStatus.UNHEALTHY, message="Redis error: refused")
        with patch("docsync.observability.router.check_database_health", return_value=healthy), \
                patch("docsync.observability.router.check_redis_health", return_value=down), \
                patch("docsync.observability.router.check_storage_health", return_value=healthy):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["components"]["redis"]["message"] == "Redis error: refused"

    def test_metrics_exposed(self, client):
        client.post("/api/v1/webhooks/graph", json={"value": [_notification("AAMk-1")]})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "docsync_intake_messages_total" in response.text

    def test_ready_follows_broker(self, client):
        down = ComponentHealth(status=HealthStatus.UNHEALTHY, message="Redis error: refused")
        with patch("docsync.observability.router.check_redis_health", return_value=down):
            response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
