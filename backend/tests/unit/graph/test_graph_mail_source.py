"""Unit tests for GraphClient and GraphMailSource using httpx.MockTransport."""

import base64
import json
from typing import List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from docsync.domain.errors import MailSourceError
from docsync.infrastructure.graph import GraphApiError, GraphClient, GraphConfig, GraphMailSource
from docsync.intake.gateway import IntakeGateway, IntakeStatus

MAILBOX = "documents@firm.example"
BASE = "https://graph.test/v1.0"
TOKEN_URL = "https://login.test/tenant-1/oauth2/v2.0/token"


@pytest.fixture
def config():
    return GraphConfig(
        tenant_id="tenant-1",
        client_id="app-1",
        client_secret="secret",
        mailbox=MAILBOX,
        base_url=BASE,
        authority_url="https://login.test",
    )


class FakeGraph:
    """Request handler for MockTransport that serves canned Graph responses."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.token_calls = 0
        self.routes = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == TOKEN_URL:
            self.token_calls += 1
            return httpx.Response(200, json={"access_token": f"token-{self.token_calls}", "expires_in": 3600})
        for prefix, response in self.routes.items():
            if url.startswith(prefix):
                return response() if callable(response) else response
        return httpx.Response(404, json={"error": {"code": "ErrorItemNotFound"}})


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def client(config, graph):
    now = {"t": 1000.0}
    client = GraphClient(
        config,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(graph)),
        clock=lambda: now["t"],
    )
    client.test_time = now
    return client


def _file_attachment(name: str, content: bytes, inline: bool = False) -> dict:
    return {
        "@odata.type": "#microsoft.graph.fileAttachment",
        "name": name,
        "contentType": "application/pdf",
        "isInline": inline,
        "contentBytes": base64.b64encode(content).decode(),
    }


def _message(has_attachments: bool = True) -> dict:
    return {
        "id": "AAMk-1",
        "subject": "March invoice",
        "hasAttachments": has_attachments,
        "from": {"emailAddress": {"name": "Jane", "address": "jane@acme.example"}},
    }


MESSAGE_URL = f"{BASE}/users/{MAILBOX}/messages/AAMk-1"


class TestGraphMailSource:

    @pytest.mark.asyncio
    async def test_fetches_message_with_file_attachments(self, client, graph):
        graph.routes[f"{MESSAGE_URL}/attachments"] = httpx.Response(200, json={"value": [
            _file_attachment("invoice.pdf", b"%PDF"),
            _file_attachment("logo.png", b"img", inline=True),
            {"@odata.type": "#microsoft.graph.itemAttachment", "name": "forwarded.eml"},
        ]})
        graph.routes[MESSAGE_URL] = httpx.Response(200, json=_message())

        message = await GraphMailSource(client, MAILBOX).fetch_message("AAMk-1")

        assert message.sender_address == "jane@acme.example"
        assert message.subject == "March invoice"
        assert message.message_id == "AAMk-1"
        assert [a.file_name for a in message.attachments] == ["invoice.pdf"]
        assert message.attachments[0].content == b"%PDF"

    @pytest.mark.asyncio
    async def test_follows_next_link(self, client, graph):
        next_link = f"{MESSAGE_URL}/attachments?$skiptoken=page2"
        pages = iter([
            httpx.Response(200, json={"value": [_file_attachment("a.pdf", b"a")], "@odata.nextLink": next_link}),
            httpx.Response(200, json={"value": [_file_attachment("b.pdf", b"b")]}),
        ])
        graph.routes[f"{MESSAGE_URL}/attachments"] = lambda: next(pages)
        graph.routes[MESSAGE_URL] = httpx.Response(200, json=_message())

        message = await GraphMailSource(client, MAILBOX).fetch_message("AAMk-1")

        assert [a.file_name for a in message.attachments] == ["a.pdf", "b.pdf"]

    @pytest.mark.asyncio
    async def test_no_attachments_skips_attachment_call(self, client, graph):
        graph.routes[MESSAGE_URL] = httpx.Response(200, json=_message(has_attachments=False))

        message = await GraphMailSource(client, MAILBOX).fetch_message("AAMk-1")

        assert message.attachments == []
        assert not any("attachments" in str(r.url) for r in graph.requests)

    @pytest.mark.asyncio
    async def test_missing_message_raises(self, client):
        with pytest.raises(MailSourceError):
            await GraphMailSource(client, MAILBOX).fetch_message("unknown")

    @pytest.mark.asyncio
    async def test_message_without_sender_raises(self, client, graph):
        graph.routes[MESSAGE_URL] = httpx.Response(200, json={"id": "AAMk-1", "hasAttachments": False})

        with pytest.raises(MailSourceError, match="sender"):
            await GraphMailSource(client, MAILBOX).fetch_message("AAMk-1")


class TestGraphClient:

    @pytest.mark.asyncio
    async def test_token_cached_until_expiry(self, client, graph):
        graph.routes[f"{BASE}/subscriptions"] = httpx.Response(200, json={"value": []})

        await client.get_json("/subscriptions")
        await client.get_json("/subscriptions")
        assert graph.token_calls == 1

        client.test_time["t"] += 3600
        await client.get_json("/subscriptions")
        assert graph.token_calls == 2

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self, client, graph):
        graph.routes[f"{BASE}/subscriptions"] = httpx.Response(200, json={"value": []})

        await client.get_json("/subscriptions")

        api_request = graph.requests[-1]
        assert api_request.headers["Authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_unauthorized_clears_token(self, client, graph):
        graph.routes[f"{BASE}/subscriptions"] = httpx.Response(401, json={"error": {"code": "InvalidAuthenticationToken"}})

        with pytest.raises(GraphApiError) as exc_info:
            await client.get_json("/subscriptions")
        assert exc_info.value.status_code == 401

        with pytest.raises(GraphApiError):
            await client.get_json("/subscriptions")
        assert graph.token_calls == 2

    @pytest.mark.asyncio
    async def test_token_error_raises(self, config):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_client", "error_description": "bad secret"})

        client = GraphClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(GraphApiError, match="bad secret"):
            await client.get_json("/subscriptions")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GraphClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(GraphApiError):
            await client.get_json("/subscriptions")

    @pytest.mark.asyncio
    async def test_post_sends_json(self, client, graph):
        graph.routes[f"{BASE}/subscriptions"] = httpx.Response(201, json={"id": "sub-1"})

        result = await client.post_json("/subscriptions", {"changeType": "created"})

        assert result == {"id": "sub-1"}
        assert json.loads(graph.requests[-1].content) == {"changeType": "created"}


    @pytest.mark.asyncio
    async def test_html_token_response_raises_graph_error(self, config):
        def handler(request):
            return httpx.Response(503, text="<html>Service Unavailable</html>", headers={"Content-Type": "text/html"})

        client = GraphClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        with pytest.raises(GraphApiError) as exc_info:
            await client.get_json("/subscriptions")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_truncated_json_body_raises_graph_error(self, client, graph):
        graph.routes[f"{BASE}/subscriptions"] = httpx.Response(200, content=b'{"value": [')

        with pytest.raises(GraphApiError) as exc_info:
            await client.get_json("/subscriptions")
        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_gateway_reports_failed_on_html_token_response(self, config):
        def handler(request):
            return httpx.Response(503, text="<html>Service Unavailable</html>")

        client = GraphClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        publisher = MagicMock()
        publisher.publish = AsyncMock(return_value="task-1")
        gateway = IntakeGateway(publisher=publisher, mail_source=GraphMailSource(client, MAILBOX))

        result = await gateway.accept_notifications({"value": [{
            "changeType": "created",
            "resource": "Users/u-1/Messages/AAMk-1",
            "resourceData": {"id": "AAMk-1"},
        }]})

        assert result.status == IntakeStatus.FAILED
        publisher.publish.assert_not_called()


class TestGraphConfig:

    def test_missing_settings_rejected(self):
        from docsync.config import Settings

        with pytest.raises(ValueError, match="GRAPH_TENANT_ID"):
            GraphConfig.from_settings(Settings(GRAPH_TENANT_ID=None, GRAPH_CLIENT_ID="x"))

    def test_token_url(self, config):
        assert config.token_url == TOKEN_URL
