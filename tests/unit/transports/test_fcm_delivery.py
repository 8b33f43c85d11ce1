"""
Unit Tests for FcmHttpDelivery

Uses httpx.MockTransport to stand in for the FCM v1 endpoint.
"""

import json

import httpx
import pytest

from pushfanout.exceptions import DispatchError, TransportError
from pushfanout.transports.fcm import FcmHttpDelivery

PROJECT_ID = "demo-project"
MESSAGE = {
    "token": "device-token-1",
    "notification": {"title": "Hello", "body": ""},
    "data": {},
}


def make_delivery(handler, token_provider=lambda: "access-token"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FcmHttpDelivery(PROJECT_ID, token_provider, client=client)


class TestEnsureReady:
    """Tests for request-level configuration checks."""

    def test_missing_project_id(self):
        """Test missing project id is a request-level error."""
        delivery = FcmHttpDelivery(None, lambda: "token")

        with pytest.raises(DispatchError, match="project id"):
            delivery.ensure_ready()

    def test_missing_token_provider(self):
        """Test missing access token provider is a request-level error."""
        delivery = FcmHttpDelivery(PROJECT_ID, None)

        with pytest.raises(DispatchError, match="access token provider"):
            delivery.ensure_ready()

    def test_configured(self):
        """Test configured delivery passes the readiness check."""
        FcmHttpDelivery(PROJECT_ID, lambda: "token").ensure_ready()


class TestSendOne:
    """Tests for FcmHttpDelivery.send_one."""

    @pytest.mark.asyncio
    async def test_posts_message_with_bearer_token(self):
        """Test message is posted to the v1 endpoint with a bearer token."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"name": "projects/demo-project/messages/1"})

        delivery = make_delivery(handler)
        response = await delivery.send_one(MESSAGE)

        assert response == {"name": "projects/demo-project/messages/1"}
        assert captured["url"] == (
            "https://fcm.googleapis.com/v1/projects/demo-project/messages:send"
        )
        assert captured["auth"] == "Bearer access-token"
        assert captured["body"] == {"message": MESSAGE}

    @pytest.mark.asyncio
    async def test_dry_run_sets_validate_only(self):
        """Test dry run maps to validate_only."""
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"name": "projects/demo-project/messages/fake"})

        await make_delivery(handler).send_one(MESSAGE, dry_run=True)

        assert bodies[0]["validate_only"] is True

    @pytest.mark.asyncio
    async def test_async_token_provider(self):
        """Test an async access token provider is awaited."""
        async def token_provider():
            return "async-token"

        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={})

        await make_delivery(handler, token_provider).send_one(MESSAGE)

        assert seen == ["Bearer async-token"]

    @pytest.mark.asyncio
    async def test_error_response_raises_transport_error(self):
        """Test FCM error body becomes TransportError with status code."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404,
                json={
                    "error": {
                        "code": 404,
                        "message": "Requested entity was not found.",
                        "status": "NOT_FOUND",
                    }
                },
            )

        with pytest.raises(TransportError) as exc_info:
            await make_delivery(handler).send_one(MESSAGE)

        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == (
            "FCM error 404 (NOT_FOUND): Requested entity was not found."
        )

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        """Test non-JSON error body falls back to response text."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="Service Unavailable")

        with pytest.raises(TransportError, match="FCM error 503: Service Unavailable"):
            await make_delivery(handler).send_one(MESSAGE)

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self):
        """Test connection failure becomes TransportError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError, match="FCM request failed"):
            await make_delivery(handler).send_one(MESSAGE)

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        """Test an injected httpx client is left open by aclose."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        delivery = FcmHttpDelivery(PROJECT_ID, lambda: "token", client=client)

        await delivery.aclose()

        assert client.is_closed is False
        await client.aclose()
