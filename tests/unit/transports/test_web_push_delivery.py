"""
Unit Tests for PyWebPushDelivery

Mocks pywebpush.webpush; verifies argument mapping, VAPID overrides and
error translation.
"""

from unittest.mock import MagicMock, patch

import pytest
from pywebpush import WebPushException

from pushfanout.exceptions import DispatchError, TransportError
from pushfanout.models import PushSubscription, VapidDetails
from pushfanout.transports.web_push import PyWebPushDelivery
from tests.fixtures.delivery_fixtures import make_subscription

ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc123"


@pytest.fixture
def subscription():
    return PushSubscription.model_validate_json(make_subscription(ENDPOINT))


def make_delivery(**overrides):
    params = {
        "vapid_private_key": "channel-private-key",
        "vapid_subject": "mailto:admin@example.com",
    }
    params.update(overrides)
    return PyWebPushDelivery(**params)


@pytest.fixture
def delivery():
    return make_delivery()


class TestEnsureReady:
    """Tests for VAPID configuration checks."""

    def test_missing_private_key(self):
        """Test missing VAPID private key is a request-level error."""
        with pytest.raises(DispatchError, match="VAPID"):
            make_delivery(vapid_private_key=None).ensure_ready()

    def test_missing_subject(self):
        """Test missing VAPID subject is a request-level error."""
        with pytest.raises(DispatchError, match="VAPID"):
            make_delivery(vapid_subject=None).ensure_ready()

    def test_configured(self, delivery):
        """Test configured delivery passes the readiness check."""
        delivery.ensure_ready()


class TestSendOne:
    """Tests for PyWebPushDelivery.send_one."""

    @pytest.mark.asyncio
    async def test_success(self, delivery, subscription):
        """Test successful push returns status code and endpoint."""
        with patch("pushfanout.transports.web_push.webpush") as mock_webpush:
            mock_webpush.return_value = MagicMock(status_code=201)

            response = await delivery.send_one(subscription, '{"title": "Hi"}', {})

        assert response == {"status_code": 201, "endpoint": ENDPOINT}
        kwargs = mock_webpush.call_args.kwargs
        assert kwargs["subscription_info"]["endpoint"] == ENDPOINT
        assert kwargs["subscription_info"]["keys"]["auth"] == "tBHItJI5svbpez7KI4CCXg"
        assert kwargs["data"] == '{"title": "Hi"}'
        assert kwargs["vapid_private_key"] == "channel-private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:admin@example.com"}
        assert "ttl" not in kwargs
        assert "headers" not in kwargs

    @pytest.mark.asyncio
    async def test_request_options_forwarded(self, delivery, subscription):
        """Test TTL, headers and per-message VAPID details reach webpush."""
        options = {
            "ttl": 60,
            "headers": {"Urgency": "high"},
            "vapid_details": VapidDetails(
                subject="mailto:other@example.com",
                public_key="pub",
                private_key="override-private-key",
            ),
        }

        with patch("pushfanout.transports.web_push.webpush") as mock_webpush:
            mock_webpush.return_value = MagicMock(status_code=201)
            await delivery.send_one(subscription, "{}", options)

        kwargs = mock_webpush.call_args.kwargs
        assert kwargs["ttl"] == 60
        assert kwargs["headers"] == {"Urgency": "high"}
        assert kwargs["vapid_private_key"] == "override-private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:other@example.com"}

    @pytest.mark.asyncio
    async def test_expired_subscription(self, delivery, subscription):
        """Test 410 Gone becomes TransportError with status 410."""
        error = WebPushException("Push failed: 410 Gone", response=MagicMock(status_code=410))

        with patch("pushfanout.transports.web_push.webpush", side_effect=error):
            with pytest.raises(TransportError) as exc_info:
                await delivery.send_one(subscription, "{}", {})

        assert exc_info.value.status_code == 410
        assert "Web push failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failure_without_response(self, delivery, subscription):
        """Test failure without a response has no status code."""
        error = WebPushException("Connection reset")

        with patch("pushfanout.transports.web_push.webpush", side_effect=error):
            with pytest.raises(TransportError) as exc_info:
                await delivery.send_one(subscription, "{}", {})

        assert exc_info.value.status_code is None
