"""
Unit Tests for Settings and channel bootstrap

Covers settings validation, the derived VAPID subject, and building a
registry of configured channels.
"""

import pytest
import structlog
from pydantic import ValidationError

from pushfanout.bootstrap import build_registry
from pushfanout.channels.firebase import FirebaseChannel
from pushfanout.channels.web_push import WebPushChannel
from pushfanout.config import Settings
from pushfanout.exceptions import DispatchError
from pushfanout.logging_config import configure_logging, mask_identifier
from tests.fixtures.delivery_fixtures import make_subscription


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    """Tests for Settings defaults and validation."""

    def test_defaults(self):
        """Test default rates, chunk size and concurrency ceiling."""
        settings = make_settings()

        assert settings.firebase_max_messages_per_second == 500
        assert settings.firebase_chunk_size == 500
        assert settings.web_push_max_messages_per_second == 50
        assert settings.web_push_max_concurrent_sends == 5
        assert settings.rate_limit_interval_seconds == 1.0

    @pytest.mark.parametrize(
        "field",
        [
            "firebase_max_messages_per_second",
            "firebase_chunk_size",
            "web_push_max_messages_per_second",
            "web_push_max_concurrent_sends",
            "rate_limit_interval_seconds",
        ],
    )
    def test_non_positive_values_rejected(self, field):
        """Test zero rates, sizes and intervals fail validation."""
        with pytest.raises(ValidationError):
            make_settings(**{field: 0})

    def test_chunk_size_capped_at_fcm_limit(self):
        """Test chunk size above the FCM limit of 500 is rejected."""
        with pytest.raises(ValidationError):
            make_settings(firebase_chunk_size=501)

    def test_environment_prefix(self, monkeypatch):
        """Test settings are read from PUSHFANOUT_ environment variables."""
        monkeypatch.setenv("PUSHFANOUT_WEB_PUSH_MAX_CONCURRENT_SENDS", "3")

        assert make_settings().web_push_max_concurrent_sends == 3

    @pytest.mark.parametrize(
        "email,expected",
        [
            (None, None),
            ("ops@example.com", "mailto:ops@example.com"),
            ("mailto:ops@example.com", "mailto:ops@example.com"),
        ],
    )
    def test_vapid_subject(self, email, expected):
        """Test VAPID subject gets a mailto: prefix exactly once."""
        assert make_settings(vapid_contact_email=email).vapid_subject == expected


class TestBuildRegistry:
    """Tests for build_registry."""

    @pytest.mark.asyncio
    async def test_registers_both_channels(self, registry):
        """Test firebase and web_push channels are built from settings."""
        settings = make_settings(
            firebase_project_id="demo-project",
            firebase_chunk_size=100,
            web_push_max_concurrent_sends=2,
            vapid_private_key="private-key",
            vapid_contact_email="ops@example.com",
        )

        build_registry(settings, registry, access_token_provider=lambda: "token")

        firebase = registry.get("firebase")
        web_push = registry.get("web_push")
        assert isinstance(firebase, FirebaseChannel)
        assert isinstance(web_push, WebPushChannel)
        assert firebase.chunk_size == 100
        assert web_push.max_concurrent_sends == 2
        assert web_push.delivery.vapid_subject == "mailto:ops@example.com"

        await firebase.aclose()
        await web_push.aclose()

    @pytest.mark.asyncio
    async def test_unconfigured_channels_reject_sends(self, registry):
        """Test channels without credentials raise DispatchError on send."""
        build_registry(make_settings(), registry)

        async with registry.get("web_push") as web_push:
            with pytest.raises(DispatchError, match="VAPID"):
                await web_push.send([make_subscription("https://push.example.com/1")])

        async with registry.get("firebase") as firebase:
            with pytest.raises(DispatchError, match="project id"):
                await firebase.send(["device-token"])


class TestLoggingConfig:
    """Tests for logging helpers."""

    def test_unknown_level_rejected(self):
        """Test an unknown log level name raises ValueError."""
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="LOUD")

    def test_configure_json(self):
        """Test JSON logging configuration is applied."""
        try:
            configure_logging(level="debug", json_output=True)
            assert structlog.is_configured()
        finally:
            structlog.reset_defaults()

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("short", "short"),
            ("device-token-abcdef", "device-t..."),
            (
                "https://fcm.googleapis.com/fcm/send/abcdefghijklmnopqrstuvwxyz",
                "https://fcm.googleap...qrstuvwxyz",
            ),
        ],
    )
    def test_mask_identifier(self, value, expected):
        """Test endpoints and tokens are masked for logging."""
        assert mask_identifier(value) == expected
