"""
Channel construction from settings.

Builds the Firebase and Web Push channels from Settings and registers them
under their channel names.
"""

from typing import Optional

import structlog

from pushfanout.channels.firebase import FirebaseChannel
from pushfanout.channels.web_push import WebPushChannel
from pushfanout.config import Settings, get_settings
from pushfanout.registry import ChannelRegistry, get_channel_registry
from pushfanout.transports.fcm import AccessTokenProvider, FcmHttpDelivery
from pushfanout.transports.web_push import PyWebPushDelivery

logger = structlog.get_logger(__name__)


def build_firebase_channel(
    settings: Settings,
    access_token_provider: Optional[AccessTokenProvider],
) -> FirebaseChannel:
    delivery = FcmHttpDelivery(
        project_id=settings.firebase_project_id,
        access_token_provider=access_token_provider,
        timeout=settings.transport_timeout_seconds,
    )
    return FirebaseChannel(
        delivery,
        max_messages_per_second=settings.firebase_max_messages_per_second,
        chunk_size=settings.firebase_chunk_size,
        interval_seconds=settings.rate_limit_interval_seconds,
    )


def build_web_push_channel(settings: Settings) -> WebPushChannel:
    delivery = PyWebPushDelivery(
        vapid_private_key=settings.vapid_private_key,
        vapid_subject=settings.vapid_subject,
        timeout=settings.transport_timeout_seconds,
    )
    return WebPushChannel(
        delivery,
        max_messages_per_second=settings.web_push_max_messages_per_second,
        max_concurrent_sends=settings.web_push_max_concurrent_sends,
        interval_seconds=settings.rate_limit_interval_seconds,
    )


def build_registry(
    settings: Optional[Settings] = None,
    registry: Optional[ChannelRegistry] = None,
    access_token_provider: Optional[AccessTokenProvider] = None,
) -> ChannelRegistry:
    """
    Build all channels and register them.

    Channels are always registered; missing credentials surface as a
    DispatchError on the first send rather than at startup.

    Args:
        settings: Settings to build from (default: process-wide settings)
        registry: Registry to populate (default: process-wide registry)
        access_token_provider: OAuth2 token source for FCM

    Returns:
        The populated registry
    """
    settings = settings or get_settings()
    registry = registry if registry is not None else get_channel_registry()

    registry.register(FirebaseChannel.channel_name, build_firebase_channel(settings, access_token_provider))
    registry.register(WebPushChannel.channel_name, build_web_push_channel(settings))

    if not settings.firebase_project_id or access_token_provider is None:
        logger.warning("firebase_not_configured", detail="Sends will be rejected until configured")
    if not settings.vapid_private_key or not settings.vapid_subject:
        logger.warning("vapid_not_configured", detail="Sends will be rejected until configured")

    return registry
