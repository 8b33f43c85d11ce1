"""Shared fixtures for dispatch tests."""

import pytest

from pushfanout.registry import ChannelRegistry
from tests.fixtures.delivery_fixtures import FakeMessageDelivery, FakeSubscriptionDelivery


@pytest.fixture
def message_delivery():
    """Fake FCM delivery that always succeeds."""
    return FakeMessageDelivery()


@pytest.fixture
def subscription_delivery():
    """Fake web push delivery that always succeeds."""
    return FakeSubscriptionDelivery()


@pytest.fixture
def registry():
    """Fresh, empty channel registry."""
    return ChannelRegistry()
