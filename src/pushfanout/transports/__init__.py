"""Delivery capabilities used by the channels."""

from pushfanout.transports.base import MessageDelivery, SubscriptionDelivery
from pushfanout.transports.fcm import FcmHttpDelivery
from pushfanout.transports.web_push import PyWebPushDelivery

__all__ = [
    "FcmHttpDelivery",
    "MessageDelivery",
    "PyWebPushDelivery",
    "SubscriptionDelivery",
]
