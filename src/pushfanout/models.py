"""
Data models for notification fan-out.

Pydantic models for per-recipient metadata (Firebase and Web Push options),
decoded push subscriptions, and dispatch results/reports returned to callers.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DispatchStatus(str, Enum):
    """Outcome of a single recipient send."""

    SUCCESS = "success"
    FAILED = "failed"


class DispatchResult(BaseModel):
    """
    Per-recipient outcome of a channel send.

    Exactly one result is produced per input recipient. ``response`` is set
    on success (opaque transport payload), ``error`` on failure.
    """

    status: DispatchStatus
    recipient: str
    response: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, recipient: str, response: Any = None) -> "DispatchResult":
        return cls(status=DispatchStatus.SUCCESS, recipient=recipient, response=response)

    @classmethod
    def failed(cls, recipient: str, error: str) -> "DispatchResult":
        return cls(status=DispatchStatus.FAILED, recipient=recipient, error=error)

    @property
    def ok(self) -> bool:
        return self.status == DispatchStatus.SUCCESS


class FirebaseNotificationOptions(BaseModel):
    """Per-recipient options for the Firebase channel.

    Empty or missing fields fall back to channel defaults when the message is
    built (title "Default Notification", empty body, empty data, no dry run).
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    body: Optional[str] = None
    data: dict[str, str] = Field(default_factory=dict)
    dry_run: bool = Field(default=False, alias="dryRun")


class VapidDetails(BaseModel):
    """Per-message VAPID signing details overriding the channel defaults."""

    model_config = ConfigDict(populate_by_name=True)

    subject: str
    public_key: str = Field(alias="publicKey")
    private_key: str = Field(alias="privateKey")


class WebPushOptions(BaseModel):
    """Per-recipient options for the Web Push channel.

    Request options (ttl, vapid_details, headers) are only passed to the
    transport when set.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    body: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    ttl: Optional[int] = Field(default=None, ge=0, alias="TTL")
    vapid_details: Optional[VapidDetails] = Field(default=None, alias="vapidDetails")
    headers: Optional[dict[str, str]] = None


class SubscriptionKeys(BaseModel):
    """Browser-generated keys used for payload encryption."""

    p256dh: str  # Public key for encryption
    auth: str  # Authentication secret


class PushSubscription(BaseModel):
    """Web Push subscription as serialized by the browser PushManager."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(..., min_length=1)
    keys: SubscriptionKeys
    expiration_time: Optional[float] = Field(default=None, alias="expirationTime")

    def to_subscription_info(self) -> dict[str, Any]:
        """Shape expected by pywebpush."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.keys.p256dh, "auth": self.keys.auth},
        }


class DispatchReport(BaseModel):
    """Summary of one dispatch request through a named channel."""

    channel: str
    total: int
    succeeded: int
    failed: int
    duration_seconds: float
    results: list[DispatchResult]

    @property
    def failed_recipients(self) -> list[str]:
        return [r.recipient for r in self.results if not r.ok]
