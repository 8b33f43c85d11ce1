"""
Firebase Cloud Messaging HTTP v1 delivery.

Posts one message per call to the FCM v1 ``messages:send`` endpoint with a
bearer token. Token minting (service account OAuth) stays with the caller:
pass an ``access_token_provider`` returning a token string, sync or async.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

import httpx
import structlog

from pushfanout.exceptions import DispatchError, TransportError

logger = structlog.get_logger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

AccessTokenProvider = Callable[[], Union[str, Awaitable[str]]]


class FcmHttpDelivery:
    """
    FCM v1 client sending one message per request.

    A single httpx.AsyncClient is created lazily and reused across sends
    unless one is injected.
    """

    def __init__(
        self,
        project_id: Optional[str],
        access_token_provider: Optional[AccessTokenProvider],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize FCM delivery.

        Args:
            project_id: Firebase project id
            access_token_provider: Returns an OAuth2 access token (sync or async)
            client: Optional preconfigured httpx client (not closed by aclose)
            timeout: Request timeout in seconds for the lazily created client
        """
        self.project_id = project_id
        self.access_token_provider = access_token_provider
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def send_url(self) -> str:
        return FCM_SEND_URL.format(project_id=self.project_id)

    def ensure_ready(self) -> None:
        if not self.project_id:
            raise DispatchError("Firebase project id is not configured")
        if self.access_token_provider is None:
            raise DispatchError("Firebase access token provider is not configured")

    async def send_one(self, message: dict[str, Any], dry_run: bool = False) -> Any:
        """
        Send a single FCM message.

        Args:
            message: FCM v1 message object (token, notification, data)
            dry_run: Validate without delivering (FCM validate_only)

        Returns:
            Decoded FCM response body, e.g. {"name": "projects/.../messages/..."}

        Raises:
            TransportError: On network failure or a non-2xx response
        """
        token = await self._access_token()
        body: dict[str, Any] = {"message": message}
        if dry_run:
            body["validate_only"] = True

        try:
            response = await self._get_client().post(
                self.send_url,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"FCM request failed: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(_fcm_error_message(response), status_code=response.status_code)

        return response.json()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _access_token(self) -> str:
        token = self.access_token_provider()  # type: ignore[misc]
        if inspect.isawaitable(token):
            token = await token
        return token


def _fcm_error_message(response: httpx.Response) -> str:
    """Extract the provider error message from an FCM error response."""
    try:
        error = response.json().get("error", {})
        message = error.get("message")
        status = error.get("status")
    except ValueError:
        message, status = None, None

    if message:
        return f"FCM error {response.status_code} ({status}): {message}" if status else message
    return f"FCM error {response.status_code}: {response.text[:200]}"
