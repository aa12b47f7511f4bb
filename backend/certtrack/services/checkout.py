"""Client for the payment checkout service."""

import logging

import httpx

from certtrack.config import Settings, get_settings
from certtrack.errors import RemoteError, ValidationError

logger = logging.getLogger(__name__)


class CheckoutClient:
    """
    Starts subscription checkouts through the checkout service.

    Only the session id comes back; redirecting to the payment page and
    recording the plan are left to the caller.
    """

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=settings.checkout_api_url,
            timeout=settings.remote_timeout_seconds,
        )

    async def create_checkout_session(self, price_id: str, success_url: str, cancel_url: str) -> str:
        """
        Create a checkout session for a price.

        Raises:
            ValidationError: If price_id is empty
            RemoteError: If the service is unreachable or refuses the request
        """
        if not price_id or not price_id.strip():
            raise ValidationError("Price ID is required")

        try:
            response = await self._client.post(
                "/api/create-checkout-session",
                json={"priceId": price_id, "successUrl": success_url, "cancelUrl": cancel_url},
            )
        except httpx.HTTPError as e:
            logger.error("Checkout service unreachable: %s", e)
            raise RemoteError(f"Checkout service unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400 or "sessionId" not in body:
            message = body.get("error") or f"Checkout failed ({response.status_code})"
            logger.error("Checkout session for %s failed: %s", price_id, message)
            raise RemoteError(message)

        logger.info("Checkout session created: %s", body["sessionId"])
        return body["sessionId"]

    async def health(self) -> bool:
        """True when the checkout service answers and reports itself configured."""
        try:
            response = await self._client.get("/api/health")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Checkout health check failed: %s", e)
            return False
        body = response.json()
        return body.get("status") == "ok" and bool(body.get("stripeConfigured"))

    async def aclose(self) -> None:
        await self._client.aclose()
