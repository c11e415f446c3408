"""
Subscription / Billing Service

Three remote functions run next to the hosted database:
- check-subscription: returns the entitlement payload
- create-checkout: returns a payment page URL
- customer-portal: returns a billing portal URL

All three need the user's bearer token. None of them is retried:
the status query is re-run by the subscription cache on its own
schedule, and the redirects are explicit user clicks.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from src.models.subscription import SubscriptionStatus
from src.services.storage.supabase import SupabaseClient, error_message_from

logger = structlog.get_logger(__name__)


class BillingError(Exception):
    """A billing function failed or returned something unusable."""
    pass


class EntitlementUnauthorizedError(BillingError):
    """The function rejected the bearer token."""
    pass


class SubscriptionServiceInterface(ABC):

    @abstractmethod
    async def check_subscription(self, access_token: str) -> SubscriptionStatus:
        """
        Raises:
            EntitlementUnauthorizedError: Token rejected
            BillingError: Any other failure
        """
        pass

    @abstractmethod
    async def create_checkout(self, access_token: str) -> str:
        """Return the URL of a checkout page for the user."""
        pass

    @abstractmethod
    async def open_customer_portal(self, access_token: str) -> str:
        """Return the URL of the customer billing portal."""
        pass


class SupabaseSubscriptionService(SubscriptionServiceInterface):

    CHECK_FUNCTION = "check-subscription"
    CHECKOUT_FUNCTION = "create-checkout"
    PORTAL_FUNCTION = "customer-portal"

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def _invoke(self, function: str, access_token: str) -> dict:
        response = await self._client.arequest(
            "POST",
            f"{self._client.settings.functions_url}/{function}",
            json={},
            headers=self._client.headers(access_token=access_token),
        )

        if response.status_code in (401, 403):
            raise EntitlementUnauthorizedError(error_message_from(response))
        if response.status_code >= 400:
            raise BillingError(f"{function} failed: {error_message_from(response)}")

        try:
            body = response.json()
        except ValueError as e:
            raise BillingError(f"{function} returned invalid JSON") from e

        if not isinstance(body, dict):
            raise BillingError(f"{function} returned an unexpected payload")
        if body.get("error"):
            raise BillingError(f"{function} failed: {body['error']}")
        return body

    async def check_subscription(self, access_token: str) -> SubscriptionStatus:
        body = await self._invoke(self.CHECK_FUNCTION, access_token)
        return SubscriptionStatus.model_validate(body)

    async def _redirect_url(self, function: str, access_token: str) -> str:
        body = await self._invoke(function, access_token)
        url = body.get("url")
        if not url:
            raise BillingError(f"{function} did not return a URL")
        logger.info("billing_redirect_created", function=function)
        return url

    async def create_checkout(self, access_token: str) -> str:
        return await self._redirect_url(self.CHECKOUT_FUNCTION, access_token)

    async def open_customer_portal(self, access_token: str) -> str:
        return await self._redirect_url(self.PORTAL_FUNCTION, access_token)
