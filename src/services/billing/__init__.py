"""Billing services package."""

from src.services.billing.subscription_service import (
    BillingError,
    EntitlementUnauthorizedError,
    SubscriptionServiceInterface,
    SupabaseSubscriptionService,
)

__all__ = [
    "BillingError",
    "EntitlementUnauthorizedError",
    "SubscriptionServiceInterface",
    "SupabaseSubscriptionService",
]
