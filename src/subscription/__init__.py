"""Subscription status cache package."""

from src.subscription.cache import SubscriptionCache, checkout_succeeded

__all__ = ["SubscriptionCache", "checkout_succeeded"]
