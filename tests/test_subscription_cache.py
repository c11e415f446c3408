"""
Tests for the subscription status cache.

Uses the in-memory auth service and a scripted billing fake; every
test drives its own event loop with asyncio.run.
"""

import asyncio

import pytest

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.subscription import EntitlementState, SubscriptionStatus
from src.services.auth import InMemoryAuthService, NotAuthenticatedError
from src.services.billing import (
    BillingError,
    EntitlementUnauthorizedError,
    SubscriptionServiceInterface,
)
from src.subscription import SubscriptionCache, checkout_succeeded
from src.subscription.cache import TIMEOUT_MESSAGE

ENTITLED = SubscriptionStatus(subscribed=True, status="active")
TRIALING = SubscriptionStatus(subscribed=True, is_trialing=True, status="trialing")
NOT_ENTITLED = SubscriptionStatus(subscribed=False)


class FakeBilling(SubscriptionServiceInterface):
    """Answers with the scripted responses in order; the last one repeats."""

    def __init__(self, *responses, delay: float = 0.0):
        self.responses = list(responses) or [ENTITLED]
        self.delay = delay
        self.calls = 0
        self.checkouts = 0

    async def check_subscription(self, access_token: str) -> SubscriptionStatus:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def create_checkout(self, access_token: str) -> str:
        self.checkouts += 1
        return "https://checkout.example.com/session"

    async def open_customer_portal(self, access_token: str) -> str:
        return "https://billing.example.com/portal"


async def signed_in_auth() -> InMemoryAuthService:
    auth = InMemoryAuthService()
    await auth.sign_up("ana@example.com", "segredo123", full_name="Ana Souza")
    await auth.sign_in_with_password("ana@example.com", "segredo123")
    return auth


def make_cache(auth, billing, **kwargs) -> SubscriptionCache:
    kwargs.setdefault("refresh_seconds", 60)
    kwargs.setdefault("timeout_seconds", 1)
    return SubscriptionCache(billing, auth, **kwargs)


class TestRefresh:
    """Tests for a single entitlement query."""

    def test_starts_loading(self):
        cache = make_cache(InMemoryAuthService(), FakeBilling())
        assert cache.snapshot.state == EntitlementState.LOADING

    def test_entitled(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(TRIALING))
            return await cache.refresh()

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.ENTITLED
        assert snapshot.is_trialing is True
        assert snapshot.error is None

    def test_not_entitled(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(NOT_ENTITLED))
            return await cache.refresh()

        assert asyncio.run(scenario()).state == EntitlementState.NOT_ENTITLED

    def test_without_session_is_unauthenticated(self):
        billing = FakeBilling()

        async def scenario():
            cache = make_cache(InMemoryAuthService(), billing)
            return await cache.refresh()

        assert asyncio.run(scenario()).state == EntitlementState.UNAUTHENTICATED
        assert billing.calls == 0

    def test_rejected_token_is_unauthenticated(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(EntitlementUnauthorizedError("expired")))
            return await cache.refresh()

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.UNAUTHENTICATED
        assert snapshot.error is None


class TestFailures:
    """A failed query never downgrades a known entitlement."""

    def test_failure_keeps_entitlement_with_error(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(ENTITLED, BillingError("network down")))
            await cache.refresh()
            return await cache.refresh()

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.ENTITLED
        assert snapshot.error == "network down"
        assert snapshot.is_stale is True

    def test_failure_keeps_not_entitled(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(NOT_ENTITLED, BillingError("boom")))
            await cache.refresh()
            return await cache.refresh()

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.NOT_ENTITLED
        assert snapshot.error == "boom"

    def test_failure_without_prior_result_is_error(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(BillingError("boom")))
            return await cache.refresh()

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.ERROR
        assert snapshot.is_entitled is False

    def test_failure_after_user_switch_does_not_inherit_entitlement(self):
        async def scenario():
            auth = await signed_in_auth()
            await auth.sign_up("bruno@example.com", "segredo123", full_name="Bruno Lima")
            cache = make_cache(auth, FakeBilling(ENTITLED, BillingError("down")))
            first = await cache.refresh()
            await auth.sign_in_with_password("bruno@example.com", "segredo123")
            return first, await cache.refresh(), auth.current_user

        first, snapshot, bruno = asyncio.run(scenario())
        assert first.state == EntitlementState.ENTITLED
        assert snapshot.state == EntitlementState.ERROR
        assert snapshot.is_entitled is False
        assert snapshot.user_id == bruno.id
        assert snapshot.error == "down"

    def test_switch_during_failing_query_does_not_inherit_entitlement(self):
        billing = FakeBilling(ENTITLED, BillingError("down"), delay=0.05)

        async def scenario():
            auth = await signed_in_auth()
            await auth.sign_up("bruno@example.com", "segredo123")
            cache = make_cache(auth, billing)
            await cache.refresh()
            pending = asyncio.ensure_future(cache.refresh())
            await asyncio.sleep(0.01)
            await auth.sign_in_with_password("bruno@example.com", "segredo123")
            return await pending

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.ERROR
        assert billing.calls == 3

    def test_snapshot_records_user(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(ENTITLED))
            return await cache.refresh(), auth.current_user

        snapshot, user = asyncio.run(scenario())
        assert snapshot.user_id == user.id

    def test_success_clears_error(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(ENTITLED, BillingError("boom"), ENTITLED))
            for _ in range(3):
                snapshot = await cache.refresh()
            return snapshot

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.ENTITLED
        assert snapshot.error is None

    def test_timeout(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(ENTITLED, delay=1.0), timeout_seconds=0.05)
            return await cache.refresh()

        snapshot = asyncio.run(scenario())
        assert snapshot.state == EntitlementState.ERROR
        assert snapshot.error == TIMEOUT_MESSAGE

    def test_failure_is_audited(self):
        audit = AuditLogger()

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(BillingError("boom")), audit_logger=audit)
            await cache.refresh()

        asyncio.run(scenario())
        types = [event.event_type for event in audit.history]
        assert AuditEventType.ENTITLEMENT_CHECK_FAILED in types
        assert AuditEventType.ENTITLEMENT_CHANGED in types


class TestSingleFlight:
    """Overlapping refreshes share one query."""

    def test_concurrent_refreshes_share_one_query(self):
        billing = FakeBilling(ENTITLED, delay=0.05)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing)
            return await asyncio.gather(cache.refresh(), cache.refresh(), cache.refresh())

        snapshots = asyncio.run(scenario())
        assert billing.calls == 1
        assert all(s.state == EntitlementState.ENTITLED for s in snapshots)

    def test_sequential_refreshes_query_again(self):
        billing = FakeBilling(ENTITLED)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing)
            await cache.refresh()
            await cache.refresh()

        asyncio.run(scenario())
        assert billing.calls == 2

    def test_user_change_during_query_is_requeried(self):
        """An answer for the signed-out user is thrown away."""
        billing = FakeBilling(ENTITLED, delay=0.05)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing)
            pending = asyncio.ensure_future(cache.refresh())
            await asyncio.sleep(0.01)
            await auth.sign_out()
            await pending
            await asyncio.sleep(0.01)
            return cache.snapshot

        assert asyncio.run(scenario()).state == EntitlementState.UNAUTHENTICATED


class TestTriggers:
    """Auth events, the timer and checkout returns."""

    def test_sign_in_triggers_refresh(self):
        billing = FakeBilling(ENTITLED)

        async def scenario():
            auth = InMemoryAuthService()
            cache = make_cache(auth, billing)
            await cache.refresh()
            assert cache.snapshot.state == EntitlementState.UNAUTHENTICATED

            await auth.sign_up("ana@example.com", "segredo123")
            await auth.sign_in_with_password("ana@example.com", "segredo123")
            await asyncio.sleep(0.05)
            return cache.snapshot

        assert asyncio.run(scenario()).state == EntitlementState.ENTITLED
        assert billing.calls == 1

    def test_sign_out_triggers_refresh(self):
        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(ENTITLED))
            await cache.refresh()
            await auth.sign_out()
            await asyncio.sleep(0.05)
            return cache.snapshot

        assert asyncio.run(scenario()).state == EntitlementState.UNAUTHENTICATED

    def test_refresh_if_stale_follows_interval(self):
        now = [0.0]
        billing = FakeBilling(ENTITLED)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing, refresh_seconds=60, clock=lambda: now[0])
            await cache.refresh_if_stale()
            now[0] = 30.0
            await cache.refresh_if_stale()
            assert billing.calls == 1
            now[0] = 60.0
            await cache.refresh_if_stale()

        asyncio.run(scenario())
        assert billing.calls == 2

    def test_auth_change_between_runs_marks_stale(self):
        """A refresh scheduled on a loop that has since closed is picked up by refresh_if_stale."""
        now = [0.0]
        billing = FakeBilling(ENTITLED)
        auth = InMemoryAuthService()
        cache = make_cache(auth, billing, clock=lambda: now[0])

        asyncio.run(cache.refresh_if_stale())
        assert cache.snapshot.state == EntitlementState.UNAUTHENTICATED

        asyncio.run(auth.sign_up("ana@example.com", "segredo123"))
        asyncio.run(auth.sign_in_with_password("ana@example.com", "segredo123"))
        snapshot = asyncio.run(cache.refresh_if_stale())

        assert snapshot.state == EntitlementState.ENTITLED

    def test_periodic_refresh(self):
        billing = FakeBilling(ENTITLED)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing, refresh_seconds=0.01)
            cache.start()
            assert cache.is_running
            await asyncio.sleep(0.08)
            await cache.stop()
            return cache

        cache = asyncio.run(scenario())
        assert billing.calls >= 2
        assert cache.is_running is False

    def test_checkout_return(self):
        billing = FakeBilling(NOT_ENTITLED, ENTITLED)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing)
            await cache.refresh()
            ignored = await cache.handle_checkout_return({"checkout": "canceled"})
            handled = await cache.handle_checkout_return({"checkout": "success"})
            return ignored, handled, cache.snapshot

        ignored, handled, snapshot = asyncio.run(scenario())
        assert ignored is False
        assert handled is True
        assert snapshot.state == EntitlementState.ENTITLED

    def test_checkout_succeeded(self):
        assert checkout_succeeded({"checkout": "success"}) is True
        assert checkout_succeeded({}) is False


class TestListenersAndRedirects:
    """Snapshot listeners and billing redirects."""

    def test_listeners_are_notified(self):
        seen = []

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(ENTITLED))

            def broken(snapshot):
                raise RuntimeError("listener bug")

            cache.subscribe(broken)
            unsubscribe = cache.subscribe(lambda s: seen.append(s.state))
            await cache.refresh()
            unsubscribe()
            await cache.refresh()

        asyncio.run(scenario())
        assert seen == [EntitlementState.ENTITLED]

    def test_checkout_does_not_change_snapshot(self):
        billing = FakeBilling(NOT_ENTITLED)

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, billing)
            before = await cache.refresh()
            url = await cache.create_checkout()
            return before, url, cache.snapshot

        before, url, after = asyncio.run(scenario())
        assert url == "https://checkout.example.com/session"
        assert after is before
        assert billing.calls == 1

    def test_checkout_requires_session(self):
        cache = make_cache(InMemoryAuthService(), FakeBilling())
        with pytest.raises(NotAuthenticatedError):
            asyncio.run(cache.create_checkout())

    def test_portal(self):
        audit = AuditLogger()

        async def scenario():
            auth = await signed_in_auth()
            cache = make_cache(auth, FakeBilling(), audit_logger=audit)
            return await cache.open_customer_portal()

        assert asyncio.run(scenario()) == "https://billing.example.com/portal"
        assert audit.history[-1].event_type == AuditEventType.PORTAL_OPENED
