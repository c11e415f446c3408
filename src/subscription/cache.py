"""
Subscription Status Cache

Holds the entitlement of the signed-in user for the whole app.

Refresh triggers:
1. start(): an immediate query, then one every `refresh_seconds`
2. A sign-in or sign-out from the auth service
3. Returning from checkout with ?checkout=success
4. refresh_if_stale(), for hosts that rerun instead of keeping a loop

DESIGN DECISIONS:
- Single-flight: overlapping refresh() calls await the same query, so a
  timer tick and an auth event can never race to set the final state.
- Stale-but-available: a failed query after a resolved result keeps
  that result and attaches `error`. A paying user is never locked out
  by a network hiccup, and a non-paying user is never let in by one.
  The kept result must belong to the user now signed in.
- Every query has a timeout; a timeout is a failure like any other.
"""

import asyncio
import contextlib
import time
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional
from uuid import UUID

import structlog

from src.audit import AuditLogger
from src.config import get_settings
from src.models.audit import AuditEventType
from src.models.subscription import (
    EntitlementState,
    SubscriptionSnapshot,
)
from src.services.auth import AuthError, AuthEvent, AuthServiceInterface, AuthSession
from src.services.billing import (
    BillingError,
    EntitlementUnauthorizedError,
    SubscriptionServiceInterface,
)
from src.services.storage import StorageError

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[SubscriptionSnapshot], None]

TIMEOUT_MESSAGE = "Tempo esgotado ao verificar a assinatura."


def checkout_succeeded(query_params: Mapping[str, str]) -> bool:
    """True when the payment page redirected back after a completed checkout."""
    return query_params.get("checkout") == "success"


class SubscriptionCache:
    """
    Explicit owner of the entitlement state.

    Built once at the composition root and passed to whoever needs it.
    """

    def __init__(
        self,
        billing: SubscriptionServiceInterface,
        auth: AuthServiceInterface,
        audit_logger: Optional[AuditLogger] = None,
        refresh_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        app_settings = get_settings().app
        self._billing = billing
        self._auth = auth
        self._audit = audit_logger
        self._refresh_seconds = refresh_seconds or app_settings.subscription_refresh_seconds
        self._timeout_seconds = timeout_seconds or app_settings.subscription_timeout_seconds
        self._clock = clock

        self._snapshot = SubscriptionSnapshot()
        self._listeners: list[SnapshotListener] = []
        self._inflight: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()
        self._last_attempt: Optional[float] = None
        self._dirty = True

        self._unsubscribe_auth = auth.on_auth_state_change(self._on_auth_change)

    @property
    def snapshot(self) -> SubscriptionSnapshot:
        return self._snapshot

    @property
    def refresh_seconds(self) -> float:
        return self._refresh_seconds

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call `listener` with every new snapshot. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh(self) -> SubscriptionSnapshot:
        """
        Query the entitlement collaborator and update the snapshot.

        Joins the query already in flight if there is one. Never raises
        for collaborator failures; they land in `snapshot.error`.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._run_query())
        return await asyncio.shield(self._inflight)

    async def refresh_if_stale(self) -> SubscriptionSnapshot:
        """Refresh when never queried, after an auth change, or when older than the interval."""
        if (
            self._dirty
            or self._last_attempt is None
            or self._clock() - self._last_attempt >= self._refresh_seconds
        ):
            return await self.refresh()
        return self._snapshot

    async def handle_checkout_return(self, query_params: Mapping[str, str]) -> bool:
        """Refresh after a successful checkout redirect. Returns True if it did."""
        if not checkout_succeeded(query_params):
            return False
        await self.refresh()
        return True

    async def _run_query(self) -> SubscriptionSnapshot:
        self._dirty = False
        self._last_attempt = self._clock()

        while True:
            session = self._auth.session
            try:
                new = await asyncio.wait_for(self._query(session), self._timeout_seconds)
                failure = None
            except asyncio.TimeoutError:
                failure = TIMEOUT_MESSAGE
            except (BillingError, AuthError, StorageError, ValueError) as e:
                failure = str(e) or e.__class__.__name__
            except asyncio.CancelledError:
                self._dirty = True
                raise

            # The user changed while we were waiting; the answer is for someone else
            if self._auth.session is not session:
                continue
            break

        previous = self._snapshot
        if failure is not None:
            user_id = session.user.id if session else None
            new = self._failed(previous, failure, user_id)
            logger.warning("entitlement_check_failed", error=failure, state=new.state.value)
            if self._audit:
                await self._audit.log_entitlement_check_failed(failure, new.state.value)

        await self._apply(previous, new)
        return new

    async def _query(self, session: Optional[AuthSession]) -> SubscriptionSnapshot:
        now = datetime.now(timezone.utc)
        if session is None:
            return SubscriptionSnapshot(state=EntitlementState.UNAUTHENTICATED, checked_at=now)

        user = await self._auth.get_user()
        if user is None:
            return SubscriptionSnapshot(state=EntitlementState.UNAUTHENTICATED, checked_at=now)

        try:
            status = await self._billing.check_subscription(session.access_token)
        except EntitlementUnauthorizedError:
            return SubscriptionSnapshot(state=EntitlementState.UNAUTHENTICATED, checked_at=now)
        return SubscriptionSnapshot.from_status(status, user_id=user.id)

    @staticmethod
    def _failed(
        previous: SubscriptionSnapshot,
        message: str,
        user_id: Optional[UUID],
    ) -> SubscriptionSnapshot:
        # Another user's entitlement is never a fallback
        if previous.is_resolved and user_id is not None and previous.user_id == user_id:
            return previous.model_copy(update={"error": message})
        return SubscriptionSnapshot(state=EntitlementState.ERROR, user_id=user_id, error=message)

    async def _apply(self, previous: SubscriptionSnapshot, new: SubscriptionSnapshot) -> None:
        self._snapshot = new

        if new.state != previous.state:
            logger.info(
                "entitlement_changed",
                previous=previous.state.value,
                current=new.state.value,
            )
            if self._audit:
                user = self._auth.current_user
                await self._audit.log_entitlement_changed(
                    previous.state.value,
                    new.state.value,
                    user.id if user else None,
                )

        for listener in list(self._listeners):
            try:
                listener(new)
            except Exception as e:
                logger.error("snapshot_listener_failed", error=str(e))

    # =========================================================================
    # Triggers
    # =========================================================================

    def _on_auth_change(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the next refresh_if_stale() picks it up
            return

        task = loop.create_task(self.refresh())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        logger.debug("entitlement_refresh_scheduled", auth_event=event.value)

    def start(self) -> None:
        """Start the periodic refresh loop on the running event loop."""
        if self._timer is not None and not self._timer.done():
            return
        self._timer = asyncio.get_running_loop().create_task(self._periodic())

    async def _periodic(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self._refresh_seconds)

    async def stop(self) -> None:
        """Stop the periodic loop and any refresh scheduled by auth events."""
        tasks = [t for t in (self._timer, *self._background) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._timer = None

    def close(self) -> None:
        """Stop listening to the auth service."""
        self._unsubscribe_auth()

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # =========================================================================
    # Billing redirects
    # =========================================================================

    async def create_checkout(self) -> str:
        """
        URL of a checkout page. Does not touch the snapshot; the caller
        refreshes when the user comes back.

        Raises:
            NotAuthenticatedError: Without a signed-in user
            BillingError: If the function failed
        """
        session = self._auth.require_session()
        url = await self._billing.create_checkout(session.access_token)
        if self._audit:
            await self._audit.log_billing_redirect(AuditEventType.CHECKOUT_OPENED, session.user.id)
        return url

    async def open_customer_portal(self) -> str:
        """URL of the billing portal. Does not touch the snapshot."""
        session = self._auth.require_session()
        url = await self._billing.open_customer_portal(session.access_token)
        if self._audit:
            await self._audit.log_billing_redirect(AuditEventType.PORTAL_OPENED, session.user.id)
        return url
