"""
Subscription Models

The entitlement collaborator answers with a small status payload.
The cache keeps a snapshot derived from it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EntitlementState(str, Enum):
    """
    Where the paywall stands for the current user.

    LOADING only appears before the first query completes.
    ERROR only appears when a query failed and there is no earlier
    result to fall back on.
    """
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    ENTITLED = "entitled"
    NOT_ENTITLED = "not_entitled"
    ERROR = "error"


class SubscriptionStatus(BaseModel):
    """Payload returned by the check-subscription function."""
    model_config = ConfigDict(extra="ignore")

    subscribed: bool = False
    is_trialing: bool = False
    trial_end: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    status: Optional[str] = None


class SubscriptionSnapshot(BaseModel):
    """
    Current state of the subscription cache.

    On a failed refresh the previous entitlement is kept and `error`
    is set, so a network hiccup never locks a paying user out. The
    previous entitlement only counts for the user it was checked for.
    """

    state: EntitlementState = EntitlementState.LOADING
    user_id: Optional[UUID] = None
    subscribed: bool = False
    is_trialing: bool = False
    trial_end: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    status: Optional[str] = None
    error: Optional[str] = None
    checked_at: Optional[datetime] = Field(
        default=None,
        description="When the last successful query completed"
    )

    @property
    def is_entitled(self) -> bool:
        return self.state == EntitlementState.ENTITLED

    @property
    def is_stale(self) -> bool:
        """True when the data shown comes from before a failed refresh."""
        return self.error is not None and self.state != EntitlementState.ERROR

    @property
    def is_resolved(self) -> bool:
        return self.state in (EntitlementState.ENTITLED, EntitlementState.NOT_ENTITLED)

    @classmethod
    def from_status(
        cls,
        status: SubscriptionStatus,
        user_id: Optional[UUID] = None,
    ) -> "SubscriptionSnapshot":
        return cls(
            user_id=user_id,
            state=(
                EntitlementState.ENTITLED
                if status.subscribed
                else EntitlementState.NOT_ENTITLED
            ),
            subscribed=status.subscribed,
            is_trialing=status.is_trialing,
            trial_end=status.trial_end,
            subscription_end=status.subscription_end,
            status=status.status,
            checked_at=datetime.now(timezone.utc),
        )


def trial_days_remaining(
    trial_end: Optional[datetime],
    now: Optional[datetime] = None,
) -> Optional[int]:
    """Days left in the trial, rounded up; never negative."""
    if trial_end is None:
        return None
    now = now or datetime.now(timezone.utc)
    if trial_end.tzinfo is None:
        trial_end = trial_end.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    seconds = (trial_end - now).total_seconds()
    days = -(-seconds // 86400)
    return max(int(days), 0)
