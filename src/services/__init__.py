"""Services package."""

from src.services.auth import (
    AuthError,
    AuthEvent,
    AuthServiceInterface,
    InMemoryAuthService,
    SupabaseAuthService,
)
from src.services.billing import (
    BillingError,
    EntitlementUnauthorizedError,
    SubscriptionServiceInterface,
    SupabaseSubscriptionService,
)
from src.services.email import (
    EmailError,
    EmailServiceInterface,
    ResendEmailService,
    WebhookVerificationError,
)
from src.services.storage import (
    ConnectionError,
    InMemoryRecordStorage,
    NotFoundError,
    PermissionDeniedError,
    RecordStorageInterface,
    StorageError,
    SupabaseClient,
    SupabaseRecordStorage,
)

__all__ = [
    # Auth services
    "AuthError",
    "AuthEvent",
    "AuthServiceInterface",
    "InMemoryAuthService",
    "SupabaseAuthService",
    # Billing services
    "BillingError",
    "EntitlementUnauthorizedError",
    "SubscriptionServiceInterface",
    "SupabaseSubscriptionService",
    # Email services
    "EmailError",
    "EmailServiceInterface",
    "ResendEmailService",
    "WebhookVerificationError",
    # Storage services
    "ConnectionError",
    "InMemoryRecordStorage",
    "NotFoundError",
    "PermissionDeniedError",
    "RecordStorageInterface",
    "StorageError",
    "SupabaseClient",
    "SupabaseRecordStorage",
]
