"""Email services package."""

from src.services.email.resend_service import (
    EmailError,
    EmailServiceInterface,
    ResendEmailService,
)
from src.services.email.templates import (
    CONFIRMATION_SUBJECT,
    WELCOME_SUBJECT,
    RenderedEmail,
    confirmation_url,
    render_confirmation_email,
    render_welcome_email,
    welcome_greeting,
)
from src.services.email.webhook import (
    WebhookConfigurationError,
    WebhookVerificationError,
    sign,
    verify,
)

__all__ = [
    "CONFIRMATION_SUBJECT",
    "EmailError",
    "EmailServiceInterface",
    "RenderedEmail",
    "ResendEmailService",
    "WELCOME_SUBJECT",
    "WebhookConfigurationError",
    "WebhookVerificationError",
    "confirmation_url",
    "render_confirmation_email",
    "render_welcome_email",
    "sign",
    "verify",
    "welcome_greeting",
]
