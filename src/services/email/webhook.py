"""
Signed Webhook Verification

The auth service calls the confirmation-email handler with a payload
signed in the Standard Webhooks format:

    webhook-id:        message id
    webhook-timestamp: unix seconds
    webhook-signature: space separated list of "v1,<base64 hmac>"

The secret is configured as "v1,whsec_<base64>". Signing, timestamp
tolerance (5 minutes) and the constant-time compare are done by the
standardwebhooks library; this module adapts the secret format and
turns every failure into WebhookVerificationError.
"""

import binascii
from datetime import datetime, timezone
from typing import Any, Mapping, Union

from standardwebhooks.webhooks import Webhook
from standardwebhooks.webhooks import WebhookVerificationError as _LibraryVerificationError

SECRET_VERSION_PREFIX = "v1,"


class WebhookVerificationError(Exception):
    """The payload is unsigned, wrongly signed, too old or unreadable."""
    pass


class WebhookConfigurationError(Exception):
    """The configured signing secret is unusable."""
    pass


def _webhook(secret: str) -> Webhook:
    if secret.startswith(SECRET_VERSION_PREFIX):
        secret = secret[len(SECRET_VERSION_PREFIX):]
    try:
        return Webhook(secret)
    except (binascii.Error, ValueError, RuntimeError) as e:
        raise WebhookConfigurationError("Webhook secret is not valid base64") from e


def sign(secret: str, msg_id: str, timestamp: int, payload: Union[bytes, str]) -> str:
    """Return the "v1,<base64>" signature for a payload."""
    data = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    return _webhook(secret).sign(
        msg_id=msg_id,
        timestamp=datetime.fromtimestamp(timestamp, tz=timezone.utc),
        data=data,
    )


def verify(
    payload: Union[bytes, str],
    headers: Mapping[str, str],
    secret: str,
) -> dict[str, Any]:
    """
    Check the signature and return the decoded JSON payload.

    Raises:
        WebhookVerificationError: On any missing header, stale or
            future timestamp, signature mismatch, undecodable or
            non-object body
        WebhookConfigurationError: If the secret cannot be decoded
    """
    webhook = _webhook(secret)
    try:
        body = webhook.verify(payload, dict(headers))
    except _LibraryVerificationError as e:
        raise WebhookVerificationError(str(e)) from e
    except UnicodeDecodeError as e:
        raise WebhookVerificationError("Webhook payload is not UTF-8") from e
    except (binascii.Error, ValueError) as e:
        # Malformed signature header or a body that is not JSON
        raise WebhookVerificationError("Webhook payload or signature is malformed") from e

    if not isinstance(body, dict):
        raise WebhookVerificationError("Webhook payload is not an object")
    return body
