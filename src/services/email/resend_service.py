"""
Resend Email Service

One POST per email to the Resend HTTP API. Delivery is at-most-once:
no retry and no idempotency key, so a failed send is reported and
never repeated behind the caller's back.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests
import structlog

from src.config import ResendSettings, get_settings

logger = structlog.get_logger(__name__)


class EmailError(Exception):
    """
    Sending an email failed.

    `code` carries the provider's error name (or the HTTP status) so the
    handlers can echo it back.
    """

    def __init__(self, message: str, code: Any = "UNKNOWN_ERROR", status_code: int = 500):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class EmailServiceInterface(ABC):

    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> dict[str, Any]:
        """
        Send one HTML email.

        Returns the provider's response body (contains the message id).

        Raises:
            EmailError: If the provider rejected the email or was unreachable
        """
        pass


class ResendEmailService(EmailServiceInterface):

    def __init__(
        self,
        settings: Optional[ResendSettings] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self._settings = settings or get_settings().resend
        self._session = session or requests.Session()
        self._timeout = timeout or get_settings().app.request_timeout_seconds

    @property
    def from_address(self) -> str:
        return self._settings.from_address

    def _send_sync(self, to: str, subject: str, html: str) -> dict[str, Any]:
        try:
            response = self._session.post(
                self._settings.api_url,
                json={
                    "from": self._settings.from_address,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
                headers={
                    "Authorization": f"Bearer {self._settings.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise EmailError(f"Email provider unreachable: {e}", code="CONNECTION_ERROR") from e
        except requests.RequestException as e:
            raise EmailError(f"Email request failed: {e}", code="REQUEST_ERROR") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            code = body.get("name") if isinstance(body, dict) else None
            raise EmailError(
                message or f"Email provider returned HTTP {response.status_code}",
                code=code or response.status_code,
                status_code=401 if response.status_code == 401 else 500,
            )

        return body if isinstance(body, dict) else {}

    async def send(self, to: str, subject: str, html: str) -> dict[str, Any]:
        data = await asyncio.to_thread(self._send_sync, to, subject, html)
        logger.info("email_sent", subject=subject, provider_id=data.get("id"))
        return data
