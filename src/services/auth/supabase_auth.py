"""
Supabase Auth (GoTrue) Implementation

Password sign-in, sign-up with email confirmation, server-side user
validation and sign-out. The access token of the current session is
pushed into the shared SupabaseClient so record calls run as the user.
"""

from typing import Optional

import structlog

from src.services.auth.interface import (
    AuthError,
    AuthEvent,
    AuthServiceInterface,
    AuthSession,
    AuthUser,
    InvalidCredentialsError,
    UserAlreadyRegisteredError,
)
from src.services.storage.supabase import SupabaseClient, error_message_from

logger = structlog.get_logger(__name__)


class SupabaseAuthService(AuthServiceInterface):
    """GoTrue REST client."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        super().__init__()
        self._client = client or SupabaseClient()

    def _set_session(self, session: Optional[AuthSession]) -> None:
        self._session = session
        self._client.set_access_token(session.access_token if session else None)

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        redirect_to: Optional[str] = None,
    ) -> AuthUser:
        payload = {"email": email, "password": password}
        if full_name:
            payload["data"] = {"nome_completo": full_name}

        response = await self._client.arequest(
            "POST",
            f"{self._client.settings.auth_url}/signup",
            params={"redirect_to": redirect_to} if redirect_to else None,
            json=payload,
            headers=self._client.headers(access_token=self._client.settings.anon_key),
        )

        if response.status_code >= 400:
            message = error_message_from(response)
            if "already registered" in message.lower():
                raise UserAlreadyRegisteredError(message)
            raise AuthError(message)

        body = response.json()
        # With auto-confirm on, sign-up returns a full session
        if body.get("access_token"):
            session = AuthSession.model_validate(body)
            self._set_session(session)
            self._emit(AuthEvent.SIGNED_IN)
            return session.user

        logger.info("user_signed_up", email=email)
        return AuthUser.model_validate(body.get("user", body))

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await self._client.arequest(
            "POST",
            f"{self._client.settings.auth_url}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._client.headers(access_token=self._client.settings.anon_key),
        )

        if response.status_code in (400, 401):
            raise InvalidCredentialsError(error_message_from(response))
        if response.status_code >= 400:
            raise AuthError(error_message_from(response))

        session = AuthSession.model_validate(response.json())
        self._set_session(session)
        logger.info("user_signed_in", user_id=str(session.user.id))
        self._emit(AuthEvent.SIGNED_IN)
        return session

    async def get_user(self) -> Optional[AuthUser]:
        """
        Validate the session with the server.

        A rejected token clears the local session and signs the user
        out, so stale sessions never linger.
        """
        if self._session is None:
            return None

        response = await self._client.arequest(
            "GET",
            f"{self._client.settings.auth_url}/user",
            headers=self._client.headers(access_token=self._session.access_token),
        )

        if response.status_code in (401, 403):
            logger.info("stale_session_cleared")
            self._set_session(None)
            self._emit(AuthEvent.SIGNED_OUT)
            return None
        if response.status_code >= 400:
            raise AuthError(error_message_from(response))

        return AuthUser.model_validate(response.json())

    async def sign_out(self) -> None:
        session = self._session
        self._set_session(None)

        if session is not None:
            response = await self._client.arequest(
                "POST",
                f"{self._client.settings.auth_url}/logout",
                headers=self._client.headers(access_token=session.access_token),
            )
            if response.status_code >= 400 and response.status_code not in (401, 403):
                logger.warning("remote_sign_out_failed", error=error_message_from(response))

        self._emit(AuthEvent.SIGNED_OUT)
