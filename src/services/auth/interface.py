"""
Authentication Interface

The hosted backend owns users and sessions. The app only needs to
sign users up, in and out, validate the current user, and hear about
sign-in/sign-out so dependent state (the subscription cache, the
storage token) can follow.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


class AuthUser(BaseModel):
    id: UUID
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: AuthUser


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]


class AuthError(Exception):
    """Base exception for authentication failures."""
    pass


class InvalidCredentialsError(AuthError):
    """Wrong email or password."""
    pass


class UserAlreadyRegisteredError(AuthError):
    """Sign-up with an email that already has an account."""
    pass


class NotAuthenticatedError(AuthError):
    """An operation needed a signed-in user and there is none."""
    pass


class AuthServiceInterface(ABC):
    """
    Abstract interface for the authentication collaborator.

    Implementations call `_emit` after every sign-in and sign-out.
    """

    def __init__(self):
        self._listeners: list[AuthListener] = []
        self._session: Optional[AuthSession] = None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._session.user if self._session else None

    def require_session(self) -> AuthSession:
        if self._session is None:
            raise NotAuthenticatedError("Você precisa estar logado.")
        return self._session

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a listener for sign-in/sign-out.

        Returns a function that unregisters it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._session)
            except Exception as e:
                # One broken listener must not stop the others
                logger.error("auth_listener_failed", auth_event=event.value, error=str(e))

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        redirect_to: Optional[str] = None,
    ) -> AuthUser:
        """
        Create an account. The user confirms by email before signing in.

        Raises:
            UserAlreadyRegisteredError: If the email is taken
            AuthError: For any other failure
        """
        pass

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """
        Raises:
            InvalidCredentialsError: On a wrong email/password
        """
        pass

    @abstractmethod
    async def get_user(self) -> Optional[AuthUser]:
        """Validate the current session with the server; None if invalid."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass
