"""
In-Memory Auth Implementation

Local accounts for tests and offline runs. Passwords are kept as
salted PBKDF2 hashes; nothing leaves the process.
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional
from uuid import uuid4

from src.services.auth.interface import (
    AuthEvent,
    AuthServiceInterface,
    AuthSession,
    AuthUser,
    InvalidCredentialsError,
    UserAlreadyRegisteredError,
)


def _hash_password(password: str, salt: bytes) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 100_000)
    return base64.b64encode(digest).decode()


class InMemoryAuthService(AuthServiceInterface):

    def __init__(self):
        super().__init__()
        # email -> (user, salt, password hash)
        self._accounts: dict[str, tuple[AuthUser, bytes, str]] = {}

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        redirect_to: Optional[str] = None,
    ) -> AuthUser:
        key = email.strip().lower()
        if key in self._accounts:
            raise UserAlreadyRegisteredError("User already registered")

        user = AuthUser(
            id=uuid4(),
            email=key,
            user_metadata={"nome_completo": full_name} if full_name else {},
        )
        salt = secrets.token_bytes(16)
        self._accounts[key] = (user, salt, _hash_password(password, salt))
        return user

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = self._accounts.get(email.strip().lower())
        if account is None:
            raise InvalidCredentialsError("Invalid login credentials")

        user, salt, stored = account
        if not hmac.compare_digest(stored, _hash_password(password, salt)):
            raise InvalidCredentialsError("Invalid login credentials")

        self._session = AuthSession(access_token=secrets.token_urlsafe(32), user=user)
        self._emit(AuthEvent.SIGNED_IN)
        return self._session

    async def get_user(self) -> Optional[AuthUser]:
        return self.current_user

    async def sign_out(self) -> None:
        self._session = None
        self._emit(AuthEvent.SIGNED_OUT)
