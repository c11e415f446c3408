"""Authentication services package."""

from src.services.auth.interface import (
    AuthError,
    AuthEvent,
    AuthListener,
    AuthServiceInterface,
    AuthSession,
    AuthUser,
    InvalidCredentialsError,
    NotAuthenticatedError,
    UserAlreadyRegisteredError,
)
from src.services.auth.memory import InMemoryAuthService
from src.services.auth.supabase_auth import SupabaseAuthService

__all__ = [
    "AuthError",
    "AuthEvent",
    "AuthListener",
    "AuthServiceInterface",
    "AuthSession",
    "AuthUser",
    "InMemoryAuthService",
    "InvalidCredentialsError",
    "NotAuthenticatedError",
    "SupabaseAuthService",
    "UserAlreadyRegisteredError",
]
