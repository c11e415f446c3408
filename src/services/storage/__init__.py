"""
Storage Services Package

Provides the abstract record-storage interface and its implementations.
The hosted database is the production backend; the in-memory store
serves tests and offline runs.
"""

from src.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    PermissionDeniedError,
    RecordStorageInterface,
    StorageError,
)
from src.services.storage.memory import InMemoryRecordStorage
from src.services.storage.supabase import (
    SupabaseClient,
    SupabaseRecordStorage,
    error_message_from,
)

__all__ = [
    # Interface
    "RecordStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    # Implementations
    "InMemoryRecordStorage",
    "SupabaseClient",
    "SupabaseRecordStorage",
    "error_message_from",
]
