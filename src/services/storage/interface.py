"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for record storage.
This allows us to:
1. Talk to the hosted database in production
2. Use in-memory storage for testing and offline demos
3. Keep the form flows decoupled from the wire format

The interface is intentionally simple - every form issues exactly one
insert or update per submission (a will and its heirs: one insert each),
and the view screens list or fetch.
"""

from abc import ABC, abstractmethod
from typing import Optional, TypeVar
from uuid import UUID

from src.models.records import UserRecord

R = TypeVar("R", bound=UserRecord)


class RecordStorageInterface(ABC):
    """
    Abstract interface for user-owned record storage.

    Every call is scoped to one record type (one table). Implementations
    must only return records that belong to the given user.
    """

    @abstractmethod
    async def insert(self, record: R) -> R:
        """
        Insert a new record.

        Args:
            record: Record with user_id set; id is assigned by the store

        Returns:
            The stored record, with id and timestamps

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def insert_many(self, records: list[R]) -> list[R]:
        """
        Insert records of one type in a single call.

        Either every record is stored or none is.

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update(self, record: R) -> R:
        """
        Update an existing record by id.

        Raises:
            NotFoundError: If no record with that id exists for the user
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, record_type: type[R], record_id: UUID, user_id: UUID) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def get(self, record_type: type[R], record_id: UUID, user_id: UUID) -> Optional[R]:
        """Fetch one record, or None."""
        pass

    @abstractmethod
    async def list_for_user(
        self,
        record_type: type[R],
        user_id: UUID,
        filters: Optional[dict[str, str]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
        limit: int = 100,
    ) -> list[R]:
        """
        List the user's records of one type.

        Args:
            record_type: Model class, which names the table
            user_id: Owner of the records
            filters: Exact-match column filters
            order_by: Column to sort on
            descending: Sort direction
            limit: Maximum number of results
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass


class PermissionDeniedError(StorageError):
    """The store refused the call for this user (row-level security, bad token)."""
    pass
