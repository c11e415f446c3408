"""
In-Memory Storage Implementation

Used by the test-suite and by the app when the hosted database is not
configured. Behaves like the hosted store: assigns ids and timestamps,
scopes every read to the owner and raises NotFoundError on a missing
update.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from src.models.records import UserRecord
from src.services.storage.interface import (
    NotFoundError,
    R,
    RecordStorageInterface,
)


class InMemoryRecordStorage(RecordStorageInterface):
    """Keeps records in a dict per table."""

    def __init__(self):
        self._tables: dict[str, dict[UUID, UserRecord]] = {}

    def _owned_by(self, record: UserRecord, user_id: Optional[UUID]) -> bool:
        if record.owner_column is not None:
            return getattr(record, record.owner_column) == user_id
        if record.parent_table and record.parent_column:
            # Owned through the parent row, e.g. an heir through its will
            parent = self._tables.get(record.parent_table, {}).get(
                getattr(record, record.parent_column)
            )
            return parent is not None and self._owned_by(parent, user_id)
        return True

    def _table(self, record_type: type[UserRecord]) -> dict[UUID, UserRecord]:
        return self._tables.setdefault(record_type.table_name, {})

    async def insert(self, record: R) -> R:
        now = datetime.now(timezone.utc)
        stored = record.model_copy(
            update={"id": record.id or uuid4(), "created_at": now, "updated_at": now}
        )
        self._table(type(record))[stored.id] = stored
        return stored.model_copy()

    async def insert_many(self, records: list[R]) -> list[R]:
        return [await self.insert(record) for record in records]

    async def update(self, record: R) -> R:
        table = self._table(type(record))
        existing = table.get(record.id) if record.id else None
        if existing is None or not self._owned_by(existing, record.user_id):
            raise NotFoundError(f"Record not found in {record.table_name}: {record.id}")

        stored = record.model_copy(
            update={
                "created_at": existing.created_at,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        table[stored.id] = stored
        return stored.model_copy()

    async def delete(self, record_type: type[R], record_id: UUID, user_id: UUID) -> bool:
        table = self._table(record_type)
        existing = table.get(record_id)
        if existing is None or not self._owned_by(existing, user_id):
            return False
        del table[record_id]
        return True

    async def get(self, record_type: type[R], record_id: UUID, user_id: UUID) -> Optional[R]:
        existing = self._table(record_type).get(record_id)
        if existing is None or not self._owned_by(existing, user_id):
            return None
        return existing.model_copy()

    async def list_for_user(
        self,
        record_type: type[R],
        user_id: UUID,
        filters: Optional[dict[str, str]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
        limit: int = 100,
    ) -> list[R]:
        records = [r for r in self._table(record_type).values() if self._owned_by(r, user_id)]

        for column, value in (filters or {}).items():
            records = [r for r in records if str(getattr(r, column, None)) == str(value)]

        if order_by:
            records.sort(
                key=lambda r: (getattr(r, order_by, None) is None, getattr(r, order_by, None) or 0),
                reverse=descending,
            )

        return [r.model_copy() for r in records[:limit]]
