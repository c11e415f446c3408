"""
Supabase Storage Implementation

Records live in the hosted Postgres database and are reached through
its REST layer (PostgREST). Row-level security on the server scopes
rows to the signed-in user; we also filter by user_id explicitly so a
misconfigured policy never leaks another user's rows into a screen.

TRADEOFFS:
- One HTTP round trip per form submission, no batching
- Reads are retried on connection failures; writes never are, because
  an insert without an idempotency key could land twice
"""

import asyncio
from typing import Any, Optional
from uuid import UUID

import requests
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import SupabaseSettings, get_settings
from src.models.records import UserRecord
from src.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    PermissionDeniedError,
    R,
    RecordStorageInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


def error_message_from(response: requests.Response) -> str:
    """Pull the most useful message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and value.get("message"):
                return str(value["message"])
    return f"HTTP {response.status_code}"


class SupabaseClient:
    """
    Low-level HTTP client for the hosted backend.

    Shared by record storage, auth and billing. Holds the current
    access token; without one, calls go out with the anon key.
    """

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self._settings = settings or get_settings().supabase
        self._session = session or requests.Session()
        self._timeout = timeout or get_settings().app.request_timeout_seconds
        self._access_token: Optional[str] = None

    @property
    def settings(self) -> SupabaseSettings:
        return self._settings

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def set_access_token(self, token: Optional[str]) -> None:
        self._access_token = token

    def headers(self, access_token: Optional[str] = None, **extra: str) -> dict[str, str]:
        token = access_token or self._access_token or self._settings.anon_key
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> requests.Response:
        """
        Send one request and translate transport failures.

        HTTP error statuses are returned to the caller, which knows
        what they mean for its endpoint.
        """
        try:
            return self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers or self.headers(),
                timeout=self._timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ConnectionError(f"Could not reach {url}: {e}") from e

    async def arequest(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Run `request` off the event loop."""
        return await asyncio.to_thread(self.request, method, url, **kwargs)


class SupabaseRecordStorage(RecordStorageInterface):
    """
    PostgREST implementation of record storage.

    Each record type maps to the table named by its `table_name`.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _table_url(self, record_type: type[UserRecord]) -> str:
        return f"{self._client.settings.rest_url}/{record_type.table_name}"

    def _owner_params(self, record_type: type[UserRecord], user_id: UUID) -> dict[str, str]:
        if record_type.owner_column is None:
            return {}
        return {record_type.owner_column: f"eq.{user_id}"}

    def _check(self, response: requests.Response, action: str) -> list[dict]:
        if response.status_code in (401, 403):
            raise PermissionDeniedError(f"Failed to {action}: {error_message_from(response)}")
        if response.status_code >= 400:
            raise StorageError(f"Failed to {action}: {error_message_from(response)}")
        if not response.content:
            return []
        body = response.json()
        return body if isinstance(body, list) else [body]

    async def insert(self, record: R) -> R:
        """Insert a record and return the stored row."""
        table = record.table_name
        response = await self._client.arequest(
            "POST",
            self._table_url(type(record)),
            json=record.to_row(),
            headers=self._client.headers(Prefer="return=representation"),
        )
        rows = self._check(response, f"insert into {table}")
        if not rows:
            raise StorageError(f"Insert into {table} returned no row")

        logger.info("record_inserted", table=table, record_id=rows[0].get("id"))
        return type(record).model_validate(rows[0])

    async def insert_many(self, records: list[R]) -> list[R]:
        """Insert rows of one table with a single POST; PostgREST stores all or none."""
        if not records:
            return []
        record_type = type(records[0])
        table = record_type.table_name
        response = await self._client.arequest(
            "POST",
            self._table_url(record_type),
            json=[record.to_row() for record in records],
            headers=self._client.headers(Prefer="return=representation"),
        )
        rows = self._check(response, f"insert into {table}")
        if len(rows) != len(records):
            raise StorageError(f"Insert into {table} returned {len(rows)} of {len(records)} rows")

        logger.info("records_inserted", table=table, count=len(rows))
        return [record_type.model_validate(row) for row in rows]

    async def update(self, record: R) -> R:
        """Update a record by id."""
        table = record.table_name
        if record.id is None:
            raise NotFoundError(f"Cannot update {table} record without id")

        params = {"id": f"eq.{record.id}"}
        if record.user_id is not None:
            params.update(self._owner_params(type(record), record.user_id))

        row = record.to_row()
        for column in ("id", "created_at", "updated_at"):
            row.pop(column, None)

        response = await self._client.arequest(
            "PATCH",
            self._table_url(type(record)),
            params=params,
            json=row,
            headers=self._client.headers(Prefer="return=representation"),
        )
        rows = self._check(response, f"update {table}")
        if not rows:
            raise NotFoundError(f"Record not found in {table}: {record.id}")

        logger.info("record_updated", table=table, record_id=str(record.id))
        return type(record).model_validate(rows[0])

    async def delete(self, record_type: type[R], record_id: UUID, user_id: UUID) -> bool:
        params = {"id": f"eq.{record_id}", **self._owner_params(record_type, user_id)}
        response = await self._client.arequest(
            "DELETE",
            self._table_url(record_type),
            params=params,
            headers=self._client.headers(Prefer="return=representation"),
        )
        rows = self._check(response, f"delete from {record_type.table_name}")
        return len(rows) > 0

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get(self, record_type: type[R], record_id: UUID, user_id: UUID) -> Optional[R]:
        params = {
            "select": "*",
            "id": f"eq.{record_id}",
            **self._owner_params(record_type, user_id),
        }
        response = await self._client.arequest(
            "GET", self._table_url(record_type), params=params, headers=self._client.headers()
        )
        rows = self._check(response, f"read {record_type.table_name}")
        return record_type.model_validate(rows[0]) if rows else None

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_for_user(
        self,
        record_type: type[R],
        user_id: UUID,
        filters: Optional[dict[str, str]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
        limit: int = 100,
    ) -> list[R]:
        params: dict[str, Any] = {"select": "*", "limit": limit}
        params.update(self._owner_params(record_type, user_id))
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"

        response = await self._client.arequest(
            "GET", self._table_url(record_type), params=params, headers=self._client.headers()
        )
        rows = self._check(response, f"list {record_type.table_name}")

        records = []
        for row in rows:
            try:
                records.append(record_type.model_validate(row))
            except ValueError as e:
                # A row written by an older client; skip it rather than hide the screen
                logger.warning(
                    "malformed_row_skipped",
                    table=record_type.table_name,
                    row_id=row.get("id"),
                    error=str(e),
                )
        return records
