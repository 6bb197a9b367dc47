"""
Supabase-backed row store.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

import httpx
from supabase import Client, PostgrestAPIError, create_client

from boki_shared.config import AppConfig
from boki_shared.logging_config import get_logger
from boki_shared.store.base import (
    Filter,
    RecordNotFoundError,
    Row,
    RowStore,
    RpcNotAvailableError,
    StoreError,
    validate_filters,
)

logger = get_logger(__name__)

# PostgREST codes for "function does not exist"
_MISSING_FUNCTION_CODES = {"PGRST202", "42883"}


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, tuple)):
        return [_serialize_value(item) for item in value]
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    return value


def _serialize_row(row: Row) -> Row:
    return {key: _serialize_value(value) for key, value in row.items()}


class SupabaseRowStore(RowStore):
    """Thin wrapper around the Supabase PostgREST client."""

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def from_config(cls, config: AppConfig) -> SupabaseRowStore:
        if not config.supabase_url or not config.supabase_key:
            raise RuntimeError("Supabase credentials are not configured")
        return cls(create_client(config.supabase_url, config.supabase_key))

    def _execute(self, table: str | None, builder, action: str) -> list[Row]:
        try:
            response = builder.execute()
        except PostgrestAPIError as exc:
            logger.error("Supabase %s failed on %s: %s", action, table, exc.message)
            raise StoreError(exc.message or str(exc), table=table, code=exc.code) from exc
        except httpx.HTTPError as exc:
            logger.error("Supabase %s on %s unreachable: %s", action, table, exc)
            raise StoreError(f"Store unreachable: {exc}", table=table) from exc

        data = response.data
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    def _apply_filters(self, builder, filters: Iterable[Filter] | None):
        for column, op, value in validate_filters(filters):
            value = _serialize_value(value)
            if op == "in":
                builder = builder.in_(column, list(value))
            else:
                builder = getattr(builder, op)(column, value)
        return builder

    def select(
        self,
        table: str,
        filters: Iterable[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Row]:
        builder = self._apply_filters(self._client.table(table).select(columns), filters)
        if order_by:
            builder = builder.order(order_by, desc=descending)
        if limit is not None:
            builder = builder.limit(limit)
        return self._execute(table, builder, "select")

    def select_one(self, table: str, record_id: str) -> Row:
        builder = self._client.table(table).select("*").eq("id", record_id).limit(1)
        rows = self._execute(table, builder, "select")
        if not rows:
            raise RecordNotFoundError(table, record_id)
        return rows[0]

    def insert(self, table: str, row: Row) -> Row:
        rows = self._execute(
            table, self._client.table(table).insert(_serialize_row(row)), "insert"
        )
        if not rows:
            raise StoreError(f"Insert into {table} returned no row", table=table)
        return rows[0]

    def insert_many(self, table: str, rows: list[Row]) -> list[Row]:
        if not rows:
            return []
        payload = [_serialize_row(row) for row in rows]
        return self._execute(table, self._client.table(table).insert(payload), "insert")

    def update(self, table: str, record_id: str, patch: Row) -> Row:
        builder = self._client.table(table).update(_serialize_row(patch)).eq("id", record_id)
        rows = self._execute(table, builder, "update")
        if not rows:
            raise RecordNotFoundError(table, record_id)
        return rows[0]

    def delete(self, table: str, record_id: str) -> None:
        builder = self._client.table(table).delete().eq("id", record_id)
        rows = self._execute(table, builder, "delete")
        if not rows:
            raise RecordNotFoundError(table, record_id)

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> Any:
        builder = self._client.rpc(name, _serialize_row(params or {}))
        try:
            response = builder.execute()
        except PostgrestAPIError as exc:
            if exc.code in _MISSING_FUNCTION_CODES:
                raise RpcNotAvailableError(f"RPC {name} is not available", code=exc.code) from exc
            logger.error("Supabase RPC %s failed: %s", name, exc.message)
            raise StoreError(exc.message or str(exc), code=exc.code) from exc
        except httpx.HTTPError as exc:
            logger.error("Supabase RPC %s unreachable: %s", name, exc)
            raise StoreError(f"Store unreachable: {exc}") from exc
        return response.data
