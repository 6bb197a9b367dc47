"""
In-memory row store.

Used by the test suite and by ``STORE_BACKEND=memory`` for local runs. Rows
are copied on the way in and out so callers never share state with the store.
"""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable

from boki_shared.datetime_utils import parse_timestamp, to_iso, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.store.base import (
    Filter,
    RecordNotFoundError,
    Row,
    RowStore,
    RpcNotAvailableError,
    parse_select,
    validate_filters,
)
from boki_shared.store.realtime import RealtimeManager

logger = get_logger(__name__)


def _normalize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    return value


def _comparable(value: Any, other: Any) -> tuple[Any, Any]:
    """Compare timestamps as datetimes and everything else as stored."""
    if isinstance(other, datetime):
        return parse_timestamp(value) if value else None, parse_timestamp(other)
    return value, _normalize(other)


def _matches(row: Row, column: str, op: str, expected: Any) -> bool:
    actual = row.get(column)
    if op == "in":
        return actual in {_normalize(item) for item in expected}

    actual, expected = _comparable(actual, expected)
    if op == "eq":
        return actual == expected
    if op == "neq":
        return actual != expected
    if actual is None or expected is None:
        return False
    if op == "gt":
        return actual > expected
    if op == "gte":
        return actual >= expected
    if op == "lt":
        return actual < expected
    return actual <= expected


class InMemoryRowStore(RowStore):
    """Dict-of-tables store with the same contract as the Supabase store."""

    def __init__(
        self,
        feed: RealtimeManager | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._tables: dict[str, dict[str, Row]] = {}
        self._rpcs: dict[str, Callable[..., Any]] = {}
        self._feed = feed
        self._clock = clock
        self._lock = threading.RLock()

    def register_rpc(self, name: str, handler: Callable[..., Any]) -> None:
        """Register a server-side procedure; it is called with the params as kwargs."""
        self._rpcs[name] = handler

    def seed(self, table: str, rows: Iterable[Row]) -> list[Row]:
        """Insert fixture rows without publishing change events."""
        return [self._store_row(table, row) for row in rows]

    def _store_row(self, table: str, row: Row) -> Row:
        stored = {key: _normalize(value) for key, value in copy.deepcopy(row).items()}
        stored.setdefault("id", str(uuid.uuid4()))
        now = to_iso(self._clock())
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", stored["created_at"])
        with self._lock:
            self._tables.setdefault(table, {})[str(stored["id"])] = stored
        return copy.deepcopy(stored)

    def _publish(self, table: str, event_type: str, row: Row) -> None:
        if self._feed is not None:
            self._feed.publish(table, event_type, row)

    def select(
        self,
        table: str,
        filters: Iterable[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Row]:
        checks = validate_filters(filters)
        with self._lock:
            rows = [
                self._project(row, columns)
                for row in self._tables.get(table, {}).values()
                if all(_matches(row, column, op, value) for column, op, value in checks)
            ]

        if order_by:
            present = [row for row in rows if row.get(order_by) is not None]
            missing = [row for row in rows if row.get(order_by) is None]
            present.sort(key=lambda row: row[order_by], reverse=descending)
            rows = present + missing
        if limit is not None:
            rows = rows[:limit]
        return rows

    def _project(self, row: Row, columns: str) -> Row:
        """Copy of ``row`` restricted to ``columns`` with embeds resolved by foreign key."""
        names, embeds = parse_select(columns)
        if "*" in names:
            projected = copy.deepcopy(row)
        else:
            projected = {name: copy.deepcopy(row.get(name)) for name in names}
        for embed in embeds:
            reference = row.get(embed.foreign_key)
            related = (
                self._tables.get(embed.table, {}).get(str(reference))
                if reference is not None
                else None
            )
            projected[embed.key] = self._project(related, embed.columns) if related else None
        return projected

    def select_one(self, table: str, record_id: str) -> Row:
        with self._lock:
            row = self._tables.get(table, {}).get(str(record_id))
            if row is None:
                raise RecordNotFoundError(table, record_id)
            return copy.deepcopy(row)

    def insert(self, table: str, row: Row) -> Row:
        stored = self._store_row(table, row)
        self._publish(table, "INSERT", stored)
        return stored

    def insert_many(self, table: str, rows: list[Row]) -> list[Row]:
        return [self.insert(table, row) for row in rows]

    def update(self, table: str, record_id: str, patch: Row) -> Row:
        with self._lock:
            row = self._tables.get(table, {}).get(str(record_id))
            if row is None:
                raise RecordNotFoundError(table, record_id)
            row.update({key: _normalize(value) for key, value in copy.deepcopy(patch).items()})
            updated = copy.deepcopy(row)
        self._publish(table, "UPDATE", updated)
        return updated

    def delete(self, table: str, record_id: str) -> None:
        with self._lock:
            row = self._tables.get(table, {}).pop(str(record_id), None)
        if row is None:
            raise RecordNotFoundError(table, record_id)
        self._publish(table, "DELETE", row)

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> Any:
        handler = self._rpcs.get(name)
        if handler is None:
            raise RpcNotAvailableError(f"RPC {name} is not available")
        return handler(**(params or {}))
