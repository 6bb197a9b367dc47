"""
Store interface consumed by the services.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

FILTER_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "in"}

Row = dict[str, Any]
Filter = tuple[str, str, Any]


class StoreError(Exception):
    """
    The hosted store or one of its RPCs failed.

    The SDK error is kept as ``__cause__``; callers never retry.
    """

    def __init__(self, message: str, table: str | None = None, code: str | None = None):
        super().__init__(message)
        self.table = table
        self.code = code


class RecordNotFoundError(Exception):
    """No row with the requested id exists (any more)."""

    def __init__(self, table: str, record_id: str):
        super().__init__(f"{table} record {record_id} not found")
        self.table = table
        self.record_id = record_id


class RpcNotAvailableError(StoreError):
    """The named RPC is not deployed on this backend."""


def validate_filters(filters: Iterable[Filter] | None) -> list[Filter]:
    validated = []
    for column, op, value in filters or []:
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        validated.append((column, op, value))
    return validated


@dataclass(frozen=True)
class Embed:
    """
    A related row pulled into a select, e.g. ``size:size_options!size_id(name)``.

    ``alias`` names the key the related row is attached under and ``hint``
    names the foreign key column; both default from the table name.
    """

    table: str
    columns: str = "*"
    alias: str | None = None
    hint: str | None = None

    @property
    def key(self) -> str:
        return self.alias or self.table

    @property
    def foreign_key(self) -> str:
        return self.hint or f"{self.table.removesuffix('s')}_id"


def _split_top_level(columns: str) -> list[str]:
    parts, current, depth = [], [], 0
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Unbalanced select columns: {columns}")
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if depth:
        raise ValueError(f"Unbalanced select columns: {columns}")
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def parse_select(columns: str) -> tuple[list[str], list[Embed]]:
    """Split a PostgREST select string into plain column names and embeds."""
    names: list[str] = []
    embeds: list[Embed] = []
    for part in _split_top_level(columns):
        if "(" not in part:
            names.append(part)
            continue
        head, _, rest = part.partition("(")
        alias = None
        if ":" in head:
            alias, head = (piece.strip() for piece in head.split(":", 1))
        table, _, hint = head.strip().partition("!")
        embeds.append(
            Embed(
                table=table.strip(),
                columns=rest[: rest.rindex(")")].strip() or "*",
                alias=alias or None,
                hint=hint.strip() or None,
            )
        )
    return names, embeds


class RowStore(ABC):
    """Abstract row store: CRUD over named tables plus named RPCs."""

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Iterable[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Row]:
        """
        Return matching rows; an empty list when nothing matches.

        ``columns`` is a PostgREST select string. Embeds such as
        ``food_items(name)`` attach the referenced row under the table name
        (or alias), and None when the reference is dangling.
        """

    @abstractmethod
    def select_one(self, table: str, record_id: str) -> Row:
        """Return the row with ``id == record_id`` or raise RecordNotFoundError."""

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored (with generated columns)."""

    @abstractmethod
    def insert_many(self, table: str, rows: list[Row]) -> list[Row]:
        pass

    @abstractmethod
    def update(self, table: str, record_id: str, patch: Row) -> Row:
        """Patch one row and return it; RecordNotFoundError when no row matched."""

    @abstractmethod
    def delete(self, table: str, record_id: str) -> None:
        pass

    @abstractmethod
    def rpc(self, name: str, params: dict[str, Any] | None = None) -> Any:
        """Call a server-side procedure; RpcNotAvailableError when it is unknown."""
