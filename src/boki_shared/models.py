"""
Row models for the hosted store.

Rows come back from the store as plain dicts; each model has a ``from_row``
constructor that validates enumerated fields and a ``to_row`` that produces
the column payload written back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from boki_shared.constants import (
    UNKNOWN_ITEM_NAME,
    KioskOrderStatus,
    OnlineOrderStatus,
    OrderSource,
    OrderType,
)
from boki_shared.datetime_utils import parse_timestamp, to_iso
from boki_shared.validation import (
    parse_kiosk_status,
    parse_online_status,
    parse_order_type,
    to_decimal,
)


def _item_name(row: dict[str, Any]) -> str:
    """Menu item name from the ``food_items`` embed; dangling references fall back."""
    for key in ("food_items", "food_item"):
        embedded = row.get(key)
        if isinstance(embedded, dict) and embedded.get("name"):
            return embedded["name"]
    return UNKNOWN_ITEM_NAME


def _size_name(row: dict[str, Any]) -> str | None:
    if row.get("size_name"):
        return row["size_name"]
    size = row.get("size")
    if isinstance(size, dict):
        return size.get("name")
    return None


@dataclass
class OrderItem:
    """One line of an online or kiosk order."""

    id: str | None
    order_id: str | None
    food_item_id: str | None
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal | None = None
    size_option_id: str | None = None
    size_name: str | None = None
    size_multiplier: Decimal | None = None
    special_instructions: str | None = None

    @property
    def line_total(self) -> Decimal:
        if self.total_price is not None:
            return self.total_price
        return self.unit_price * self.quantity

    @classmethod
    def from_row(cls, row: dict[str, Any], order_key: str = "order_id") -> OrderItem:
        total_price = row.get("total_price")
        multiplier = row.get("size_multiplier")
        return cls(
            id=row.get("id"),
            order_id=row.get(order_key),
            food_item_id=row.get("food_item_id"),
            name=_item_name(row),
            quantity=int(row.get("quantity") or 0),
            unit_price=to_decimal(row.get("unit_price"), "unit_price"),
            total_price=to_decimal(total_price, "total_price") if total_price is not None else None,
            size_option_id=row.get("size_option_id") or row.get("size_id"),
            size_name=_size_name(row),
            size_multiplier=to_decimal(multiplier) if multiplier is not None else None,
            special_instructions=row.get("special_instructions"),
        )


@dataclass
class StatusHistoryEntry:
    """Append-only audit row written once per committed status change."""

    order_id: str
    previous_status: str | None
    new_status: str
    changed_by: str | None
    notes: str
    created_at: datetime
    id: str | None = None

    def to_online_row(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "previous_status": self.previous_status,
            "status": self.new_status,
            "changed_by": self.changed_by,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }

    def to_kiosk_row(self) -> dict[str, Any]:
        return {
            "kiosk_order_id": self.order_id,
            "old_status": self.previous_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> StatusHistoryEntry:
        return cls(
            id=row.get("id"),
            order_id=row.get("order_id") or row.get("kiosk_order_id"),
            previous_status=row.get("previous_status") or row.get("old_status"),
            new_status=row.get("status") or row.get("new_status"),
            changed_by=row.get("changed_by"),
            notes=row.get("notes") or "",
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass
class OnlineOrder:
    """Storefront order (delivery or pickup)."""

    id: str
    customer_name: str
    status: OnlineOrderStatus
    order_type: OrderType
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime | None = None
    delivery_fee: Decimal = Decimal("0")
    payment_method: str | None = None
    user_id: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    cancellation_notes: str | None = None
    items: list[OrderItem] = field(default_factory=list)
    history: list[StatusHistoryEntry] = field(default_factory=list)

    source = OrderSource.ONLINE

    @property
    def subtotal(self) -> Decimal:
        return self.total_amount - self.delivery_fee

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> OnlineOrder:
        items = row.get("order_items") or row.get("items") or []
        history = row.get("order_status_history") or []
        return cls(
            id=row["id"],
            customer_name=row.get("customer_name") or "",
            status=parse_online_status(row.get("status")),
            order_type=parse_order_type(row.get("order_type") or OrderType.PICKUP.value),
            total_amount=to_decimal(row.get("total_amount"), "total_amount"),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            delivery_fee=to_decimal(row.get("delivery_fee"), "delivery_fee"),
            payment_method=row.get("payment_method"),
            user_id=row.get("user_id"),
            customer_email=row.get("customer_email"),
            customer_phone=row.get("customer_phone"),
            customer_address=row.get("customer_address"),
            notes=row.get("notes"),
            cancellation_reason=row.get("cancellation_reason"),
            cancellation_notes=row.get("cancellation_notes"),
            items=[OrderItem.from_row(item) for item in items],
            history=[StatusHistoryEntry.from_row(entry) for entry in history],
        )


@dataclass
class KioskOrder:
    """
    In-store self-service order, paid at the cashier.

    ``completed_at`` is the fulfilment marker: a kiosk order stays in
    ``payment_received`` once paid and is fulfilled when ``completed_at``
    is set.
    """

    id: str
    order_number: str | None
    customer_name: str
    status: KioskOrderStatus
    order_type: OrderType
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    customer_phone: str | None = None
    payment_method: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    cancellation_notes: str | None = None
    items: list[OrderItem] = field(default_factory=list)
    history: list[StatusHistoryEntry] = field(default_factory=list)

    source = OrderSource.KIOSK

    @property
    def is_fulfilled(self) -> bool:
        return self.status == KioskOrderStatus.PAYMENT_RECEIVED and self.completed_at is not None

    @property
    def awaiting_fulfillment(self) -> bool:
        return self.status == KioskOrderStatus.PAYMENT_RECEIVED and self.completed_at is None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> KioskOrder:
        items = row.get("items") or row.get("kiosk_order_items") or []
        return cls(
            id=row["id"],
            order_number=row.get("order_number"),
            customer_name=row.get("customer_name") or "",
            status=parse_kiosk_status(row.get("status")),
            order_type=parse_order_type(row.get("order_type") or OrderType.PICKUP.value),
            total_amount=to_decimal(row.get("total_amount"), "total_amount"),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            completed_at=parse_timestamp(row.get("completed_at")),
            customer_phone=row.get("customer_phone"),
            payment_method=row.get("payment_method"),
            notes=row.get("notes"),
            cancellation_reason=row.get("cancellation_reason"),
            cancellation_notes=row.get("cancellation_notes"),
            items=[OrderItem.from_row(item, order_key="kiosk_order_id") for item in items],
        )


@dataclass
class BanRecord:
    user_id: str
    ban_reason: str
    banned_at: datetime
    is_active: bool
    banned_by: str | None = None
    banned_until: datetime | None = None
    custom_reason: str | None = None
    notes: str | None = None
    id: str | None = None
    updated_at: datetime | None = None

    @property
    def is_permanent(self) -> bool:
        return self.banned_until is None

    def to_row(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "ban_reason": self.ban_reason,
            "custom_reason": self.custom_reason,
            "banned_at": to_iso(self.banned_at),
            "banned_by": self.banned_by,
            "banned_until": to_iso(self.banned_until),
            "is_active": self.is_active,
            "notes": self.notes,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> BanRecord:
        return cls(
            id=row.get("id"),
            user_id=row["user_id"],
            ban_reason=row.get("ban_reason") or "",
            custom_reason=row.get("custom_reason"),
            banned_at=parse_timestamp(row.get("banned_at") or row.get("created_at")),
            banned_by=row.get("banned_by"),
            banned_until=parse_timestamp(row.get("banned_until")),
            is_active=bool(row.get("is_active")),
            notes=row.get("notes"),
            updated_at=parse_timestamp(row.get("updated_at")),
        )


@dataclass
class Account:
    id: str
    email: str
    full_name: str
    role: str
    contact_number: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Account:
        return cls(
            id=row["id"],
            email=row.get("email") or "",
            full_name=row.get("full_name") or "",
            role=row.get("role") or "customer",
            contact_number=row.get("contact_number"),
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass
class SizeOption:
    id: str
    name: str
    price_multiplier: Decimal
    is_active: bool = True
    sort_order: int = 0
    description: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> SizeOption:
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            description=row.get("description"),
            price_multiplier=to_decimal(row.get("price_multiplier"), "price_multiplier"),
            is_active=bool(row.get("is_active", True)),
            sort_order=int(row.get("sort_order") or 0),
        )


@dataclass
class FoodItemSize:
    """Join row between a menu item and a size option."""

    food_item_id: str
    size_option_id: str
    is_available: bool = True
    custom_price_multiplier: Decimal | None = None
    id: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> FoodItemSize:
        custom = row.get("custom_price_multiplier")
        return cls(
            id=row.get("id"),
            food_item_id=row["food_item_id"],
            size_option_id=row["size_option_id"],
            is_available=bool(row.get("is_available", True)),
            custom_price_multiplier=to_decimal(custom) if custom is not None else None,
        )


@dataclass
class SizeWithPrice:
    size_option_id: str
    name: str
    price_multiplier: Decimal
    calculated_price: Decimal
    is_available: bool
    sort_order: int
    description: str | None = None


@dataclass
class ReportLineItem:
    name: str
    quantity: int
    total_price: Decimal
    size_name: str | None = None


@dataclass
class ReportOrder:
    """
    Common reporting shape for online and kiosk orders.

    ``status`` keeps the raw vocabulary value of the originating order kind;
    ``source`` tells which vocabulary that is.
    """

    id: str
    source: OrderSource
    status: str
    order_type: str
    payment_method: str
    total_amount: Decimal
    created_at: datetime
    customer_name: str = ""
    order_number: str | None = None
    items: list[ReportLineItem] = field(default_factory=list)

    @property
    def is_cancelled(self) -> bool:
        return self.status == OnlineOrderStatus.CANCELLED.value
