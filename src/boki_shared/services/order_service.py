"""
Online order service: placement, listing and status transitions.

Transitions are validated by ``OrderStateMachine`` and committed here as an
order update followed by a history insert. The store has no multi-row
transaction, so a failed history insert is compensated by writing the
previous order fields back before the error is re-raised. Placement is
compensated the same way: if the item or history insert fails, the new
order row is deleted.

Concurrent writers are not coordinated: two admins advancing the same order
race and the last write wins.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable
from zoneinfo import ZoneInfo

from boki_shared.constants import (
    ITEM_ORDER_KEYS,
    ITEM_SIZE_COLUMNS,
    ORDER_ITEMS_SELECT,
    ORDER_ITEMS_TABLE,
    ORDER_STATUS_HISTORY_TABLE,
    ORDERS_TABLE,
    OnlineOrderStatus,
    OrderType,
)
from boki_shared.datetime_utils import business_date, business_day_bounds, to_iso, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.models import OnlineOrder, OrderItem, StatusHistoryEntry
from boki_shared.services.ban_service import BanService
from boki_shared.services.order_state_machine import (
    DailyStats,
    OrderStateMachine,
    TerminalStatusError,
    TransitionResult,
    compute_daily_stats,
    next_status,
)
from boki_shared.store.base import RecordNotFoundError, RowStore, StoreError
from boki_shared.validation import (
    ValidationError,
    parse_online_status,
    parse_order_type,
    to_decimal,
    validate_non_negative_amount,
    validate_quantity,
)

logger = get_logger(__name__)


def build_item_rows(items: list[dict[str, Any]], item_table: str, order_id: str) -> list[dict]:
    """
    Validate cart lines and turn them into ``item_table`` rows for ``order_id``.

    Item tables carry no name column; names are read back through the
    ``food_items`` embed, so every line must reference a menu item.
    """
    if not items:
        raise ValidationError("An order needs at least one item")

    rows = []
    for item in items:
        if not item.get("food_item_id"):
            raise ValidationError("Every order item needs a food_item_id")
        quantity = validate_quantity(item.get("quantity"))
        unit_price = validate_non_negative_amount(item.get("unit_price"), "unit_price")
        total_price = item.get("total_price")
        multiplier = item.get("size_multiplier")
        size = {
            "size_option_id": item.get("size_option_id") or item.get("size_id"),
            "size_id": item.get("size_id") or item.get("size_option_id"),
            "size_name": item.get("size_name"),
            "size_multiplier": str(to_decimal(multiplier)) if multiplier is not None else None,
        }
        row = {
            ITEM_ORDER_KEYS[item_table]: order_id,
            "food_item_id": item["food_item_id"],
            **{column: size[column] for column in ITEM_SIZE_COLUMNS[item_table]},
            "quantity": quantity,
            "unit_price": str(unit_price),
            "total_price": str(
                validate_non_negative_amount(total_price, "total_price")
                if total_price is not None
                else unit_price * quantity
            ),
            "special_instructions": item.get("special_instructions"),
        }
        rows.append({key: value for key, value in row.items() if value is not None})
    return rows


def check_total_amount(
    label: str, total_amount: Decimal, item_rows: list[dict], delivery_fee: Decimal = Decimal("0")
) -> Decimal:
    """
    Compare the submitted total against line totals plus delivery fee.

    The submitted total is kept as the order total; a mismatch is logged.
    """
    expected = sum((to_decimal(row["total_price"]) for row in item_rows), Decimal("0"))
    expected += delivery_fee
    if expected != total_amount:
        logger.warning(
            "%s total_amount %s does not match line totals plus delivery fee %s",
            label,
            total_amount,
            expected,
        )
    return expected


def commit_transition(
    store: RowStore,
    order_table: str,
    history_table: str,
    previous: dict[str, Any],
    result: TransitionResult,
    history_row: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Persist a transition: update the order row, then append its history row.

    If the history insert fails the order row is restored from ``previous``
    and the store error is re-raised.
    """
    order_id = result.order.id
    row = store.update(order_table, order_id, result.patch)
    if history_row is None:
        return row

    try:
        store.insert(history_table, history_row)
    except StoreError:
        logger.error(
            "History insert failed for %s %s; restoring previous status", order_table, order_id
        )
        try:
            store.update(order_table, order_id, previous)
        except StoreError as restore_error:
            logger.critical(
                "Could not restore %s %s after failed history insert: %s",
                order_table,
                order_id,
                restore_error,
            )
        raise
    return row


def discard_order(
    store: RowStore,
    order_table: str,
    order_id: str,
    item_table: str,
    item_rows: list[dict[str, Any]],
) -> None:
    """
    Delete a freshly inserted order and whatever item rows made it in.

    Used when a follow-up insert fails after the order row was written.
    """
    logger.error("Follow-up insert failed for %s %s; deleting the order", order_table, order_id)
    try:
        for item_row in item_rows:
            store.delete(item_table, item_row["id"])
        store.delete(order_table, order_id)
    except (StoreError, RecordNotFoundError) as cleanup_error:
        logger.critical(
            "Could not delete %s %s after failed insert: %s", order_table, order_id, cleanup_error
        )


def previous_fields(order, patch: dict[str, Any]) -> dict[str, Any]:
    """Current values of the columns a patch is about to overwrite."""
    return {key: getattr(order, key, None) for key in patch}


class OrderService:
    """Online orders stored in ``orders`` / ``order_items`` / ``order_status_history``."""

    def __init__(
        self,
        store: RowStore,
        ban_service: BanService | None = None,
        state_machine: OrderStateMachine | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ban_service = ban_service or BanService(store, clock=clock)
        self.state_machine = state_machine or OrderStateMachine(clock=clock)
        self._clock = clock

    def _attach_items(self, orders: list[OnlineOrder]) -> list[OnlineOrder]:
        if not orders:
            return orders
        rows = self.store.select(
            ORDER_ITEMS_TABLE,
            [("order_id", "in", [order.id for order in orders])],
            columns=ORDER_ITEMS_SELECT,
        )
        grouped: dict[str, list[OrderItem]] = defaultdict(list)
        for row in rows:
            grouped[row["order_id"]].append(OrderItem.from_row(row))
        for order in orders:
            order.items = grouped.get(order.id, [])
        return orders

    def list_orders(
        self,
        status=None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[OnlineOrder]:
        """Orders newest first, optionally filtered by status and creation window."""
        filters = []
        if status:
            filters.append(("status", "eq", parse_online_status(status).value))
        if since is not None:
            filters.append(("created_at", "gte", since))
        if until is not None:
            filters.append(("created_at", "lt", until))
        rows = self.store.select(ORDERS_TABLE, filters, order_by="created_at", descending=True)
        return self._attach_items([OnlineOrder.from_row(row) for row in rows])

    def list_user_orders(self, user_id: str) -> list[OnlineOrder]:
        rows = self.store.select(
            ORDERS_TABLE,
            [("user_id", "eq", user_id)],
            order_by="created_at",
            descending=True,
        )
        return self._attach_items([OnlineOrder.from_row(row) for row in rows])

    def get_order_status_history(self, order_id: str) -> list[StatusHistoryEntry]:
        rows = self.store.select(
            ORDER_STATUS_HISTORY_TABLE, [("order_id", "eq", order_id)], order_by="created_at"
        )
        return [StatusHistoryEntry.from_row(row) for row in rows]

    def get_order(self, order_id: str) -> OnlineOrder:
        """Order with items and history; RecordNotFoundError when the id is unknown."""
        order = OnlineOrder.from_row(self.store.select_one(ORDERS_TABLE, order_id))
        self._attach_items([order])
        order.history = self.get_order_status_history(order_id)
        return order

    def place_order(self, data: dict[str, Any]) -> OnlineOrder:
        """
        Create a storefront order in ``pending`` with its items and first history row.

        Banned customers are rejected before anything is written.
        """
        self.ban_service.ensure_not_banned(data.get("user_id"))

        order_type = parse_order_type(data.get("order_type") or OrderType.PICKUP.value)
        delivery_fee = validate_non_negative_amount(data.get("delivery_fee"), "delivery_fee")
        if order_type == OrderType.PICKUP:
            delivery_fee = Decimal("0")
        total_amount = validate_non_negative_amount(data.get("total_amount"), "total_amount")
        if order_type == OrderType.DELIVERY and not data.get("customer_address"):
            raise ValidationError("A delivery order needs a customer address")

        # Validate lines before the order row exists.
        build_item_rows(data.get("items") or [], ORDER_ITEMS_TABLE, "")

        now = self._clock()
        row = self.store.insert(
            ORDERS_TABLE,
            {
                "user_id": data.get("user_id"),
                "customer_name": data["customer_name"],
                "customer_email": data.get("customer_email"),
                "customer_phone": data.get("customer_phone"),
                "customer_address": data.get("customer_address"),
                "order_type": order_type.value,
                "payment_method": data.get("payment_method"),
                "delivery_fee": str(delivery_fee),
                "total_amount": str(total_amount),
                "notes": data.get("notes"),
                "status": OnlineOrderStatus.PENDING.value,
                "created_at": to_iso(now),
                "updated_at": to_iso(now),
            },
        )
        item_rows = build_item_rows(data["items"], ORDER_ITEMS_TABLE, row["id"])
        check_total_amount(f"Order {row['id']}", total_amount, item_rows, delivery_fee)
        inserted: list[dict] = []
        try:
            inserted = self.store.insert_many(ORDER_ITEMS_TABLE, item_rows)
            self.store.insert(
                ORDER_STATUS_HISTORY_TABLE,
                StatusHistoryEntry(
                    order_id=row["id"],
                    previous_status=None,
                    new_status=OnlineOrderStatus.PENDING.value,
                    changed_by=data.get("user_id"),
                    notes="Order placed",
                    created_at=now,
                ).to_online_row(),
            )
        except StoreError:
            discard_order(self.store, ORDERS_TABLE, row["id"], ORDER_ITEMS_TABLE, inserted)
            raise
        logger.info("Order %s placed (%s, %s)", row["id"], order_type.value, total_amount)
        return self.get_order(row["id"])

    def _transition(
        self,
        order: OnlineOrder,
        status,
        note: str | None = None,
        actor_id: str | None = None,
        cancellation_reason: str | None = None,
        cancellation_notes: str | None = None,
    ) -> OnlineOrder:
        result = self.state_machine.apply_transition(
            order,
            status,
            note=note,
            cancellation_reason=cancellation_reason,
            cancellation_notes=cancellation_notes,
            actor_id=actor_id,
        )
        if not result.changed:
            return order

        row = commit_transition(
            self.store,
            ORDERS_TABLE,
            ORDER_STATUS_HISTORY_TABLE,
            previous_fields(order, result.patch),
            result,
            result.history.to_online_row(),
        )
        logger.info(
            "Order %s status %s -> %s by %s",
            order.id,
            order.status.value,
            result.order.status.value,
            actor_id or "system",
        )
        updated = OnlineOrder.from_row(row)
        updated.items = order.items
        updated.history = result.order.history
        return updated

    def update_order_status(
        self,
        order_id: str,
        status,
        note: str | None = None,
        actor_id: str | None = None,
        cancellation_reason: str | None = None,
        cancellation_notes: str | None = None,
    ) -> OnlineOrder:
        """Move an order to ``status`` and return the stored row."""
        order = self.get_order(order_id)
        return self._transition(
            order,
            status,
            note=note,
            actor_id=actor_id,
            cancellation_reason=cancellation_reason,
            cancellation_notes=cancellation_notes,
        )

    def advance_order(self, order_id: str, actor_id: str | None = None) -> OnlineOrder:
        """Apply the single legal next step (the admin "confirm" action)."""
        order = self.get_order(order_id)
        target = next_status(order.status, order.order_type)
        if target is None:
            raise TerminalStatusError(
                f"Order {order.id} is already {order.status.value}", order.status
            )
        return self._transition(order, target, actor_id=actor_id)

    def get_today_stats(
        self, business_tz: ZoneInfo | str, now: datetime | None = None
    ) -> DailyStats:
        now = now or self._clock()
        if isinstance(business_tz, str):
            business_tz = ZoneInfo(business_tz)
        start, end = business_day_bounds(business_date(now, business_tz), business_tz)
        orders = self.list_orders(since=start, until=end)
        return compute_daily_stats(orders, business_tz, now=now)
