"""
Kiosk order service: self-service orders paid at the cashier.

Kiosk orders use their own status vocabulary and history table
(``old_status`` / ``new_status`` columns). Fulfilment is recorded through
``completed_at`` while the status stays ``payment_received``.
"""

from __future__ import annotations

import secrets
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable

from boki_shared.constants import (
    CASHIER_KIOSK_STATUSES,
    KIOSK_ORDER_ITEMS_SELECT,
    KIOSK_ORDER_ITEMS_TABLE,
    KIOSK_ORDER_STATUS_HISTORY_TABLE,
    KIOSK_ORDERS_TABLE,
    KioskOrderStatus,
    OrderType,
)
from boki_shared.datetime_utils import to_iso, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.models import KioskOrder, OrderItem, StatusHistoryEntry
from boki_shared.services.order_service import (
    build_item_rows,
    check_total_amount,
    commit_transition,
    discard_order,
    previous_fields,
)
from boki_shared.services.order_state_machine import OrderStateMachine
from boki_shared.store.base import RowStore, StoreError
from boki_shared.validation import (
    parse_kiosk_status,
    parse_order_type,
    validate_non_negative_amount,
)

logger = get_logger(__name__)

KIOSK_COMPLETION_NOTE = "Order completed by cashier"


def generate_order_number(now: datetime) -> str:
    """Short receipt number, e.g. ``K241019-3FA2``."""
    return f"K{now:%y%m%d}-{secrets.token_hex(2).upper()}"


class KioskOrderService:
    def __init__(
        self,
        store: RowStore,
        state_machine: OrderStateMachine | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.state_machine = state_machine or OrderStateMachine(clock=clock)
        self._clock = clock

    def _attach_items(self, orders: list[KioskOrder]) -> list[KioskOrder]:
        if not orders:
            return orders
        rows = self.store.select(
            KIOSK_ORDER_ITEMS_TABLE,
            [("kiosk_order_id", "in", [order.id for order in orders])],
            columns=KIOSK_ORDER_ITEMS_SELECT,
        )
        grouped: dict[str, list[OrderItem]] = defaultdict(list)
        for row in rows:
            grouped[row["kiosk_order_id"]].append(OrderItem.from_row(row, order_key="kiosk_order_id"))
        for order in orders:
            order.items = grouped.get(order.id, [])
        return orders

    def create_order(self, data: dict[str, Any]) -> KioskOrder:
        """Create a kiosk order in ``pending_payment`` and return it with its items."""
        order_type = parse_order_type(data.get("order_type") or OrderType.PICKUP.value)
        total_amount = validate_non_negative_amount(data.get("total_amount"), "total_amount")
        build_item_rows(data.get("items") or [], KIOSK_ORDER_ITEMS_TABLE, "")

        now = self._clock()
        row = self.store.insert(
            KIOSK_ORDERS_TABLE,
            {
                "order_number": data.get("order_number") or generate_order_number(now),
                "customer_name": data["customer_name"],
                "customer_phone": data.get("customer_phone"),
                "order_type": order_type.value,
                "total_amount": str(total_amount),
                "payment_method": data.get("payment_method"),
                "notes": data.get("notes"),
                "status": KioskOrderStatus.PENDING_PAYMENT.value,
                "created_at": to_iso(now),
                "updated_at": to_iso(now),
            },
        )
        item_rows = build_item_rows(data["items"], KIOSK_ORDER_ITEMS_TABLE, row["id"])
        check_total_amount(f"Kiosk order {row['order_number']}", total_amount, item_rows)
        inserted: list[dict] = []
        try:
            inserted = self.store.insert_many(KIOSK_ORDER_ITEMS_TABLE, item_rows)
            self.store.insert(
                KIOSK_ORDER_STATUS_HISTORY_TABLE,
                StatusHistoryEntry(
                    order_id=row["id"],
                    previous_status=None,
                    new_status=KioskOrderStatus.PENDING_PAYMENT.value,
                    changed_by=None,
                    notes="Kiosk order placed",
                    created_at=now,
                ).to_kiosk_row(),
            )
        except StoreError:
            discard_order(
                self.store, KIOSK_ORDERS_TABLE, row["id"], KIOSK_ORDER_ITEMS_TABLE, inserted
            )
            raise
        logger.info("Kiosk order %s created (%s)", row["order_number"], total_amount)
        return self.get_order(row["id"])

    def list_orders(
        self,
        status=None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[KioskOrder]:
        filters = []
        if status:
            filters.append(("status", "eq", parse_kiosk_status(status).value))
        if since is not None:
            filters.append(("created_at", "gte", since))
        if until is not None:
            filters.append(("created_at", "lt", until))
        rows = self.store.select(
            KIOSK_ORDERS_TABLE, filters, order_by="created_at", descending=True
        )
        return self._attach_items([KioskOrder.from_row(row) for row in rows])

    def get_order_status_history(self, order_id: str) -> list[StatusHistoryEntry]:
        rows = self.store.select(
            KIOSK_ORDER_STATUS_HISTORY_TABLE,
            [("kiosk_order_id", "eq", order_id)],
            order_by="created_at",
        )
        return [StatusHistoryEntry.from_row(row) for row in rows]

    def get_order(self, order_id: str) -> KioskOrder:
        order = KioskOrder.from_row(self.store.select_one(KIOSK_ORDERS_TABLE, order_id))
        self._attach_items([order])
        order.history = self.get_order_status_history(order_id)
        return order

    def cashier_orders(self) -> list[KioskOrder]:
        """Orders the cashier screen shows: unpaid, paid and cancelled."""
        rows = self.store.select(
            KIOSK_ORDERS_TABLE,
            [("status", "in", [status.value for status in CASHIER_KIOSK_STATUSES])],
            order_by="created_at",
            descending=True,
        )
        return self._attach_items([KioskOrder.from_row(row) for row in rows])

    def pending_payment_orders(self) -> list[KioskOrder]:
        return self.list_orders(status=KioskOrderStatus.PENDING_PAYMENT)

    def update_status(
        self,
        order_id: str,
        status,
        note: str | None = None,
        actor_id: str | None = None,
        cancellation_reason: str | None = None,
        cancellation_notes: str | None = None,
    ) -> KioskOrder:
        """
        Move a kiosk order to ``status``.

        Online-only statuses such as ``preparing`` raise InvalidStatusError
        before the order is even loaded.
        """
        target = parse_kiosk_status(status)
        order = self.get_order(order_id)
        result = self.state_machine.apply_transition(
            order,
            target,
            note=note,
            cancellation_reason=cancellation_reason,
            cancellation_notes=cancellation_notes,
            actor_id=actor_id,
        )
        if not result.changed:
            return order

        row = commit_transition(
            self.store,
            KIOSK_ORDERS_TABLE,
            KIOSK_ORDER_STATUS_HISTORY_TABLE,
            previous_fields(order, result.patch),
            result,
            result.history.to_kiosk_row(),
        )
        logger.info(
            "Kiosk order %s status %s -> %s by %s",
            order.order_number or order.id,
            order.status.value,
            target.value,
            actor_id or "cashier",
        )
        updated = KioskOrder.from_row(row)
        updated.items = order.items
        updated.history = result.order.history
        return updated

    def confirm_payment(
        self, order_id: str, actor_id: str | None = None, payment_method: str | None = None
    ) -> KioskOrder:
        """Cashier received payment; cash unless another method is given."""
        note = f"Payment received via {payment_method}" if payment_method else None
        order = self.update_status(
            order_id, KioskOrderStatus.PAYMENT_RECEIVED, note=note, actor_id=actor_id
        )
        if payment_method and order.payment_method != payment_method:
            row = self.store.update(
                KIOSK_ORDERS_TABLE, order_id, {"payment_method": payment_method}
            )
            order.payment_method = row.get("payment_method")
        return order

    def mark_complete(self, order_id: str, actor_id: str | None = None) -> KioskOrder:
        """
        Stamp ``completed_at`` on a paid order.

        Repeated calls keep the first timestamp; unpaid orders are left as-is.
        """
        order = self.get_order(order_id)
        result = self.state_machine.mark_kiosk_complete(order)
        if not result.changed:
            return order

        history = StatusHistoryEntry(
            order_id=order.id,
            previous_status=order.status.value,
            new_status=order.status.value,
            changed_by=actor_id,
            notes=KIOSK_COMPLETION_NOTE,
            created_at=result.order.completed_at,
        )
        row = commit_transition(
            self.store,
            KIOSK_ORDERS_TABLE,
            KIOSK_ORDER_STATUS_HISTORY_TABLE,
            previous_fields(order, result.patch),
            result,
            history.to_kiosk_row(),
        )
        logger.info("Kiosk order %s completed", order.order_number or order.id)
        updated = KioskOrder.from_row(row)
        updated.items = order.items
        updated.history = [*order.history, history]
        return updated
