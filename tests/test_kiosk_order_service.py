"""
Tests for the kiosk order service and the cashier workflow.
"""

import re
from decimal import Decimal

import pytest

from boki_shared.constants import (
    KIOSK_ORDER_ITEMS_TABLE,
    KIOSK_ORDER_STATUS_HISTORY_TABLE,
    KIOSK_ORDERS_TABLE,
    KioskOrderStatus,
)
from boki_shared.services.cancel_order_service import cancel_order
from boki_shared.services.kiosk_order_service import (
    KIOSK_COMPLETION_NOTE,
    KioskOrderService,
    generate_order_number,
)
from boki_shared.services.order_state_machine import InvalidStatusError, TerminalStatusError
from boki_shared.store.base import StoreError

from conftest import NOW, FailingItemsStore, menu_id, seed_menu


def kiosk_payload(**overrides):
    payload = {
        "customer_name": "Walk-in",
        "order_type": "pickup",
        "total_amount": "180.00",
        "items": [
            {"food_item_id": menu_id("Burger"), "quantity": 1, "unit_price": "120.00"},
            {
                "food_item_id": menu_id("Iced Tea"),
                "size_option_id": "size-large",
                "quantity": 2,
                "unit_price": "30.00",
            },
        ],
    }
    payload.update(overrides)
    return payload


class TestCreateOrder:
    def test_order_number_format(self):
        assert re.fullmatch(r"K241019-[0-9A-F]{4}", generate_order_number(NOW))

    def test_created_in_pending_payment(self, kiosk_order_service, store):
        order = kiosk_order_service.create_order(kiosk_payload())

        assert order.status == KioskOrderStatus.PENDING_PAYMENT
        assert order.order_number.startswith("K241019-")
        assert order.total_amount == Decimal("180.00")
        assert len(order.items) == 2
        history = store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE)
        assert len(history) == 1
        assert history[0]["old_status"] is None
        assert history[0]["new_status"] == "pending_payment"

    def test_shows_on_pending_payment_list(self, kiosk_order_service):
        order = kiosk_order_service.create_order(kiosk_payload())
        assert [o.id for o in kiosk_order_service.pending_payment_orders()] == [order.id]

    def test_item_rows_use_the_hosted_columns(self, kiosk_order_service, store):
        kiosk_order_service.create_order(kiosk_payload())

        rows = store.select(KIOSK_ORDER_ITEMS_TABLE)
        assert [row["food_item_id"] for row in rows] == [menu_id("Burger"), menu_id("Iced Tea")]
        assert rows[1]["size_id"] == "size-large"
        assert {"name", "size_option_id", "size_name"}.isdisjoint(set(rows[0]) | set(rows[1]))

    def test_names_and_sizes_come_from_embeds(self, kiosk_order_service, store):
        store.seed("size_options", [{"id": "size-large", "name": "Large"}])
        order = kiosk_order_service.create_order(kiosk_payload())

        assert [(item.name, item.size_name) for item in order.items] == [
            ("Burger", None),
            ("Iced Tea", "Large"),
        ]
        assert order.items[1].size_option_id == "size-large"

    def test_failed_items_insert_deletes_the_order(self, clock):
        store = FailingItemsStore(clock=clock)
        seed_menu(store)
        service = KioskOrderService(store, clock=clock)

        with pytest.raises(StoreError):
            service.create_order(kiosk_payload())

        assert store.select(KIOSK_ORDERS_TABLE) == []
        assert store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE) == []


class TestUpdateStatus:
    def test_online_only_status_rejected_without_writes(
        self, kiosk_order_service, store, seed_kiosk_order
    ):
        row = seed_kiosk_order("pending_payment")
        with pytest.raises(InvalidStatusError):
            kiosk_order_service.update_status(row["id"], "preparing")

        assert store.select_one(KIOSK_ORDERS_TABLE, row["id"])["status"] == "pending_payment"
        assert store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE) == []

    def test_history_uses_kiosk_columns(self, kiosk_order_service, store, seed_kiosk_order):
        row = seed_kiosk_order("pending_payment")
        kiosk_order_service.update_status(row["id"], "payment_received", actor_id="cashier-1")

        history = store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE)
        assert len(history) == 1
        assert history[0]["kiosk_order_id"] == row["id"]
        assert history[0]["old_status"] == "pending_payment"
        assert history[0]["new_status"] == "payment_received"
        assert history[0]["changed_by"] == "cashier-1"

    def test_cancelled_order_is_final(self, kiosk_order_service, seed_kiosk_order):
        row = seed_kiosk_order("cancelled")
        with pytest.raises(TerminalStatusError):
            kiosk_order_service.update_status(row["id"], "payment_received")


class TestConfirmPayment:
    def test_defaults_to_cash(self, kiosk_order_service, seed_kiosk_order):
        row = seed_kiosk_order("pending_payment")
        order = kiosk_order_service.confirm_payment(row["id"], actor_id="cashier-1")
        assert order.status == KioskOrderStatus.PAYMENT_RECEIVED
        assert order.payment_method == "cash"

    def test_explicit_method_is_stored(self, kiosk_order_service, store, seed_kiosk_order):
        row = seed_kiosk_order("pending_payment")
        order = kiosk_order_service.confirm_payment(row["id"], payment_method="card")
        assert order.payment_method == "card"
        assert store.select_one(KIOSK_ORDERS_TABLE, row["id"])["payment_method"] == "card"
        history = kiosk_order_service.get_order_status_history(row["id"])
        assert history[-1].notes == "Payment received via card"


class TestMarkComplete:
    def test_sets_completed_at_once(self, kiosk_order_service, store, seed_kiosk_order, clock):
        row = seed_kiosk_order("payment_received", payment_method="cash")

        first = kiosk_order_service.mark_complete(row["id"], actor_id="cashier-1")
        clock.advance(minutes=3)
        second = kiosk_order_service.mark_complete(row["id"], actor_id="cashier-1")

        assert first.completed_at == NOW
        assert second.completed_at == NOW
        assert second.status == KioskOrderStatus.PAYMENT_RECEIVED
        history = store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE)
        assert len(history) == 1
        assert history[0]["old_status"] == history[0]["new_status"] == "payment_received"
        assert history[0]["notes"] == KIOSK_COMPLETION_NOTE

    def test_unpaid_order_not_completed(self, kiosk_order_service, store, seed_kiosk_order):
        row = seed_kiosk_order("pending_payment")
        order = kiosk_order_service.mark_complete(row["id"])
        assert order.completed_at is None
        assert store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE) == []


class TestCashierCancel:
    def test_cancel_kiosk_order(self, kiosk_order_service, store, seed_kiosk_order):
        row = seed_kiosk_order("pending_payment", total="180")
        order = cancel_order(
            row["id"],
            "kiosk",
            reason="abandoned_transactions",
            actor_id="cashier-1",
            kiosk_order_service=kiosk_order_service,
        )

        assert order.status == KioskOrderStatus.CANCELLED
        assert order.cancellation_reason == "abandoned_transactions"
        assert order.total_amount == Decimal("180")
        history = store.select(KIOSK_ORDER_STATUS_HISTORY_TABLE)
        assert len(history) == 1
        assert history[0]["notes"] == "Order cancelled by cashier. Reason: abandoned_transactions"

    def test_cashier_orders_lists_every_cashier_status(self, kiosk_order_service, seed_kiosk_order):
        ids = {
            seed_kiosk_order(status)["id"]
            for status in ("pending_payment", "payment_received", "cancelled")
        }
        assert {order.id for order in kiosk_order_service.cashier_orders()} == ids
