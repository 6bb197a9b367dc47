"""
Pytest configuration and fixtures for the BOKI services and API.
"""

import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from boki_admin.app import create_app
from boki_shared.config import AppConfig
from boki_shared.constants import (
    FOOD_ITEMS_TABLE,
    KIOSK_ORDER_ITEMS_TABLE,
    KIOSK_ORDERS_TABLE,
    ORDER_ITEMS_TABLE,
    ORDERS_TABLE,
    OrderSource,
)
from boki_shared.datetime_utils import to_iso
from boki_shared.models import ReportLineItem, ReportOrder
from boki_shared.services.ban_service import BanService
from boki_shared.services.customer_service import CustomerService
from boki_shared.services.kiosk_order_service import KioskOrderService
from boki_shared.services.order_service import OrderService
from boki_shared.services.order_state_machine import OrderStateMachine
from boki_shared.services.report_service import ReportService
from boki_shared.services.size_service import SizeService
from boki_shared.store import InMemoryRowStore, RealtimeManager, StoreError

# Saturday 2024-10-19, 12:00 in Manila
NOW = datetime(2024, 10, 19, 4, 0, tzinfo=timezone.utc)
BUSINESS_TZ = "Asia/Manila"

_id_counter = itertools.count(1)


def next_id(prefix: str = "row") -> str:
    return f"{prefix}-{next(_id_counter):04d}"


MENU_ITEMS = ("Burger", "Fries", "Iced Tea", "Soda")


def menu_id(name: str) -> str:
    return f"food-{name.lower().replace(' ', '-')}"


def seed_menu(store, names=MENU_ITEMS):
    """Seed ``food_items`` rows; item rows only reference them by id."""
    return store.seed(
        FOOD_ITEMS_TABLE, [{"id": menu_id(name), "name": name, "price": "100"} for name in names]
    )


class FailingItemsStore(InMemoryRowStore):
    """Store whose item batch inserts always fail."""

    def insert_many(self, table, rows):
        if table in (ORDER_ITEMS_TABLE, KIOSK_ORDER_ITEMS_TABLE):
            raise StoreError("items insert failed", table=table)
        return super().insert_many(table, rows)


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_config(**overrides) -> AppConfig:
    values = {
        "app_name": "boki-admin-test",
        "supabase_url": "",
        "supabase_anon_key": "",
        "supabase_service_role_key": "",
        "store_backend": "memory",
        "business_timezone": BUSINESS_TZ,
        "restaurant_name": "BOKI Restaurant",
        "currency_code": "PHP",
        "report_top_items_limit": 5,
        "report_daily_window_days": 7,
        "log_level": "WARNING",
        "debug_mode": False,
    }
    values.update(overrides)
    return AppConfig(**values)


def report_order(
    total,
    status="completed",
    source=OrderSource.ONLINE,
    created_at=NOW,
    items=None,
    **fields,
) -> ReportOrder:
    """Build a ReportOrder fixture; ``items`` is a list of (name, quantity) pairs."""
    return ReportOrder(
        id=fields.pop("id", next_id("order")),
        source=source,
        status=status,
        order_type=fields.pop("order_type", "pickup"),
        payment_method=fields.pop("payment_method", "cash"),
        total_amount=Decimal(str(total)),
        created_at=created_at,
        items=[
            ReportLineItem(name=name, quantity=quantity, total_price=Decimal("10") * quantity)
            for name, quantity in (items or [])
        ],
        **fields,
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def feed():
    return RealtimeManager()


@pytest.fixture
def store(feed, clock):
    """Fresh in-memory store per test, with the menu seeded."""
    memory_store = InMemoryRowStore(feed=feed, clock=clock)
    seed_menu(memory_store)
    return memory_store


@pytest.fixture
def state_machine(clock):
    return OrderStateMachine(clock=clock)


@pytest.fixture
def ban_service(store, clock):
    return BanService(store, clock=clock)


@pytest.fixture
def order_service(store, ban_service, state_machine, clock):
    return OrderService(store, ban_service=ban_service, state_machine=state_machine, clock=clock)


@pytest.fixture
def kiosk_order_service(store, state_machine, clock):
    return KioskOrderService(store, state_machine=state_machine, clock=clock)


@pytest.fixture
def report_service(store, order_service, kiosk_order_service, clock):
    return ReportService(
        store,
        business_tz=BUSINESS_TZ,
        order_service=order_service,
        kiosk_order_service=kiosk_order_service,
        clock=clock,
    )


@pytest.fixture
def customer_service(store, clock):
    return CustomerService(store, clock=clock)


@pytest.fixture
def size_service(store):
    return SizeService(store)


@pytest.fixture
def seed_online_order(store):
    """Factory that seeds an online order row plus its item rows."""

    def _seed(status="pending", total="100", order_type="pickup", items=None, **fields):
        created_at = fields.pop("created_at", NOW - timedelta(minutes=30))
        row = store.seed(
            ORDERS_TABLE,
            [
                {
                    "id": fields.pop("id", next_id("order")),
                    "customer_name": fields.pop("customer_name", "Juan Dela Cruz"),
                    "status": status,
                    "order_type": order_type,
                    "total_amount": str(total),
                    "delivery_fee": "0",
                    "payment_method": fields.pop("payment_method", "cash"),
                    "created_at": to_iso(created_at),
                    "updated_at": to_iso(created_at),
                    **fields,
                }
            ],
        )[0]
        store.seed(
            ORDER_ITEMS_TABLE,
            [
                {
                    "order_id": row["id"],
                    "food_item_id": menu_id(name),
                    "quantity": quantity,
                    "unit_price": "10",
                    "total_price": str(10 * quantity),
                }
                for name, quantity in (items or [("Burger", 1)])
            ],
        )
        return row

    return _seed


@pytest.fixture
def seed_kiosk_order(store):
    """Factory that seeds a kiosk order row plus its item rows."""

    def _seed(status="pending_payment", total="100", items=None, **fields):
        created_at = fields.pop("created_at", NOW - timedelta(minutes=10))
        row = store.seed(
            KIOSK_ORDERS_TABLE,
            [
                {
                    "id": fields.pop("id", next_id("kiosk")),
                    "order_number": fields.pop("order_number", "K241019-0A1B"),
                    "customer_name": fields.pop("customer_name", "Walk-in"),
                    "status": status,
                    "order_type": fields.pop("order_type", "pickup"),
                    "total_amount": str(total),
                    "created_at": to_iso(created_at),
                    "updated_at": to_iso(created_at),
                    **fields,
                }
            ],
        )[0]
        store.seed(
            KIOSK_ORDER_ITEMS_TABLE,
            [
                {
                    "kiosk_order_id": row["id"],
                    "food_item_id": menu_id(name),
                    "quantity": quantity,
                    "unit_price": "10",
                    "total_price": str(10 * quantity),
                }
                for name, quantity in (items or [("Burger", 1)])
            ],
        )
        return row

    return _seed


@pytest.fixture
def app():
    """Flask app wired to an in-memory store."""
    memory_store = InMemoryRowStore()
    seed_menu(memory_store)
    flask_app = create_app(config=make_config(), store=memory_store)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def api_store(app):
    return app.extensions["boki"]["store"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def actor_headers():
    return {"X-Actor-Id": "admin-0001"}
