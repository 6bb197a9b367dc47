"""
Tests for the customer list.
"""

from datetime import timedelta
from decimal import Decimal

from boki_shared.constants import USERS_TABLE

from conftest import NOW


def seed_users(store):
    store.seed(
        USERS_TABLE,
        [
            {
                "id": "user-1",
                "email": "maria@example.com",
                "full_name": "Maria Santos",
                "role": "customer",
                "contact_number": "09171234567",
                "created_at": (NOW - timedelta(days=30)).isoformat(),
            },
            {
                "id": "user-2",
                "email": "pedro@example.com",
                "full_name": "Pedro Reyes",
                "role": "customer",
                "created_at": (NOW - timedelta(days=10)).isoformat(),
            },
            {
                "id": "admin-1",
                "email": "admin@boki.ph",
                "full_name": "Boki Admin",
                "role": "admin",
                "created_at": (NOW - timedelta(days=60)).isoformat(),
            },
        ],
    )


class TestListCustomers:
    def test_excludes_admins_newest_first(self, customer_service, store):
        seed_users(store)
        customers = customer_service.list_customers()
        assert [customer.account.id for customer in customers] == ["user-2", "user-1"]

    def test_totals_exclude_cancelled_spend(self, customer_service, store, seed_online_order):
        seed_users(store)
        seed_online_order("completed", total="100", user_id="user-1")
        seed_online_order("cancelled", total="999", user_id="user-1")
        latest = seed_online_order(
            "preparing", total="50", user_id="user-1", created_at=NOW - timedelta(minutes=1)
        )

        maria = next(c for c in customer_service.list_customers() if c.account.id == "user-1")
        assert maria.total_orders == 3
        assert maria.total_spent == Decimal("150")
        assert maria.last_order_date.isoformat() == latest["created_at"]

    def test_ban_state(self, customer_service, ban_service, store, clock):
        seed_users(store)
        ban_service.ban_customer("user-1", "admin-1", "fake_orders")
        ban_service.ban_customer("user-2", "admin-1", "payment_abuse", duration_days=1)
        clock.advance(days=2)

        by_id = {c.account.id: c for c in customer_service.list_customers()}
        assert by_id["user-1"].is_banned
        assert by_id["user-1"].to_dict()["ban_reason"] == "fake_orders"
        assert not by_id["user-2"].is_banned

    def test_search_and_contact_default(self, customer_service, store):
        seed_users(store)
        customers = customer_service.list_customers(search="PEDRO")
        assert [c.account.id for c in customers] == ["user-2"]
        assert customers[0].to_dict()["contact_number"] == "N/A"
