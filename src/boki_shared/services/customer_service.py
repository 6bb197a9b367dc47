"""
Customer listing for the back-office.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from boki_shared.constants import (
    CUSTOMER_BANS_TABLE,
    ORDERS_TABLE,
    USERS_TABLE,
    OnlineOrderStatus,
    Roles,
)
from boki_shared.datetime_utils import parse_timestamp, to_iso, utcnow
from boki_shared.models import Account, BanRecord
from boki_shared.services.ban_service import is_banned
from boki_shared.store.base import RowStore
from boki_shared.validation import to_decimal


@dataclass
class CustomerSummary:
    account: Account
    total_orders: int
    total_spent: Decimal
    last_order_date: datetime | None
    active_ban: BanRecord | None

    @property
    def is_banned(self) -> bool:
        return self.active_ban is not None

    def to_dict(self) -> dict[str, Any]:
        ban = self.active_ban
        return {
            "id": self.account.id,
            "full_name": self.account.full_name,
            "email": self.account.email,
            "contact_number": self.account.contact_number or "N/A",
            "created_at": to_iso(self.account.created_at),
            "total_orders": self.total_orders,
            "total_spent": float(self.total_spent),
            "last_order_date": to_iso(self.last_order_date),
            "is_banned": self.is_banned,
            "ban_reason": ban.ban_reason if ban else None,
            "custom_reason": ban.custom_reason if ban else None,
            "banned_until": to_iso(ban.banned_until) if ban else None,
        }


class CustomerService:
    def __init__(self, store: RowStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock

    def list_customers(self, search: str | None = None) -> list[CustomerSummary]:
        """
        Customers with lifetime stats, newest accounts first.

        ``total_spent`` excludes cancelled orders; ``total_orders`` counts
        every order. A ban counts only while it is active and unexpired.
        """
        now = self._clock()
        users = self.store.select(
            USERS_TABLE,
            [("role", "neq", Roles.ADMIN.value)],
            order_by="created_at",
            descending=True,
        )
        orders = self.store.select(ORDERS_TABLE)
        bans = self.store.select(CUSTOMER_BANS_TABLE, [("is_active", "eq", True)])

        orders_by_user: dict[str, list[dict]] = defaultdict(list)
        for order in orders:
            if order.get("user_id"):
                orders_by_user[order["user_id"]].append(order)

        active_bans: dict[str, BanRecord] = {}
        for row in bans:
            ban = BanRecord.from_row(row)
            if is_banned(ban, now):
                active_bans[ban.user_id] = ban

        summaries = []
        for row in users:
            account = Account.from_row(row)
            if search and not _matches_search(account, search):
                continue
            user_orders = orders_by_user.get(account.id, [])
            total_spent = sum(
                (
                    to_decimal(order.get("total_amount"))
                    for order in user_orders
                    if order.get("status") != OnlineOrderStatus.CANCELLED.value
                ),
                Decimal("0"),
            )
            created = [parse_timestamp(order.get("created_at")) for order in user_orders]
            summaries.append(
                CustomerSummary(
                    account=account,
                    total_orders=len(user_orders),
                    total_spent=total_spent,
                    last_order_date=max((ts for ts in created if ts), default=None),
                    active_ban=active_bans.get(account.id),
                )
            )
        return summaries


def _matches_search(account: Account, search: str) -> bool:
    needle = search.strip().lower()
    haystack = (account.full_name, account.email, account.contact_number or "")
    return any(needle in value.lower() for value in haystack)
