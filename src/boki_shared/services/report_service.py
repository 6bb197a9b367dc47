"""
Sales reporting over online and kiosk orders.

The aggregation functions are pure and operate on a freshly fetched
snapshot of ``ReportOrder`` rows; ``ReportService`` does the fetching.
Every sales figure excludes cancelled orders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo

from boki_shared.constants import (
    KioskOrderStatus,
    OnlineOrderStatus,
    OrderSource,
    ReportPeriod,
    ReportSource,
)
from boki_shared.datetime_utils import business_date, business_day_bounds, to_iso, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.models import KioskOrder, OnlineOrder, OrderItem, ReportLineItem, ReportOrder
from boki_shared.services.kiosk_order_service import KioskOrderService
from boki_shared.services.order_service import OrderService
from boki_shared.store.base import RowStore
from boki_shared.validation import ValidationError

logger = get_logger(__name__)

CENT = Decimal("0.01")

# Keys of ``ordersByStatus``; paid kiosk orders are reported as completed.
REPORT_STATUS_KEYS = (
    OnlineOrderStatus.PENDING.value,
    OnlineOrderStatus.PENDING_PAYMENT.value,
    OnlineOrderStatus.PREPARING.value,
    OnlineOrderStatus.READY.value,
    OnlineOrderStatus.OUT_FOR_DELIVERY.value,
    OnlineOrderStatus.COMPLETED.value,
    OnlineOrderStatus.CANCELLED.value,
)


def _line_items(items: list[OrderItem]) -> list[ReportLineItem]:
    return [
        ReportLineItem(
            name=item.name,
            quantity=item.quantity,
            total_price=item.line_total,
            size_name=item.size_name,
        )
        for item in items
    ]


def normalize_online_order(order: OnlineOrder) -> ReportOrder:
    return ReportOrder(
        id=order.id,
        source=OrderSource.ONLINE,
        status=order.status.value,
        order_type=order.order_type.value,
        payment_method=order.payment_method or "",
        total_amount=order.total_amount,
        created_at=order.created_at,
        customer_name=order.customer_name,
        items=_line_items(order.items),
    )


def normalize_kiosk_order(order: KioskOrder) -> ReportOrder:
    """The only place a kiosk status enters the reporting shape."""
    return ReportOrder(
        id=order.id,
        source=OrderSource.KIOSK,
        status=order.status.value,
        order_type=order.order_type.value,
        payment_method=order.payment_method or "",
        total_amount=order.total_amount,
        created_at=order.created_at,
        customer_name=order.customer_name,
        order_number=order.order_number,
        items=_line_items(order.items),
    )


def report_status_key(order: ReportOrder) -> str:
    if order.source == OrderSource.KIOSK and order.status == KioskOrderStatus.PAYMENT_RECEIVED.value:
        return OnlineOrderStatus.COMPLETED.value
    return order.status


def parse_report_source(value) -> ReportSource:
    try:
        return ReportSource(value or ReportSource.ALL.value)
    except ValueError as exc:
        raise ValidationError(f"Invalid report source: {value}") from exc


def parse_report_period(value) -> ReportPeriod:
    try:
        return ReportPeriod(value or ReportPeriod.TODAY.value)
    except ValueError as exc:
        raise ValidationError(f"Invalid report period: {value}") from exc


def filter_orders(
    orders: Iterable[ReportOrder],
    start: datetime | None = None,
    end: datetime | None = None,
    source=ReportSource.ALL,
) -> list[ReportOrder]:
    """Keep orders created in ``[start, end)`` from the requested source."""
    source = parse_report_source(source)
    selected = []
    for order in orders:
        if source != ReportSource.ALL and order.source.value != source.value:
            continue
        if start is not None and order.created_at < start:
            continue
        if end is not None and order.created_at >= end:
            continue
        selected.append(order)
    return selected


def _sales(orders: Iterable[ReportOrder]) -> list[ReportOrder]:
    return [order for order in orders if not order.is_cancelled]


@dataclass
class ReportSummary:
    total_orders: int
    total_sales: Decimal
    avg_order_value: Decimal
    orders_by_status: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalOrders": self.total_orders,
            "totalSales": float(self.total_sales),
            "avgOrderValue": float(self.avg_order_value),
            "ordersByStatus": dict(self.orders_by_status),
        }


def summarize(orders: Iterable[ReportOrder]) -> ReportSummary:
    """
    Totals for a snapshot.

    ``total_orders`` counts every order; sales and the average only count
    non-cancelled orders, and the average is zero when there are none.
    """
    orders = list(orders)
    sales = _sales(orders)
    total_sales = sum((order.total_amount for order in sales), Decimal("0"))
    avg = (total_sales / len(sales)).quantize(CENT, rounding=ROUND_HALF_UP) if sales else Decimal("0")

    by_status = {key: 0 for key in REPORT_STATUS_KEYS}
    for order in orders:
        key = report_status_key(order)
        by_status[key] = by_status.get(key, 0) + 1

    return ReportSummary(
        total_orders=len(orders),
        total_sales=total_sales,
        avg_order_value=avg,
        orders_by_status=by_status,
    )


@dataclass
class TopItem:
    name: str
    quantity: int = 0
    revenue: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity, "revenue": float(self.revenue)}


def top_selling_items(orders: Iterable[ReportOrder], limit: int = 5) -> list[TopItem]:
    """
    Best sellers by quantity across non-cancelled orders.

    Items are grouped by name. Equal quantities keep the order in which the
    names were first seen in the snapshot.
    """
    totals: dict[str, TopItem] = {}
    for order in _sales(orders):
        for item in order.items:
            entry = totals.setdefault(item.name, TopItem(name=item.name))
            entry.quantity += item.quantity
            entry.revenue += item.total_price
    ranked = sorted(totals.values(), key=lambda entry: entry.quantity, reverse=True)
    return ranked[:limit]


@dataclass
class DailyBucket:
    date: date
    orders: int = 0
    sales: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "orders": self.orders, "sales": float(self.sales)}


def daily_series(
    orders: Iterable[ReportOrder],
    window_days: int = 7,
    business_tz: ZoneInfo | str = "Asia/Manila",
) -> list[DailyBucket]:
    """Non-cancelled orders per business-local day, oldest first, last ``window_days`` days."""
    buckets: dict[date, DailyBucket] = {}
    for order in _sales(orders):
        day = business_date(order.created_at, business_tz)
        bucket = buckets.setdefault(day, DailyBucket(date=day))
        bucket.orders += 1
        bucket.sales += order.total_amount
    series = [buckets[day] for day in sorted(buckets)]
    return series[-window_days:] if window_days > 0 else []


def date_range(
    period, now: datetime, business_tz: ZoneInfo | str
) -> tuple[datetime, datetime]:
    """
    UTC window for a report period, using business-local days.

    ``today`` is the current day, ``week`` starts on Sunday, ``month`` on the
    1st. The window always ends at the end of the current day.
    """
    period = parse_report_period(period)
    if isinstance(business_tz, str):
        business_tz = ZoneInfo(business_tz)
    today = business_date(now, business_tz)

    if period == ReportPeriod.WEEK:
        first_day = today - timedelta(days=(today.weekday() + 1) % 7)
    elif period == ReportPeriod.MONTH:
        first_day = today.replace(day=1)
    else:
        first_day = today

    start, _ = business_day_bounds(first_day, business_tz)
    _, end = business_day_bounds(today, business_tz)
    return start, end


@dataclass
class SalesReport:
    period: str
    source: str
    start: datetime
    end: datetime
    orders: list[ReportOrder]
    summary: ReportSummary
    top_selling_items: list[TopItem] = field(default_factory=list)
    daily_sales: list[DailyBucket] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "source": self.source,
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            **self.summary.to_dict(),
            "topSellingItems": [item.to_dict() for item in self.top_selling_items],
            "dailySales": [bucket.to_dict() for bucket in self.daily_sales],
        }


class ReportService:
    """Fetches both order tables for a window and reduces them to a report."""

    def __init__(
        self,
        store: RowStore,
        business_tz: ZoneInfo | str = "Asia/Manila",
        top_items_limit: int = 5,
        daily_window_days: int = 7,
        order_service: OrderService | None = None,
        kiosk_order_service: KioskOrderService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.business_tz = ZoneInfo(business_tz) if isinstance(business_tz, str) else business_tz
        self.top_items_limit = top_items_limit
        self.daily_window_days = daily_window_days
        self.order_service = order_service or OrderService(store, clock=clock)
        self.kiosk_order_service = kiosk_order_service or KioskOrderService(store, clock=clock)
        self._clock = clock

    def fetch_orders(self, start: datetime, end: datetime, source=ReportSource.ALL) -> list[ReportOrder]:
        source = parse_report_source(source)
        orders: list[ReportOrder] = []
        if source in (ReportSource.ALL, ReportSource.ONLINE):
            orders.extend(
                normalize_online_order(order)
                for order in self.order_service.list_orders(since=start, until=end)
            )
        if source in (ReportSource.ALL, ReportSource.KIOSK):
            orders.extend(
                normalize_kiosk_order(order)
                for order in self.kiosk_order_service.list_orders(since=start, until=end)
            )
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return filter_orders(orders, start, end, source)

    def build_report(self, period=ReportPeriod.TODAY, source=ReportSource.ALL) -> SalesReport:
        period = parse_report_period(period)
        source = parse_report_source(source)
        start, end = date_range(period, self._clock(), self.business_tz)
        orders = self.fetch_orders(start, end, source)
        logger.info(
            "Built %s report for %s orders (%s)", period.value, len(orders), source.value
        )
        return SalesReport(
            period=period.value,
            source=source.value,
            start=start,
            end=end,
            orders=orders,
            summary=summarize(orders),
            top_selling_items=top_selling_items(orders, self.top_items_limit),
            daily_sales=daily_series(orders, self.daily_window_days, self.business_tz),
        )
