"""
Service for exporting reports to CSV and JSON.

The CSV is a transaction ledger: its OVERALL TOTAL row sums every exported
order, cancelled ones included. Sales figures in the JSON export come from
the report summary and exclude cancelled orders.
"""

from __future__ import annotations

import csv
import json
from datetime import datetime
from decimal import Decimal
from io import StringIO
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from boki_shared.constants import ExportMode, OrderType, PaymentMethod
from boki_shared.datetime_utils import business_date, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.models import ReportLineItem, ReportOrder
from boki_shared.services.report_service import SalesReport
from boki_shared.validation import ValidationError

logger = get_logger(__name__)

CSV_HEADER = ["Date", "ORDER #", "Order Items", "Order Type", "Order Payment", "Total"]
OVERALL_TOTAL_LABEL = "OVERALL TOTAL:"


def format_currency(amount: Decimal, currency: str = "PHP") -> str:
    return f"{currency} {amount:,.2f}"


def format_payment_method(payment_method: str, order_type: str) -> str:
    if payment_method == PaymentMethod.CASH.value:
        return "Cash on Delivery" if order_type == OrderType.DELIVERY.value else "Pay on Pickup"
    return payment_method[:1].upper() + payment_method[1:]


def format_order_items(items: list[ReportLineItem]) -> str:
    parts = []
    for item in items:
        size = f" ({item.size_name})" if item.size_name else ""
        parts.append(f"{item.quantity}x {item.name}{size}")
    return "; ".join(parts)


def ledger_order_number(order: ReportOrder) -> str:
    return order.order_number or order.id[-8:].upper()


def to_csv(
    orders: Iterable[ReportOrder],
    business_tz: ZoneInfo | str = "Asia/Manila",
    currency: str = "PHP",
) -> str:
    """
    Render orders as the ledger CSV.

    Fields are quoted only when they contain a comma, a quote or a line
    break. An empty export has the header and no totals row.
    """
    orders = list(orders)
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)

    overall_total = Decimal("0")
    for order in orders:
        overall_total += order.total_amount
        writer.writerow(
            [
                business_date(order.created_at, business_tz).isoformat(),
                ledger_order_number(order),
                format_order_items(order.items),
                order.order_type[:1].upper() + order.order_type[1:],
                format_payment_method(order.payment_method, order.order_type),
                format_currency(order.total_amount, currency),
            ]
        )

    if orders:
        buffer.write("\n")
        writer.writerow(["", "", "", "", OVERALL_TOTAL_LABEL, format_currency(overall_total, currency)])

    return buffer.getvalue()


def parse_export_mode(mode) -> ExportMode:
    try:
        return ExportMode(mode or ExportMode.FULL.value)
    except ValueError as exc:
        raise ValidationError(f"Invalid export mode: {mode}") from exc


def build_export_payload(
    report: SalesReport,
    mode=ExportMode.FULL,
    restaurant: str = "BOKI Restaurant",
    timezone_name: str = "Asia/Manila",
    generated_on: datetime | None = None,
) -> dict[str, Any]:
    mode = parse_export_mode(mode)
    payload: dict[str, Any] = {
        "metadata": {
            "restaurant": restaurant,
            "generatedOn": (generated_on or utcnow()).isoformat(),
            "reportPeriod": report.period,
            "exportType": mode.value,
            "timezone": timezone_name,
        }
    }
    if mode in (ExportMode.FULL, ExportMode.SUMMARY):
        payload["summary"] = report.summary.to_dict()
    if mode in (ExportMode.FULL, ExportMode.ITEMS):
        payload["topSellingItems"] = [item.to_dict() for item in report.top_selling_items]
    if mode in (ExportMode.FULL, ExportMode.SALES):
        payload["dailySales"] = [bucket.to_dict() for bucket in report.daily_sales]
    return payload


def to_json(report: SalesReport, mode=ExportMode.FULL, **metadata) -> str:
    """Serialize the report sections selected by ``mode`` (full, summary, sales or items)."""
    return json.dumps(build_export_payload(report, mode, **metadata), indent=2)


def export_filename(kind: str, period: str, now: datetime | None = None, mode: str | None = None) -> str:
    """``BOKI_Orders_today_2024-10-19_08-30-00.csv`` or ``BOKI_full_Report_....json``."""
    timestamp = (now or utcnow()).strftime("%Y-%m-%d_%H-%M-%S")
    if kind == "csv":
        return f"BOKI_Orders_{period}_{timestamp}.csv"
    if kind == "json":
        return f"BOKI_{parse_export_mode(mode).value}_Report_{period}_{timestamp}.json"
    raise ValidationError(f"Unsupported export format: {kind}")
