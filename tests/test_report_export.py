"""
Tests for the CSV ledger and JSON report exports.
"""

import csv
import io
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from boki_shared.constants import OrderSource
from boki_shared.services.report_export_service import (
    CSV_HEADER,
    export_filename,
    format_currency,
    format_payment_method,
    to_csv,
    to_json,
)
from boki_shared.services.report_service import SalesReport, summarize, top_selling_items
from boki_shared.validation import ValidationError

from conftest import BUSINESS_TZ, NOW, report_order


def parse_csv(text):
    return list(csv.reader(io.StringIO(text)))


class TestFormatting:
    def test_currency(self):
        assert format_currency(Decimal("1234.5")) == "PHP 1,234.50"
        assert format_currency(Decimal("0"), "USD") == "USD 0.00"

    def test_cash_label_depends_on_order_type(self):
        assert format_payment_method("cash", "delivery") == "Cash on Delivery"
        assert format_payment_method("cash", "pickup") == "Pay on Pickup"
        assert format_payment_method("card", "pickup") == "Card"


class TestToCsv:
    def test_header_only_for_empty_export(self):
        assert to_csv([], BUSINESS_TZ) == ",".join(CSV_HEADER) + "\n"

    def test_rows_and_totals_include_cancelled(self):
        orders = [
            report_order(
                "100", id="abcdef1234567890", items=[("Burger", 2)], order_type="delivery"
            ),
            report_order(
                "999",
                "cancelled",
                source=OrderSource.KIOSK,
                order_number="K241019-0A1B",
                items=[("Fries", 1)],
            ),
        ]
        rows = parse_csv(to_csv(orders, BUSINESS_TZ))

        assert rows[0] == CSV_HEADER
        assert rows[1] == [
            "2024-10-19",
            "34567890",
            "2x Burger",
            "Delivery",
            "Cash on Delivery",
            "PHP 100.00",
        ]
        assert rows[2][1] == "K241019-0A1B"
        assert rows[2][4] == "Pay on Pickup"
        assert rows[3] == []
        assert rows[4] == ["", "", "", "", "OVERALL TOTAL:", "PHP 1,099.00"]

    def test_comma_in_field_is_quoted(self):
        order = report_order("100", items=[("Burger", 1), ("Fries", 1)])
        order.items[0].name = "Doe, John"
        text = to_csv([order], BUSINESS_TZ)

        assert '"1x Doe, John; 1x Fries"' in text
        assert parse_csv(text)[1][2] == "1x Doe, John; 1x Fries"

    def test_size_in_item_label(self):
        order = report_order("100", items=[("Iced Tea", 2)])
        order.items[0].size_name = "Large"
        assert parse_csv(to_csv([order], BUSINESS_TZ))[1][2] == "2x Iced Tea (Large)"

    @given(
        name=st.text(
            alphabet=st.characters(blacklist_categories=("Cs", "Cc")), min_size=1, max_size=30
        )
    )
    @settings(max_examples=50)
    def test_item_names_survive_quoting(self, name):
        order = report_order("10", items=[("x", 1)])
        order.items[0].name = name
        rows = parse_csv(to_csv([order], BUSINESS_TZ))
        assert rows[1][2] == f"1x {name}"


class TestToJson:
    @pytest.fixture
    def report(self):
        orders = [report_order("100", items=[("Burger", 2)]), report_order("50", "cancelled")]
        return SalesReport(
            period="today",
            source="all",
            start=NOW,
            end=NOW,
            orders=orders,
            summary=summarize(orders),
            top_selling_items=top_selling_items(orders),
            daily_sales=[],
        )

    def test_full_mode(self, report):
        data = json.loads(to_json(report, "full", generated_on=NOW))
        assert set(data) == {"metadata", "summary", "topSellingItems", "dailySales"}
        assert data["metadata"]["exportType"] == "full"
        assert data["metadata"]["reportPeriod"] == "today"
        assert data["metadata"]["timezone"] == "Asia/Manila"
        assert data["summary"]["totalSales"] == 100.0

    @pytest.mark.parametrize(
        "mode, section",
        [("summary", "summary"), ("items", "topSellingItems"), ("sales", "dailySales")],
    )
    def test_partial_modes(self, report, mode, section):
        data = json.loads(to_json(report, mode))
        assert set(data) == {"metadata", section}

    def test_unknown_mode(self, report):
        with pytest.raises(ValidationError):
            to_json(report, "everything")


class TestExportFilename:
    def test_names(self):
        now = datetime(2024, 10, 19, 8, 30, tzinfo=timezone.utc)
        assert export_filename("csv", "today", now) == "BOKI_Orders_today_2024-10-19_08-30-00.csv"
        assert (
            export_filename("json", "week", now, "summary")
            == "BOKI_summary_Report_week_2024-10-19_08-30-00.json"
        )

    def test_unknown_format(self):
        with pytest.raises(ValidationError):
            export_filename("xlsx", "today")
