"""
Tests for size options and per-item size pricing.
"""

from decimal import Decimal

import pytest

from boki_shared.constants import FOOD_ITEM_SIZES_TABLE, SIZE_OPTIONS_TABLE
from boki_shared.services.size_service import calculate_size_price
from boki_shared.store.base import RecordNotFoundError
from boki_shared.validation import ValidationError


@pytest.fixture
def sizes(size_service):
    """Small, Medium and Large size options."""
    return {
        name: size_service.create_size_option(
            {"name": name, "price_multiplier": multiplier, "sort_order": order}
        )
        for name, multiplier, order in (
            ("Large", "1.5", 2),
            ("Small", "0.8", 0),
            ("Medium", "1.0", 1),
        )
    }


class TestCalculateSizePrice:
    def test_rounds_half_up_to_cents(self):
        assert calculate_size_price("99.99", "1.25") == Decimal("124.99")
        assert calculate_size_price("10.01", "1.5") == Decimal("15.02")

    def test_negative_base_price_rejected(self):
        with pytest.raises(ValidationError):
            calculate_size_price("-1", "1.0")


class TestSizeOptions:
    def test_listed_by_sort_order(self, size_service, sizes):
        assert [size.name for size in size_service.list_size_options()] == [
            "Small",
            "Medium",
            "Large",
        ]

    def test_inactive_hidden_by_default(self, size_service, sizes):
        size_service.update_size_option(sizes["Large"].id, {"is_active": False})
        assert "Large" not in [size.name for size in size_service.list_size_options()]
        assert len(size_service.list_size_options(include_inactive=True)) == 3

    @pytest.mark.parametrize("multiplier", ["0", "-1.5"])
    def test_multiplier_must_be_positive(self, size_service, multiplier):
        with pytest.raises(ValidationError):
            size_service.create_size_option({"name": "Huge", "price_multiplier": multiplier})

    def test_empty_update_rejected(self, size_service, sizes):
        with pytest.raises(ValidationError):
            size_service.update_size_option(sizes["Small"].id, {})

    def test_delete_removes_links(self, size_service, sizes, store):
        size_service.assign_sizes_to_food_item("food-1", [sizes["Small"].id, sizes["Large"].id])
        size_service.delete_size_option(sizes["Large"].id)

        assert len(store.select(SIZE_OPTIONS_TABLE)) == 2
        links = store.select(FOOD_ITEM_SIZES_TABLE)
        assert [link["size_option_id"] for link in links] == [sizes["Small"].id]


class TestFoodItemSizes:
    def test_prices_available_sizes(self, size_service, sizes):
        size_service.assign_sizes_to_food_item("food-1", [sizes["Large"].id, sizes["Small"].id])

        priced = size_service.get_food_item_sizes("food-1", "120.00")
        assert [(size.name, size.calculated_price) for size in priced] == [
            ("Small", Decimal("96.00")),
            ("Large", Decimal("180.00")),
        ]

    def test_custom_multiplier_wins(self, size_service, sizes):
        size_service.assign_sizes_to_food_item("food-1", [sizes["Large"].id])
        size_service.set_custom_price_multiplier("food-1", sizes["Large"].id, "2")

        priced = size_service.get_food_item_sizes("food-1", "100")
        assert priced[0].calculated_price == Decimal("200.00")

        size_service.set_custom_price_multiplier("food-1", sizes["Large"].id, None)
        assert size_service.get_food_item_sizes("food-1", "100")[0].calculated_price == Decimal(
            "150.00"
        )

    def test_reassign_marks_dropped_sizes_unavailable(self, size_service, sizes, store):
        size_service.assign_sizes_to_food_item("food-1", [sizes["Small"].id, sizes["Large"].id])
        size_service.assign_sizes_to_food_item("food-1", [sizes["Small"].id])

        assert len(store.select(FOOD_ITEM_SIZES_TABLE)) == 2
        priced = size_service.get_food_item_sizes("food-1", "100")
        assert [size.name for size in priced] == ["Small"]

    def test_inactive_size_not_offered(self, size_service, sizes):
        size_service.assign_sizes_to_food_item("food-1", [sizes["Medium"].id])
        size_service.update_size_option(sizes["Medium"].id, {"is_active": False})
        assert size_service.get_food_item_sizes("food-1", "100") == []

    def test_availability_toggle(self, size_service, sizes):
        size_service.assign_sizes_to_food_item("food-1", [sizes["Small"].id])
        link = size_service.set_size_availability("food-1", sizes["Small"].id, False)
        assert link.is_available is False
        assert size_service.get_food_item_sizes("food-1", "100") == []

    def test_unknown_size_cannot_be_assigned(self, size_service):
        with pytest.raises(RecordNotFoundError):
            size_service.assign_sizes_to_food_item("food-1", ["missing"])

    def test_remove_unknown_link(self, size_service, sizes):
        with pytest.raises(RecordNotFoundError):
            size_service.remove_size_from_food_item("food-1", sizes["Small"].id)
