"""
Size options and their assignment to menu items.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from boki_shared.constants import FOOD_ITEM_SIZES_TABLE, SIZE_OPTIONS_TABLE
from boki_shared.logging_config import get_logger
from boki_shared.models import FoodItemSize, SizeOption, SizeWithPrice
from boki_shared.store.base import RecordNotFoundError, RowStore
from boki_shared.validation import (
    ValidationError,
    validate_non_negative_amount,
    validate_price_multiplier,
    validate_sort_order,
)

logger = get_logger(__name__)

CENT = Decimal("0.01")


def calculate_size_price(base_price, multiplier) -> Decimal:
    """Menu price times the size multiplier, rounded half-up to cents."""
    price = validate_non_negative_amount(base_price, "base_price") * Decimal(str(multiplier))
    return price.quantize(CENT, rounding=ROUND_HALF_UP)


def _size_payload(data: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Size name is required")
        payload["name"] = name
    if "description" in data:
        payload["description"] = data["description"]
    if "price_multiplier" in data or not partial:
        payload["price_multiplier"] = str(validate_price_multiplier(data.get("price_multiplier")))
    if "sort_order" in data or not partial:
        payload["sort_order"] = validate_sort_order(data.get("sort_order", 0))
    if "is_active" in data or not partial:
        payload["is_active"] = bool(data.get("is_active", True))
    return payload


class SizeService:
    def __init__(self, store: RowStore):
        self.store = store

    def list_size_options(self, include_inactive: bool = False) -> list[SizeOption]:
        """Sizes by ``sort_order``; equal sort orders keep the store's order."""
        filters = None if include_inactive else [("is_active", "eq", True)]
        sizes = [SizeOption.from_row(row) for row in self.store.select(SIZE_OPTIONS_TABLE, filters)]
        return sorted(sizes, key=lambda size: size.sort_order)

    def get_size_option(self, size_id: str) -> SizeOption:
        return SizeOption.from_row(self.store.select_one(SIZE_OPTIONS_TABLE, size_id))

    def create_size_option(self, data: dict[str, Any]) -> SizeOption:
        row = self.store.insert(SIZE_OPTIONS_TABLE, _size_payload(data))
        logger.info("Size option %s created", row.get("name"))
        return SizeOption.from_row(row)

    def update_size_option(self, size_id: str, data: dict[str, Any]) -> SizeOption:
        payload = _size_payload(data, partial=True)
        if not payload:
            raise ValidationError("No size fields to update")
        return SizeOption.from_row(self.store.update(SIZE_OPTIONS_TABLE, size_id, payload))

    def delete_size_option(self, size_id: str) -> None:
        for link in self._links(size_option_id=size_id):
            self.store.delete(FOOD_ITEM_SIZES_TABLE, link.id)
        self.store.delete(SIZE_OPTIONS_TABLE, size_id)
        logger.info("Size option %s deleted", size_id)

    def _links(
        self, food_item_id: str | None = None, size_option_id: str | None = None
    ) -> list[FoodItemSize]:
        filters = []
        if food_item_id:
            filters.append(("food_item_id", "eq", food_item_id))
        if size_option_id:
            filters.append(("size_option_id", "eq", size_option_id))
        return [FoodItemSize.from_row(row) for row in self.store.select(FOOD_ITEM_SIZES_TABLE, filters)]

    def _link(self, food_item_id: str, size_option_id: str) -> FoodItemSize:
        links = self._links(food_item_id, size_option_id)
        if not links:
            raise RecordNotFoundError(FOOD_ITEM_SIZES_TABLE, f"{food_item_id}/{size_option_id}")
        return links[0]

    def assign_sizes_to_food_item(self, food_item_id: str, size_ids: list[str]) -> list[FoodItemSize]:
        """
        Make exactly ``size_ids`` available for the menu item.

        Links to other sizes are kept but marked unavailable so custom
        multipliers survive being toggled off and on.
        """
        wanted = list(dict.fromkeys(size_ids))
        existing = {link.size_option_id: link for link in self._links(food_item_id)}

        for size_id, link in existing.items():
            if size_id not in wanted and link.is_available:
                self.store.update(FOOD_ITEM_SIZES_TABLE, link.id, {"is_available": False})

        for size_id in wanted:
            link = existing.get(size_id)
            if link is None:
                self.get_size_option(size_id)
                self.store.insert(
                    FOOD_ITEM_SIZES_TABLE,
                    {"food_item_id": food_item_id, "size_option_id": size_id, "is_available": True},
                )
            elif not link.is_available:
                self.store.update(FOOD_ITEM_SIZES_TABLE, link.id, {"is_available": True})

        logger.info("Food item %s sizes set to %s", food_item_id, wanted)
        return self._links(food_item_id)

    def remove_size_from_food_item(self, food_item_id: str, size_option_id: str) -> None:
        self.store.delete(FOOD_ITEM_SIZES_TABLE, self._link(food_item_id, size_option_id).id)

    def set_size_availability(
        self, food_item_id: str, size_option_id: str, is_available: bool
    ) -> FoodItemSize:
        link = self._link(food_item_id, size_option_id)
        row = self.store.update(FOOD_ITEM_SIZES_TABLE, link.id, {"is_available": bool(is_available)})
        return FoodItemSize.from_row(row)

    def set_custom_price_multiplier(
        self, food_item_id: str, size_option_id: str, multiplier
    ) -> FoodItemSize:
        """Override the size multiplier for one menu item; None clears it."""
        value = None
        if multiplier is not None:
            value = str(validate_price_multiplier(multiplier, "custom_price_multiplier"))
        link = self._link(food_item_id, size_option_id)
        row = self.store.update(FOOD_ITEM_SIZES_TABLE, link.id, {"custom_price_multiplier": value})
        return FoodItemSize.from_row(row)

    def get_food_item_sizes(self, food_item_id: str, base_price) -> list[SizeWithPrice]:
        """Available, active sizes of a menu item with their computed prices."""
        sizes = {size.id: size for size in self.list_size_options()}
        priced = []
        for link in self._links(food_item_id):
            size = sizes.get(link.size_option_id)
            if size is None or not link.is_available:
                continue
            multiplier = link.custom_price_multiplier or size.price_multiplier
            priced.append(
                SizeWithPrice(
                    size_option_id=size.id,
                    name=size.name,
                    description=size.description,
                    price_multiplier=multiplier,
                    calculated_price=calculate_size_price(base_price, multiplier),
                    is_available=link.is_available,
                    sort_order=size.sort_order,
                )
            )
        return sorted(priced, key=lambda size: size.sort_order)
