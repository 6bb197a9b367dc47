"""
Sizes API - size options and their assignment to menu items.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from boki_admin.context import get_service
from boki_shared.logging_config import get_logger
from boki_shared.schemas import (
    AssignSizesRequest,
    CreateSizeOptionRequest,
    CustomMultiplierRequest,
    UpdateSizeOptionRequest,
)
from boki_shared.serializers import (
    serialize_food_item_size,
    serialize_size_option,
    serialize_size_with_price,
    success_response,
)
from boki_shared.validation import ValidationError

sizes_bp = Blueprint("sizes", __name__)
logger = get_logger(__name__)


@sizes_bp.get("/sizes")
def get_sizes():
    include_inactive = request.args.get("include_inactive", "false").lower() in {"1", "true", "yes"}
    sizes = get_service("size_service").list_size_options(include_inactive=include_inactive)
    return jsonify(success_response([serialize_size_option(size) for size in sizes]))


@sizes_bp.post("/sizes")
def post_create_size():
    payload = request.get_json(silent=True) or {}
    data = CreateSizeOptionRequest(**payload)
    size = get_service("size_service").create_size_option(data.dict())
    return jsonify(success_response(serialize_size_option(size))), HTTPStatus.CREATED


@sizes_bp.patch("/sizes/<size_id>")
def patch_size(size_id: str):
    payload = request.get_json(silent=True) or {}
    data = UpdateSizeOptionRequest(**payload)
    size = get_service("size_service").update_size_option(size_id, data.dict(exclude_unset=True))
    return jsonify(success_response(serialize_size_option(size)))


@sizes_bp.delete("/sizes/<size_id>")
def delete_size(size_id: str):
    """Deleting a size also removes it from every menu item."""
    get_service("size_service").delete_size_option(size_id)
    return jsonify(success_response({"id": size_id}, "Size deleted"))


@sizes_bp.get("/food-items/<food_item_id>/sizes")
def get_food_item_sizes(food_item_id: str):
    """
    Query params:
    - base_price: price of the menu item (required)
    """
    base_price = request.args.get("base_price")
    if base_price is None:
        raise ValidationError("base_price is required")
    sizes = get_service("size_service").get_food_item_sizes(food_item_id, base_price)
    return jsonify(success_response([serialize_size_with_price(size) for size in sizes]))


@sizes_bp.put("/food-items/<food_item_id>/sizes")
def put_food_item_sizes(food_item_id: str):
    """Replace the set of available sizes of a menu item."""
    payload = request.get_json(silent=True) or {}
    data = AssignSizesRequest(**payload)
    links = get_service("size_service").assign_sizes_to_food_item(food_item_id, data.size_ids)
    return jsonify(success_response([serialize_food_item_size(link) for link in links]))


@sizes_bp.patch("/food-items/<food_item_id>/sizes/<size_id>")
def patch_food_item_size(food_item_id: str, size_id: str):
    """
    Body:
    - custom_price_multiplier: overrides the size multiplier; null clears it
    - is_available: toggles the size for this item
    """
    payload = request.get_json(silent=True) or {}
    size_service = get_service("size_service")
    link = None
    if "custom_price_multiplier" in payload:
        data = CustomMultiplierRequest(**payload)
        link = size_service.set_custom_price_multiplier(
            food_item_id, size_id, data.custom_price_multiplier
        )
    if "is_available" in payload:
        link = size_service.set_size_availability(
            food_item_id, size_id, bool(payload["is_available"])
        )
    if link is None:
        raise ValidationError("Nothing to update")
    return jsonify(success_response(serialize_food_item_size(link)))


@sizes_bp.delete("/food-items/<food_item_id>/sizes/<size_id>")
def delete_food_item_size(food_item_id: str, size_id: str):
    get_service("size_service").remove_size_from_food_item(food_item_id, size_id)
    logger.info(f"Size {size_id} removed from food item {food_item_id}")
    return jsonify(success_response({"food_item_id": food_item_id, "size_option_id": size_id}))
