"""
Serializers for consistent API responses.
"""

from __future__ import annotations

from typing import Any

from boki_shared.constants import ORDER_STATUS_META_DEFAULT, OrderType
from boki_shared.datetime_utils import to_iso
from boki_shared.models import (
    BanRecord,
    FoodItemSize,
    KioskOrder,
    OnlineOrder,
    OrderItem,
    SizeOption,
    SizeWithPrice,
    StatusHistoryEntry,
)
from boki_shared.services.order_state_machine import next_status


def _safe_float(value) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def resolve_status_meta(status_key: str, order_type: str | None = None) -> dict[str, Any]:
    """Labels for an online status; the next action of ``ready`` depends on the order type."""
    meta = dict(ORDER_STATUS_META_DEFAULT.get(status_key, {}))
    if not meta:
        label = status_key.replace("_", " ").capitalize()
        return {"client_label": label, "admin_label": label, "next_action": None}
    if status_key == "ready" and order_type:
        meta["next_action"] = (
            "Send Out for Delivery" if order_type == OrderType.DELIVERY.value else "Mark Picked Up"
        )
    return meta


def serialize_order_item(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "food_item_id": item.food_item_id,
        "name": item.name,
        "size_option_id": item.size_option_id,
        "size_name": item.size_name,
        "quantity": item.quantity,
        "unit_price": _safe_float(item.unit_price),
        "total_price": _safe_float(item.line_total),
        "special_instructions": item.special_instructions,
    }


def serialize_status_history(entry: StatusHistoryEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "order_id": entry.order_id,
        "previous_status": entry.previous_status,
        "status": entry.new_status,
        "changed_by": entry.changed_by,
        "notes": entry.notes,
        "created_at": to_iso(entry.created_at),
    }


def serialize_order(order: OnlineOrder) -> dict[str, Any]:
    """Serialize an online order with its items, history and next admin action."""
    upcoming = next_status(order.status, order.order_type)
    return {
        "id": order.id,
        "source": order.source.value,
        "user_id": order.user_id,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "customer_address": order.customer_address,
        "order_type": order.order_type.value,
        "status": order.status.value,
        "status_meta": resolve_status_meta(order.status.value, order.order_type.value),
        "next_status": upcoming.value if upcoming else None,
        "payment_method": order.payment_method,
        "subtotal": _safe_float(order.subtotal),
        "delivery_fee": _safe_float(order.delivery_fee),
        "total_amount": _safe_float(order.total_amount),
        "notes": order.notes,
        "cancellation_reason": order.cancellation_reason,
        "cancellation_notes": order.cancellation_notes,
        "created_at": to_iso(order.created_at),
        "updated_at": to_iso(order.updated_at),
        "items": [serialize_order_item(item) for item in order.items],
        "status_history": [serialize_status_history(entry) for entry in order.history],
    }


def serialize_kiosk_order(order: KioskOrder) -> dict[str, Any]:
    return {
        "id": order.id,
        "source": order.source.value,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "order_type": order.order_type.value,
        "status": order.status.value,
        "is_completed": order.is_fulfilled,
        "awaiting_fulfillment": order.awaiting_fulfillment,
        "payment_method": order.payment_method,
        "total_amount": _safe_float(order.total_amount),
        "notes": order.notes,
        "cancellation_reason": order.cancellation_reason,
        "cancellation_notes": order.cancellation_notes,
        "created_at": to_iso(order.created_at),
        "updated_at": to_iso(order.updated_at),
        "completed_at": to_iso(order.completed_at),
        "items": [serialize_order_item(item) for item in order.items],
        "status_history": [serialize_status_history(entry) for entry in order.history],
    }


def serialize_ban(ban: BanRecord) -> dict[str, Any]:
    return {
        "id": ban.id,
        "user_id": ban.user_id,
        "ban_reason": ban.ban_reason,
        "custom_reason": ban.custom_reason,
        "banned_at": to_iso(ban.banned_at),
        "banned_by": ban.banned_by,
        "banned_until": to_iso(ban.banned_until),
        "is_permanent": ban.is_permanent,
        "is_active": ban.is_active,
        "notes": ban.notes,
    }


def serialize_size_option(size: SizeOption) -> dict[str, Any]:
    return {
        "id": size.id,
        "name": size.name,
        "description": size.description,
        "price_multiplier": _safe_float(size.price_multiplier),
        "is_active": size.is_active,
        "sort_order": size.sort_order,
    }


def serialize_food_item_size(link: FoodItemSize) -> dict[str, Any]:
    return {
        "id": link.id,
        "food_item_id": link.food_item_id,
        "size_option_id": link.size_option_id,
        "is_available": link.is_available,
        "custom_price_multiplier": (
            _safe_float(link.custom_price_multiplier)
            if link.custom_price_multiplier is not None
            else None
        ),
    }


def serialize_size_with_price(size: SizeWithPrice) -> dict[str, Any]:
    return {
        "id": size.size_option_id,
        "size_option_id": size.size_option_id,
        "name": size.name,
        "description": size.description,
        "price_multiplier": _safe_float(size.price_multiplier),
        "calculated_price": _safe_float(size.calculated_price),
        "is_available": size.is_available,
        "sort_order": size.sort_order,
    }


def success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create a standardized success response."""
    response = {"status": "success", "data": data, "error": None}
    if message:
        response["message"] = message
    return response


def error_response(error: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a standardized error response."""
    response = {"status": "error", "data": None, "error": error}
    if details:
        response["details"] = details
    return response
