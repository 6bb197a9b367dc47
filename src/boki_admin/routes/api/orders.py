"""
Orders API - online storefront orders.

Admins list orders, move them through the lifecycle and cancel them. Every
write returns the updated order so the dashboard can patch its cache
instead of reloading the list.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from boki_admin.context import get_actor_id, get_service
from boki_shared.constants import OrderSource
from boki_shared.logging_config import get_logger
from boki_shared.schemas import CancelOrderRequest, PlaceOrderRequest, UpdateOrderStatusRequest
from boki_shared.serializers import serialize_order, success_response
from boki_shared.services.cancel_order_service import cancel_order

# Create blueprint without url_prefix (inherited from parent)
orders_bp = Blueprint("orders", __name__)
logger = get_logger(__name__)


@orders_bp.get("/orders")
def get_orders():
    """
    List online orders, newest first.

    Query params:
    - status: filter by one online status
    - user_id: only orders of one customer
    """
    order_service = get_service("order_service")
    user_id = request.args.get("user_id")
    if user_id:
        orders = order_service.list_user_orders(user_id)
    else:
        orders = order_service.list_orders(status=request.args.get("status") or None)
    response = jsonify(success_response([serialize_order(order) for order in orders]))
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


@orders_bp.post("/orders")
def post_place_order():
    """Place a storefront order; banned customers get 403."""
    payload = request.get_json(silent=True) or {}
    order_data = PlaceOrderRequest(**payload)
    order = get_service("order_service").place_order(order_data.dict())
    return jsonify(success_response(serialize_order(order))), HTTPStatus.CREATED


@orders_bp.get("/orders/stats/today")
def get_today_stats():
    config = get_service("config")
    stats = get_service("order_service").get_today_stats(config.tzinfo)
    return jsonify(success_response(stats.to_dict()))


@orders_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    order = get_service("order_service").get_order(order_id)
    return jsonify(success_response(serialize_order(order)))


@orders_bp.post("/orders/<order_id>/status")
def post_update_status(order_id: str):
    """
    Move an order to the given status.

    Body: see UpdateOrderStatusRequest
    """
    payload = request.get_json(silent=True) or {}
    data = UpdateOrderStatusRequest(**payload)
    order = get_service("order_service").update_order_status(
        order_id,
        data.status,
        note=data.note,
        actor_id=get_actor_id(),
        cancellation_reason=data.cancellation_reason,
        cancellation_notes=data.cancellation_notes,
    )
    return jsonify(success_response(serialize_order(order)))


@orders_bp.post("/orders/<order_id>/advance")
def post_advance_order(order_id: str):
    """Apply the single next step for the order (the admin "confirm" button)."""
    order = get_service("order_service").advance_order(order_id, actor_id=get_actor_id())
    return jsonify(success_response(serialize_order(order)))


@orders_bp.post("/orders/<order_id>/cancel")
def post_cancel_order(order_id: str):
    payload = request.get_json(silent=True) or {}
    data = CancelOrderRequest(**payload)
    order = cancel_order(
        order_id,
        OrderSource.ONLINE,
        reason=data.reason,
        notes=data.notes,
        actor_id=get_actor_id(),
        order_service=get_service("order_service"),
    )
    logger.info(f"Order {order_id} cancelled ({data.reason})")
    return jsonify(success_response(serialize_order(order), "Order cancelled"))
