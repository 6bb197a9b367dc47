"""
Kiosk Orders API - cashier workflow for orders placed at the in-store kiosk.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from boki_admin.context import get_actor_id, get_service
from boki_shared.constants import OrderSource
from boki_shared.logging_config import get_logger
from boki_shared.schemas import (
    CancelOrderRequest,
    ConfirmPaymentRequest,
    CreateKioskOrderRequest,
    UpdateOrderStatusRequest,
)
from boki_shared.serializers import serialize_kiosk_order, success_response
from boki_shared.services.cancel_order_service import cancel_order

kiosk_orders_bp = Blueprint("kiosk_orders", __name__)
logger = get_logger(__name__)


def _truthy(value: str | None) -> bool:
    return (value or "").lower() in {"1", "true", "yes"}


@kiosk_orders_bp.get("/kiosk-orders")
def get_kiosk_orders():
    """
    Query params:
    - status: pending_payment | payment_received | cancelled
    - cashier: when true, only the statuses shown on the cashier screen
    """
    service = get_service("kiosk_order_service")
    if _truthy(request.args.get("cashier")):
        orders = service.cashier_orders()
    else:
        orders = service.list_orders(status=request.args.get("status") or None)
    return jsonify(success_response([serialize_kiosk_order(order) for order in orders]))


@kiosk_orders_bp.post("/kiosk-orders")
def post_create_kiosk_order():
    payload = request.get_json(silent=True) or {}
    order_data = CreateKioskOrderRequest(**payload)
    order = get_service("kiosk_order_service").create_order(order_data.dict())
    return jsonify(success_response(serialize_kiosk_order(order))), HTTPStatus.CREATED


@kiosk_orders_bp.get("/kiosk-orders/<order_id>")
def get_kiosk_order(order_id: str):
    order = get_service("kiosk_order_service").get_order(order_id)
    return jsonify(success_response(serialize_kiosk_order(order)))


@kiosk_orders_bp.post("/kiosk-orders/<order_id>/status")
def post_update_kiosk_status(order_id: str):
    """Online-only statuses such as ``preparing`` are rejected with 400."""
    payload = request.get_json(silent=True) or {}
    data = UpdateOrderStatusRequest(**payload)
    order = get_service("kiosk_order_service").update_status(
        order_id,
        data.status,
        note=data.note,
        actor_id=get_actor_id(),
        cancellation_reason=data.cancellation_reason,
        cancellation_notes=data.cancellation_notes,
    )
    return jsonify(success_response(serialize_kiosk_order(order)))


@kiosk_orders_bp.post("/kiosk-orders/<order_id>/confirm-payment")
def post_confirm_payment(order_id: str):
    payload = request.get_json(silent=True) or {}
    data = ConfirmPaymentRequest(**payload)
    order = get_service("kiosk_order_service").confirm_payment(
        order_id, actor_id=get_actor_id(), payment_method=data.payment_method
    )
    return jsonify(success_response(serialize_kiosk_order(order), "Payment confirmed"))


@kiosk_orders_bp.post("/kiosk-orders/<order_id>/complete")
def post_mark_complete(order_id: str):
    """Idempotent: a second call keeps the first completion time."""
    order = get_service("kiosk_order_service").mark_complete(order_id, actor_id=get_actor_id())
    return jsonify(success_response(serialize_kiosk_order(order)))


@kiosk_orders_bp.post("/kiosk-orders/<order_id>/cancel")
def post_cancel_kiosk_order(order_id: str):
    payload = request.get_json(silent=True) or {}
    data = CancelOrderRequest(**payload)
    order = cancel_order(
        order_id,
        OrderSource.KIOSK,
        reason=data.reason,
        notes=data.notes,
        actor_id=get_actor_id(),
        kiosk_order_service=get_service("kiosk_order_service"),
    )
    logger.info(f"Kiosk order {order.order_number or order_id} cancelled ({data.reason})")
    return jsonify(success_response(serialize_kiosk_order(order), "Order cancelled"))
