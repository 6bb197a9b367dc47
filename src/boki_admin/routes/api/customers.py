"""
Customers API - customer list with lifetime stats and ban management.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from boki_admin.context import get_actor_id, get_service
from boki_shared.logging_config import get_logger
from boki_shared.schemas import BanCustomerRequest
from boki_shared.serializers import serialize_ban, success_response

customers_bp = Blueprint("customers", __name__)
logger = get_logger(__name__)


@customers_bp.get("/customers")
def get_customers():
    """
    Query params:
    - search: matches name, email or contact number (case-insensitive)
    """
    customers = get_service("customer_service").list_customers(request.args.get("search"))
    return jsonify(success_response([customer.to_dict() for customer in customers]))


@customers_bp.post("/customers/<user_id>/ban")
def post_ban_customer(user_id: str):
    """
    Ban a customer from placing orders.

    Body: see BanCustomerRequest. ``duration_days`` null means permanent.
    """
    payload = request.get_json(silent=True) or {}
    data = BanCustomerRequest(**payload)
    ban = get_service("ban_service").ban_customer(
        user_id,
        banned_by=get_actor_id(),
        ban_reason=data.ban_reason,
        custom_reason=data.custom_reason,
        duration_days=data.duration_days,
        notes=data.notes,
    )
    return jsonify(success_response(serialize_ban(ban), "Customer banned")), HTTPStatus.CREATED


@customers_bp.post("/customers/<user_id>/unban")
def post_unban_customer(user_id: str):
    lifted = get_service("ban_service").unban_customer(user_id, unbanned_by=get_actor_id())
    return jsonify(success_response({"user_id": user_id, "lifted": lifted}, "Customer unbanned"))


@customers_bp.get("/customers/<user_id>/ban-status")
def get_ban_status(user_id: str):
    status = get_service("ban_service").check_ban_status(user_id)
    return jsonify(success_response(status.to_dict()))


@customers_bp.get("/customers/<user_id>/ban-history")
def get_ban_history(user_id: str):
    history = get_service("ban_service").ban_history(user_id)
    return jsonify(success_response(history))
