"""
Centralized error handlers for Flask applications.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from boki_shared.constants import KIOSK_ORDERS_TABLE, ORDERS_TABLE
from boki_shared.error_catalog import catalog_entry
from boki_shared.logging_config import get_logger
from boki_shared.serializers import error_response
from boki_shared.services.ban_service import CustomerBannedError
from boki_shared.services.order_state_machine import (
    CancellationReasonRequired,
    InvalidStatusError,
    OrderStateError,
    TerminalStatusError,
)
from boki_shared.store.base import RecordNotFoundError, StoreError
from boki_shared.validation import ValidationError

logger = get_logger(__name__)


def _catalog_details(code: str, extra: dict | None = None) -> dict:
    entry = catalog_entry(code)
    details = {"code": code, "solution": entry["solution"]}
    if extra:
        details.update(extra)
    return details


def _validation_code(e: ValidationError) -> str:
    if isinstance(e, CancellationReasonRequired):
        return "ORDER_003"
    if isinstance(e, TerminalStatusError):
        return "ORDER_005"
    if isinstance(e, InvalidStatusError):
        return "ORDER_004"
    if isinstance(e, OrderStateError):
        return "ORDER_002"
    return "VALID_001"


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(CustomerBannedError)
    def handle_customer_banned(e: CustomerBannedError):
        logger.warning(f"Order blocked for banned customer {e.user_id}")
        return jsonify(
            error_response(str(e), _catalog_details("BAN_001", {"ban": e.status.to_dict()}))
        ), HTTPStatus.FORBIDDEN

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        """Handle domain validation errors, including rejected transitions."""
        logger.warning(f"Validation error: {e}")
        return jsonify(
            error_response(str(e), _catalog_details(_validation_code(e)))
        ), HTTPStatus.BAD_REQUEST

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(e: PydanticValidationError):
        """Handle Pydantic validation errors."""
        logger.warning(f"Pydantic validation error: {e}")
        errors = e.errors(include_url=False, include_context=False)
        return jsonify(
            error_response("Invalid request data", _catalog_details("VALID_001", {"errors": errors}))
        ), HTTPStatus.BAD_REQUEST

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found_record(e: RecordNotFoundError):
        code = "ORDER_001" if e.table in {ORDERS_TABLE, KIOSK_ORDERS_TABLE} else "RECORD_001"
        logger.info(f"Not found: {e}")
        return jsonify(error_response(str(e), _catalog_details(code))), HTTPStatus.NOT_FOUND

    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        """Handle hosted store failures."""
        logger.error(f"Store error: {e}", exc_info=True)
        return jsonify(
            error_response("Store request failed", _catalog_details("STORE_001"))
        ), HTTPStatus.BAD_GATEWAY

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        """Handle HTTP exceptions from Werkzeug."""
        logger.warning(f"HTTP exception {e.code}: {e.description}")
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        """Handle any unhandled exceptions."""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify(
            error_response("Internal server error", _catalog_details("SYSTEM_001"))
        ), HTTPStatus.INTERNAL_SERVER_ERROR
