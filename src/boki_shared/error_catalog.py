"""
Catalog of the controlled errors returned by the BOKI back-office API.

Every JSON error body carries one of these codes plus its recovery hint.
"""

ERROR_CATALOG = {
    "VALID_001": {
        "title": "Invalid Request",
        "description": "The request body or query string failed validation.",
        "http_code": 400,
        "solution": "Fix the highlighted fields and submit again.",
    },
    "ORDER_001": {
        "title": "Order Not Found",
        "description": "The order id does not exist or the order was removed.",
        "http_code": 404,
        "solution": "Refresh the order list and retry. Contact support if the order should exist.",
    },
    "ORDER_002": {
        "title": "Invalid Status Transition",
        "description": "The requested status is not reachable from the order's current status.",
        "http_code": 400,
        "solution": "Reload the order; another user may have already advanced it.",
    },
    "ORDER_003": {
        "title": "Cancellation Reason Required",
        "description": "An order cannot be cancelled without a cancellation reason code.",
        "http_code": 400,
        "solution": "Pick a cancellation reason and confirm again.",
    },
    "ORDER_004": {
        "title": "Invalid Order Status",
        "description": "The status value does not exist for this kind of order.",
        "http_code": 400,
        "solution": "Kiosk orders only accept pending_payment, payment_received and cancelled.",
    },
    "ORDER_005": {
        "title": "Order Already Closed",
        "description": "The order is completed or cancelled and cannot change status.",
        "http_code": 400,
        "solution": "No action needed; closed orders are final.",
    },
    "BAN_001": {
        "title": "Customer Banned",
        "description": "The customer has an active ban and cannot place orders.",
        "http_code": 403,
        "solution": "Review the ban history before lifting the ban.",
    },
    "RECORD_001": {
        "title": "Record Not Found",
        "description": "The referenced record does not exist.",
        "http_code": 404,
        "solution": "Refresh the page and retry.",
    },
    "STORE_001": {
        "title": "Store Unavailable",
        "description": "The hosted database or one of its procedures returned an error.",
        "http_code": 502,
        "solution": "Retry in a moment. Check the Supabase project status if it persists.",
    },
    "SYSTEM_001": {
        "title": "Internal Error",
        "description": "Unhandled exception on the server.",
        "http_code": 500,
        "solution": "Check the server logs.",
    },
}


def catalog_entry(code: str) -> dict:
    return ERROR_CATALOG.get(code, ERROR_CATALOG["SYSTEM_001"])
