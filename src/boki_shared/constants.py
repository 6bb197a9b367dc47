"""
Application constants and enums.
"""

from enum import Enum


class OnlineOrderStatus(str, Enum):
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class KioskOrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_RECEIVED = "payment_received"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class OrderSource(str, Enum):
    ONLINE = "online"
    KIOSK = "kiosk"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    ONLINE = "online"


class Roles(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class BanReason(str, Enum):
    FAKE_ORDERS = "fake_orders"
    PAYMENT_ABUSE = "payment_abuse"
    FREQUENT_CANCELLATIONS = "frequent_cancellations"
    ABUSIVE_BEHAVIOR = "abusive_behavior"
    MULTIPLE_ACCOUNTS = "multiple_accounts"
    FALSE_REPORTS = "false_reports"
    POLICY_VIOLATIONS = "policy_violations"
    OTHER = "other"


class CancellationReason(str, Enum):
    UNPAID_ORDERS = "unpaid_orders"
    INCORRECT_ORDERS = "incorrect_orders"
    DUPLICATE_TRANSACTIONS = "duplicate_transactions"
    UNAVAILABLE_ITEMS = "unavailable_items"
    CUSTOMER_CHANGE_OF_MIND = "customer_change_of_mind"
    CASHIER_VERIFICATION_ERRORS = "cashier_verification_errors"
    ABANDONED_TRANSACTIONS = "abandoned_transactions"
    SYSTEM_OR_PRINTER_ERRORS = "system_or_printer_errors"
    DATA_ACCURACY_ISSUES = "data_accuracy_issues"
    WRONG_ORDER_PAID = "wrong_order_paid"


class ReportSource(str, Enum):
    ALL = "all"
    ONLINE = "online"
    KIOSK = "kiosk"


class ReportPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class ExportMode(str, Enum):
    FULL = "full"
    SUMMARY = "summary"
    SALES = "sales"
    ITEMS = "items"


# Logical tables in the hosted store
ORDERS_TABLE = "orders"
ORDER_ITEMS_TABLE = "order_items"
ORDER_STATUS_HISTORY_TABLE = "order_status_history"
KIOSK_ORDERS_TABLE = "kiosk_orders"
KIOSK_ORDER_ITEMS_TABLE = "kiosk_order_items"
KIOSK_ORDER_STATUS_HISTORY_TABLE = "kiosk_order_status_history"
CUSTOMER_BANS_TABLE = "customer_bans"
USERS_TABLE = "users"
SIZE_OPTIONS_TABLE = "size_options"
FOOD_ITEM_SIZES_TABLE = "food_item_sizes"
FOOD_ITEMS_TABLE = "food_items"

# Item selects embed the menu item (and, for kiosk lines, the size) by foreign key.
ORDER_ITEMS_SELECT = "*, food_items(name, image_url)"
KIOSK_ORDER_ITEMS_SELECT = (
    "*, food_item:food_items(name, image_url), size:size_options!size_id(name)"
)

# Column linking each item table to its order.
ITEM_ORDER_KEYS = {
    ORDER_ITEMS_TABLE: "order_id",
    KIOSK_ORDER_ITEMS_TABLE: "kiosk_order_id",
}

# Size columns per item table: online lines denormalize the size, kiosk lines only reference it.
ITEM_SIZE_COLUMNS = {
    ORDER_ITEMS_TABLE: ("size_option_id", "size_name", "size_multiplier"),
    KIOSK_ORDER_ITEMS_TABLE: ("size_id",),
}

# Server-side procedures
RPC_IS_USER_BANNED = "is_user_banned"
RPC_SET_USER_CONTEXT = "set_user_context"
RPC_GET_SERVER_TIME = "get_server_time"

TERMINAL_ONLINE_STATUSES = {
    OnlineOrderStatus.COMPLETED,
    OnlineOrderStatus.CANCELLED,
}

TERMINAL_KIOSK_STATUSES = {
    KioskOrderStatus.CANCELLED,
}

# Single legal "advance" step per status; ready branches on order type.
ONLINE_NEXT_STATUS = {
    OnlineOrderStatus.PENDING: OnlineOrderStatus.PENDING_PAYMENT,
    OnlineOrderStatus.PENDING_PAYMENT: OnlineOrderStatus.PREPARING,
    OnlineOrderStatus.PREPARING: OnlineOrderStatus.READY,
    OnlineOrderStatus.OUT_FOR_DELIVERY: OnlineOrderStatus.COMPLETED,
}

KIOSK_TRANSITIONS = {
    KioskOrderStatus.PENDING_PAYMENT: {
        KioskOrderStatus.PAYMENT_RECEIVED,
        KioskOrderStatus.CANCELLED,
    },
    KioskOrderStatus.PAYMENT_RECEIVED: {
        KioskOrderStatus.CANCELLED,
    },
    KioskOrderStatus.CANCELLED: set(),
}

CASHIER_KIOSK_STATUSES = {
    KioskOrderStatus.PENDING_PAYMENT,
    KioskOrderStatus.PAYMENT_RECEIVED,
    KioskOrderStatus.CANCELLED,
}

# Ban durations offered to admins, in days. None is permanent.
BAN_DURATION_DAYS = {1, 3, 7, 30, 90, 365}

ORDER_STATUS_META_DEFAULT = {
    OnlineOrderStatus.PENDING.value: {
        "client_label": "Order placed",
        "admin_label": "Pending",
        "next_action": "Confirm & Await Payment",
    },
    OnlineOrderStatus.PENDING_PAYMENT.value: {
        "client_label": "Awaiting payment",
        "admin_label": "Pending payment",
        "next_action": "Confirm Payment & Start Preparing",
    },
    OnlineOrderStatus.PREPARING.value: {
        "client_label": "Preparing your order",
        "admin_label": "Preparing",
        "next_action": "Mark as Ready",
    },
    OnlineOrderStatus.READY.value: {
        "client_label": "Ready",
        "admin_label": "Ready",
        "next_action": None,
    },
    OnlineOrderStatus.OUT_FOR_DELIVERY.value: {
        "client_label": "On the way",
        "admin_label": "Out for delivery",
        "next_action": "Mark Delivered",
    },
    OnlineOrderStatus.COMPLETED.value: {
        "client_label": "Completed",
        "admin_label": "Completed",
        "next_action": None,
    },
    OnlineOrderStatus.CANCELLED.value: {
        "client_label": "Cancelled",
        "admin_label": "Cancelled",
        "next_action": None,
    },
}

BAN_REASON_LABELS = {
    BanReason.FAKE_ORDERS.value: "Fake/Fraudulent Orders",
    BanReason.PAYMENT_ABUSE.value: "Payment Abuse",
    BanReason.FREQUENT_CANCELLATIONS.value: "Frequent Cancellations",
    BanReason.ABUSIVE_BEHAVIOR.value: "Abusive Behavior",
    BanReason.MULTIPLE_ACCOUNTS.value: "Multiple Fake Accounts",
    BanReason.FALSE_REPORTS.value: "False Reports/Scams",
    BanReason.POLICY_VIOLATIONS.value: "Policy Violations",
    BanReason.OTHER.value: "Other",
}

UNKNOWN_ITEM_NAME = "Unknown Item"
