"""
Input validation utilities.
"""

from decimal import Decimal, InvalidOperation

from boki_shared.constants import (
    BAN_DURATION_DAYS,
    BanReason,
    KioskOrderStatus,
    OnlineOrderStatus,
    OrderType,
)


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


class InvalidStatusError(ValidationError):
    """A status value does not belong to the vocabulary of the order kind."""

    def __init__(self, value, vocabulary: str):
        super().__init__(f"Invalid status '{value}' for {vocabulary} orders")
        self.value = value
        self.vocabulary = vocabulary


def parse_online_status(value) -> OnlineOrderStatus:
    if isinstance(value, OnlineOrderStatus):
        return value
    if isinstance(value, KioskOrderStatus):
        value = value.value
    try:
        return OnlineOrderStatus(value)
    except ValueError as exc:
        raise InvalidStatusError(value, "online") from exc


def parse_kiosk_status(value) -> KioskOrderStatus:
    """
    Only pending_payment, payment_received and cancelled exist for kiosk orders.

    Online-only values such as "preparing" are rejected here instead of being
    written onto a kiosk row.
    """
    if isinstance(value, KioskOrderStatus):
        return value
    if isinstance(value, OnlineOrderStatus):
        value = value.value
    try:
        return KioskOrderStatus(value)
    except ValueError as exc:
        raise InvalidStatusError(value, "kiosk") from exc


def parse_order_type(value) -> OrderType:
    if isinstance(value, OrderType):
        return value
    try:
        return OrderType(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid order type: {value}") from exc


def to_decimal(value, field: str = "amount") -> Decimal:
    """Coerce a store value (str, int, float, Decimal, None) to Decimal."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be numeric, got {value!r}") from exc


def validate_non_negative_amount(value, field: str = "total_amount") -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def validate_quantity(quantity) -> int:
    """Line item quantities are positive integers."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"quantity must be an integer, got {quantity!r}")
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")
    return quantity


def validate_price_multiplier(value, field: str = "price_multiplier") -> Decimal:
    multiplier = to_decimal(value, field)
    if multiplier <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return multiplier


def validate_sort_order(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError("sort_order must be a non-negative integer")
    return value


def validate_cancellation_reason(reason: str | None) -> str:
    """A cancellation must always carry a reason code."""
    if reason is None or not str(reason).strip():
        raise ValidationError("A cancellation reason is required to cancel an order")
    return str(reason).strip()


def validate_ban_request(
    ban_reason: str, custom_reason: str | None, duration_days: int | None
) -> None:
    """
    Validate an admin ban request.

    Requirements:
    - ban_reason is one of the known codes
    - "other" carries a non-empty custom_reason
    - duration is one of the offered durations, or None for permanent
    """
    valid_reasons = {reason.value for reason in BanReason}
    if ban_reason not in valid_reasons:
        raise ValidationError(f"Invalid ban reason: {ban_reason}")

    if ban_reason == BanReason.OTHER.value and not (custom_reason or "").strip():
        raise ValidationError("A custom reason is required when the ban reason is 'other'")

    if duration_days is not None and duration_days not in BAN_DURATION_DAYS:
        allowed = ", ".join(str(days) for days in sorted(BAN_DURATION_DAYS))
        raise ValidationError(f"Invalid ban duration: {duration_days}. Allowed: {allowed} or permanent")
