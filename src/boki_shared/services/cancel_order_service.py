"""
Order cancellation service - shared by the order board and the cashier screen.
"""

from __future__ import annotations

from boki_shared.constants import CancellationReason, OrderSource
from boki_shared.logging_config import get_logger
from boki_shared.models import KioskOrder, OnlineOrder
from boki_shared.services.kiosk_order_service import KioskOrderService
from boki_shared.services.order_service import OrderService
from boki_shared.services.order_state_machine import CancellationReasonRequired
from boki_shared.validation import ValidationError

logger = get_logger(__name__)


def cashier_cancel_note(reason: str | None, notes: str | None = None) -> str:
    note = f"Order cancelled by cashier. Reason: {reason or 'Not specified'}"
    if notes:
        note += f". Notes: {notes}"
    return note


def cancel_order(
    order_id: str,
    source: OrderSource | str = OrderSource.ONLINE,
    *,
    reason: str | None,
    notes: str | None = None,
    actor_id: str | None = None,
    order_service: OrderService | None = None,
    kiosk_order_service: KioskOrderService | None = None,
) -> OnlineOrder | KioskOrder:
    """Cancel an online or kiosk order with a reason code."""
    if not reason or not reason.strip():
        raise CancellationReasonRequired("A cancellation reason is required to cancel an order")
    if reason not in {code.value for code in CancellationReason}:
        raise ValidationError(f"Unknown cancellation reason: {reason}")

    try:
        source = OrderSource(source)
    except ValueError as exc:
        raise ValidationError(f"Unknown order source: {source}") from exc
    note = cashier_cancel_note(reason, notes)
    options = {
        "note": note,
        "actor_id": actor_id,
        "cancellation_reason": reason,
        "cancellation_notes": notes,
    }

    if source == OrderSource.KIOSK:
        if kiosk_order_service is None:
            raise ValueError("kiosk_order_service is required to cancel kiosk orders")
        order = kiosk_order_service.update_status(order_id, "cancelled", **options)
    else:
        if order_service is None:
            raise ValueError("order_service is required to cancel online orders")
        order = order_service.update_order_status(order_id, "cancelled", **options)

    logger.info("%s order %s cancelled by %s (%s)", source.value, order_id, actor_id, reason)
    return order
