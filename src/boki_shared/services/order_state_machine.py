"""
Order State Machine - status transitions for online and kiosk orders.

Online orders follow
``pending -> pending_payment -> preparing -> ready -> (out_for_delivery ->) completed``
and may be cancelled from any non-terminal status. Kiosk orders only know
``pending_payment -> payment_received`` plus ``cancelled``; their fulfilment is
tracked by ``completed_at`` rather than by a status.

Everything here is pure: the machine never talks to the store. It returns the
updated order, the column patch to persist and the history row to append, and
the calling service commits them.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Union
from zoneinfo import ZoneInfo

from boki_shared.constants import (
    KIOSK_TRANSITIONS,
    ONLINE_NEXT_STATUS,
    TERMINAL_KIOSK_STATUSES,
    TERMINAL_ONLINE_STATUSES,
    KioskOrderStatus,
    OnlineOrderStatus,
    OrderSource,
    OrderType,
    PaymentMethod,
)
from boki_shared.datetime_utils import business_date, to_iso, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.models import KioskOrder, OnlineOrder, StatusHistoryEntry
from boki_shared.validation import (
    InvalidStatusError,
    ValidationError,
    parse_kiosk_status,
    parse_online_status,
    parse_order_type,
    validate_cancellation_reason,
)

logger = get_logger(__name__)

AnyOrder = Union[OnlineOrder, KioskOrder]
AnyStatus = Union[OnlineOrderStatus, KioskOrderStatus]

__all__ = [
    "CancellationReasonRequired",
    "DailyStats",
    "InvalidStatusError",
    "OrderStateError",
    "OrderStateMachine",
    "TerminalStatusError",
    "TransitionResult",
    "compute_daily_stats",
    "default_status_note",
    "next_status",
]


class OrderStateError(ValidationError):
    """Error raised when a state transition is invalid."""

    def __init__(
        self,
        message: str,
        current_status: AnyStatus | None = None,
        target_status: AnyStatus | None = None,
    ):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status


class TerminalStatusError(OrderStateError):
    """The order is already completed or cancelled."""


class CancellationReasonRequired(OrderStateError):
    """A cancel request arrived without a reason code."""


def next_status(current, order_type) -> OnlineOrderStatus | None:
    """
    Single legal "advance" step for an online order, or None when terminal.

    ``ready`` branches on the order type: delivery orders go out for
    delivery, pickup orders complete directly. There is no skip-ahead.
    """
    current = parse_online_status(current)
    if current in TERMINAL_ONLINE_STATUSES:
        return None
    if current == OnlineOrderStatus.READY:
        if parse_order_type(order_type) == OrderType.DELIVERY:
            return OnlineOrderStatus.OUT_FOR_DELIVERY
        return OnlineOrderStatus.COMPLETED
    return ONLINE_NEXT_STATUS.get(current)


def default_status_note(status: AnyStatus) -> str:
    return f"Status changed to {status.value}"


@dataclass
class TransitionResult:
    """Outcome of a transition: what to persist and what to append."""

    order: AnyOrder
    patch: dict[str, Any] = field(default_factory=dict)
    history: StatusHistoryEntry | None = None

    @property
    def changed(self) -> bool:
        return bool(self.patch)


class OrderStateMachine:
    """
    Transition rules for online and kiosk orders.

    Responsibilities:
    - Validate the target against the vocabulary of the order kind
    - Reject transitions out of terminal statuses and skip-aheads
    - Apply per-target side effects (cancellation metadata, payment method)
    - Build the history row for the committed change
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._transition_handlers: dict[
            tuple[OrderSource, AnyStatus], Callable[[AnyOrder, dict[str, Any], dict], None]
        ] = {}
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Per-target side effects, keyed by order source and target status."""
        self._transition_handlers[(OrderSource.ONLINE, OnlineOrderStatus.CANCELLED)] = (
            self._handle_cancel
        )
        self._transition_handlers[(OrderSource.KIOSK, KioskOrderStatus.CANCELLED)] = (
            self._handle_cancel
        )
        self._transition_handlers[(OrderSource.KIOSK, KioskOrderStatus.PAYMENT_RECEIVED)] = (
            self._handle_payment_received
        )

    def parse_target(self, order: AnyOrder, status) -> AnyStatus:
        if order.source == OrderSource.KIOSK:
            return parse_kiosk_status(status)
        return parse_online_status(status)

    def allowed_targets(self, order: AnyOrder) -> set[AnyStatus]:
        """Statuses reachable from the order's current status."""
        if order.source == OrderSource.KIOSK:
            return set(KIOSK_TRANSITIONS.get(order.status, set()))

        if order.status in TERMINAL_ONLINE_STATUSES:
            return set()
        targets: set[AnyStatus] = {OnlineOrderStatus.CANCELLED}
        advance = next_status(order.status, order.order_type)
        if advance is not None:
            targets.add(advance)
        return targets

    def is_terminal(self, order: AnyOrder) -> bool:
        if order.source == OrderSource.KIOSK:
            return order.status in TERMINAL_KIOSK_STATUSES
        return order.status in TERMINAL_ONLINE_STATUSES

    def validate_transition(
        self, order: AnyOrder, status, cancellation_reason: str | None = None
    ) -> AnyStatus:
        """Check the requested status against the order and return it parsed."""
        target = self.parse_target(order, status)

        if target == order.status:
            return target

        if self.is_terminal(order):
            raise TerminalStatusError(
                f"Order {order.id} is already {order.status.value}",
                order.status,
                target,
            )

        if target not in self.allowed_targets(order):
            raise OrderStateError(
                f"Invalid transition: {order.status.value} -> {target.value}",
                order.status,
                target,
            )

        if target.value == OnlineOrderStatus.CANCELLED.value:
            try:
                validate_cancellation_reason(cancellation_reason)
            except ValidationError as exc:
                raise CancellationReasonRequired(str(exc), order.status, target) from exc

        return target

    def apply_transition(
        self,
        order: AnyOrder,
        new_status,
        note: str | None = None,
        cancellation_reason: str | None = None,
        cancellation_notes: str | None = None,
        actor_id: str | None = None,
    ) -> TransitionResult:
        """
        Validate and apply a status change without touching the input order.

        Requesting the status the order already has is a no-op (empty patch,
        no history row) so that retried requests stay safe.
        """
        target = self.validate_transition(order, new_status, cancellation_reason)

        if target == order.status:
            logger.warning(
                "Order %s already in status %s; transition skipped", order.id, target.value
            )
            return TransitionResult(order=order)

        now = self._clock()
        patch: dict[str, Any] = {"status": target.value, "updated_at": to_iso(now)}
        options = {
            "note": note,
            "cancellation_reason": cancellation_reason,
            "cancellation_notes": cancellation_notes,
        }

        handler = self._transition_handlers.get((order.source, target))
        if handler:
            handler(order, patch, options)
        if note:
            patch["notes"] = note

        updated = replace(
            order,
            status=target,
            updated_at=now,
            **{key: value for key, value in patch.items() if key not in {"status", "updated_at"}},
        )
        history = StatusHistoryEntry(
            order_id=order.id,
            previous_status=order.status.value,
            new_status=target.value,
            changed_by=actor_id,
            notes=note or default_status_note(target),
            created_at=now,
        )
        updated.history = [*order.history, history]
        return TransitionResult(order=updated, patch=patch, history=history)

    def mark_kiosk_complete(self, order: KioskOrder) -> TransitionResult:
        """
        Set ``completed_at`` on a paid kiosk order; status stays payment_received.

        Calling it on an unpaid or already completed order is a logged no-op,
        so the cashier's "Mark Complete" action can be retried.
        """
        if order.source != OrderSource.KIOSK:
            raise ValidationError("Only kiosk orders can be marked complete")

        if order.status != KioskOrderStatus.PAYMENT_RECEIVED:
            logger.warning(
                "Kiosk order %s not marked complete: status is %s", order.id, order.status.value
            )
            return TransitionResult(order=order)

        if order.completed_at is not None:
            logger.warning(
                "Kiosk order %s already completed at %s", order.id, order.completed_at.isoformat()
            )
            return TransitionResult(order=order)

        now = self._clock()
        patch = {"completed_at": to_iso(now), "updated_at": to_iso(now)}
        return TransitionResult(order=replace(order, completed_at=now, updated_at=now), patch=patch)

    def _handle_cancel(self, order: AnyOrder, patch: dict[str, Any], options: dict) -> None:
        """Record the reason code and optional notes."""
        patch["cancellation_reason"] = validate_cancellation_reason(options["cancellation_reason"])
        if options.get("cancellation_notes"):
            patch["cancellation_notes"] = options["cancellation_notes"]

    def _handle_payment_received(
        self, order: AnyOrder, patch: dict[str, Any], options: dict
    ) -> None:
        # Cashier confirmations without a note are cash payments.
        if not options.get("note") and not order.payment_method:
            patch["payment_method"] = PaymentMethod.CASH.value


@dataclass
class DailyStats:
    date: str
    total_orders: int
    total_sales: Decimal
    by_status: dict[str, int]

    def count(self, status: AnyStatus | str) -> int:
        key = status.value if hasattr(status, "value") else status
        return self.by_status.get(key, 0)

    @property
    def pending_orders(self) -> int:
        return self.count(OnlineOrderStatus.PENDING)

    @property
    def pending_payment_orders(self) -> int:
        return self.count(OnlineOrderStatus.PENDING_PAYMENT)

    @property
    def preparing_orders(self) -> int:
        return self.count(OnlineOrderStatus.PREPARING)

    @property
    def ready_orders(self) -> int:
        return self.count(OnlineOrderStatus.READY)

    @property
    def out_for_delivery_orders(self) -> int:
        return self.count(OnlineOrderStatus.OUT_FOR_DELIVERY)

    @property
    def completed_orders(self) -> int:
        return self.count(OnlineOrderStatus.COMPLETED)

    @property
    def cancelled_orders(self) -> int:
        return self.count(OnlineOrderStatus.CANCELLED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "total_orders": self.total_orders,
            "total_sales": float(self.total_sales),
            "pending_orders": self.pending_orders,
            "pending_payment_orders": self.pending_payment_orders,
            "preparing_orders": self.preparing_orders,
            "ready_orders": self.ready_orders,
            "out_for_delivery_orders": self.out_for_delivery_orders,
            "completed_orders": self.completed_orders,
            "cancelled_orders": self.cancelled_orders,
            "by_status": dict(self.by_status),
        }


def compute_daily_stats(
    orders: Iterable[AnyOrder],
    business_tz: ZoneInfo | str,
    now: datetime | None = None,
) -> DailyStats:
    """
    Today's counts per status and revenue, with "today" taken in the business
    time zone. Cancelled orders are counted but never contribute revenue.
    """
    if isinstance(business_tz, str):
        business_tz = ZoneInfo(business_tz)
    today = business_date(now or utcnow(), business_tz)

    todays = [order for order in orders if business_date(order.created_at, business_tz) == today]
    by_status = Counter(order.status.value for order in todays)
    total_sales = sum(
        (
            order.total_amount
            for order in todays
            if order.status.value != OnlineOrderStatus.CANCELLED.value
        ),
        Decimal("0"),
    )
    return DailyStats(
        date=today.isoformat(),
        total_orders=len(todays),
        total_sales=total_sales,
        by_status=dict(by_status),
    )
