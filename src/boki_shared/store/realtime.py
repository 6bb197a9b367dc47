"""
Change feed for table writes.

Events tell subscribers that a table changed so they can re-fetch; the
record carried in the event is informational and never authoritative.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable

from boki_shared.datetime_utils import utcnow
from boki_shared.logging_config import get_logger

logger = get_logger(__name__)

CHANGE_EVENT_TYPES = {"INSERT", "UPDATE", "DELETE"}


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    record: dict[str, Any]
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False)
class Subscription:
    table: str
    events: frozenset[str]
    callback: Callable[[ChangeEvent], None]
    _manager: RealtimeManager | None = field(default=None, repr=False)

    def matches(self, event: ChangeEvent) -> bool:
        if self.table not in {"*", event.table}:
            return False
        return "*" in self.events or event.event_type in self.events

    def unsubscribe(self) -> None:
        if self._manager is not None:
            self._manager.remove(self)
            self._manager = None


class RealtimeManager:
    """
    In-process publish/subscribe hub for table change events.

    Delivery is synchronous. A failing subscriber is logged and skipped; it
    never aborts the write that published the event.
    """

    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        callback: Callable[[ChangeEvent], None],
        events: Iterable[str] = ("*",),
    ) -> Subscription:
        normalized = frozenset(event.upper() if event != "*" else event for event in events)
        unknown = normalized - CHANGE_EVENT_TYPES - {"*"}
        if unknown:
            raise ValueError(f"Unknown change event types: {sorted(unknown)}")

        subscription = Subscription(table=table, events=normalized, callback=callback, _manager=self)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("Subscribed to %s events on %s", sorted(normalized), table)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, table: str, event_type: str, record: dict[str, Any]) -> int:
        """Dispatch an event and return how many subscribers received it."""
        event = ChangeEvent(table=table, event_type=event_type.upper(), record=dict(record))
        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.matches(event)]

        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(event)
                delivered += 1
            except Exception as exc:
                logger.error(
                    "Change feed subscriber failed for %s %s: %s",
                    event.event_type,
                    table,
                    exc,
                    exc_info=True,
                )
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
