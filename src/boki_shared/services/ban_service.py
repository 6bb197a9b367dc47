"""
Customer ban gate.

A customer is banned while an active ban row exists whose ``banned_until`` is
empty (permanent) or still in the future. Expiry is evaluated on every check;
nothing sweeps expired rows. Unbanning flips ``is_active`` and keeps the row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from boki_shared.constants import (
    BAN_REASON_LABELS,
    CUSTOMER_BANS_TABLE,
    RPC_IS_USER_BANNED,
    BanReason,
)
from boki_shared.datetime_utils import parse_timestamp, to_iso, utcnow
from boki_shared.logging_config import get_logger
from boki_shared.models import BanRecord
from boki_shared.store.base import RowStore, RpcNotAvailableError
from boki_shared.validation import ValidationError, validate_ban_request

logger = get_logger(__name__)


def is_banned(ban: BanRecord | None, now: datetime) -> bool:
    """True iff the record is active and has not expired at ``now``."""
    if ban is None or not ban.is_active:
        return False
    return ban.banned_until is None or ban.banned_until > now


def ban_state(ban: BanRecord, now: datetime) -> str:
    """History label for a ban row: active, expired or lifted."""
    if not ban.is_active:
        return "lifted"
    if is_banned(ban, now):
        return "active"
    return "expired"


def ban_reason_label(ban_reason: str, custom_reason: str | None = None) -> str:
    if ban_reason == BanReason.OTHER.value and custom_reason:
        return custom_reason
    return BAN_REASON_LABELS.get(ban_reason, ban_reason)


def ban_message(ban_reason: str, custom_reason: str | None, banned_until: datetime | None) -> str:
    reason = ban_reason_label(ban_reason, custom_reason)
    if banned_until is None:
        return f"Your account has been permanently suspended. Reason: {reason}"
    return (
        f"Your account has been suspended until {banned_until.strftime('%Y-%m-%d %H:%M UTC')}. "
        f"Reason: {reason}"
    )


@dataclass
class BanStatus:
    is_banned: bool
    ban_reason: str | None = None
    custom_reason: str | None = None
    banned_until: datetime | None = None
    ban_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_banned": self.is_banned,
            "ban_reason": self.ban_reason,
            "custom_reason": self.custom_reason,
            "banned_until": to_iso(self.banned_until),
            "ban_message": self.ban_message,
        }

    @classmethod
    def from_ban(cls, ban: BanRecord | None, now: datetime) -> BanStatus:
        if not is_banned(ban, now):
            return cls(is_banned=False)
        return cls(
            is_banned=True,
            ban_reason=ban.ban_reason,
            custom_reason=ban.custom_reason,
            banned_until=ban.banned_until,
            ban_message=ban_message(ban.ban_reason, ban.custom_reason, ban.banned_until),
        )


class CustomerBannedError(ValidationError):
    """The customer is blocked from placing orders."""

    def __init__(self, user_id: str, status: BanStatus):
        super().__init__(status.ban_message or f"Customer {user_id} is banned")
        self.user_id = user_id
        self.status = status


class BanService:
    """Ban, unban and check customers against the ``customer_bans`` table."""

    def __init__(self, store: RowStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock

    def _rows(self, user_id: str, active_only: bool = False) -> list[BanRecord]:
        filters = [("user_id", "eq", user_id)]
        if active_only:
            filters.append(("is_active", "eq", True))
        rows = self.store.select(
            CUSTOMER_BANS_TABLE, filters, order_by="banned_at", descending=True
        )
        return [BanRecord.from_row(row) for row in rows]

    def _deactivate(self, bans: list[BanRecord], actor_id: str | None, now: datetime) -> int:
        for ban in bans:
            patch = {"is_active": False, "updated_at": to_iso(now)}
            if actor_id:
                patch["unbanned_by"] = actor_id
            self.store.update(CUSTOMER_BANS_TABLE, ban.id, patch)
        return len(bans)

    def ban_customer(
        self,
        user_id: str,
        banned_by: str | None,
        ban_reason: str,
        custom_reason: str | None = None,
        duration_days: int | None = None,
        notes: str | None = None,
    ) -> BanRecord:
        """
        Create a new active ban row.

        Any ban still flagged active is deactivated first, so a customer never
        has more than one active row. ``duration_days=None`` bans permanently.
        """
        validate_ban_request(ban_reason, custom_reason, duration_days)
        now = self._clock()

        replaced = self._deactivate(self._rows(user_id, active_only=True), banned_by, now)
        if replaced:
            logger.info("Replaced %s active ban(s) for customer %s", replaced, user_id)

        ban = BanRecord(
            user_id=user_id,
            ban_reason=ban_reason,
            custom_reason=custom_reason.strip()
            if ban_reason == BanReason.OTHER.value and custom_reason
            else None,
            banned_at=now,
            banned_by=banned_by,
            banned_until=now + timedelta(days=duration_days) if duration_days else None,
            is_active=True,
            notes=notes or None,
        )
        row = self.store.insert(CUSTOMER_BANS_TABLE, ban.to_row())
        logger.info(
            "Customer %s banned by %s (%s, %s)",
            user_id,
            banned_by,
            ban_reason,
            f"{duration_days} days" if duration_days else "permanent",
        )
        return BanRecord.from_row(row)

    def unban_customer(self, user_id: str, unbanned_by: str | None = None) -> int:
        """Deactivate every active ban row of the customer; returns how many."""
        active = self._rows(user_id, active_only=True)
        if not active:
            raise ValidationError(f"Customer {user_id} has no active ban")
        count = self._deactivate(active, unbanned_by, self._clock())
        logger.info("Customer %s unbanned by %s", user_id, unbanned_by)
        return count

    def get_active_ban(self, user_id: str) -> BanRecord | None:
        now = self._clock()
        for ban in self._rows(user_id, active_only=True):
            if is_banned(ban, now):
                return ban
        return None

    def check_ban_status(self, user_id: str) -> BanStatus:
        """
        Ask the server whether the customer is banned.

        The ``is_user_banned`` RPC is authoritative because it uses the server
        clock. Rows are evaluated locally only when that RPC is not deployed;
        store failures propagate.
        """
        try:
            result = self.store.rpc(RPC_IS_USER_BANNED, {"p_user_id": user_id})
        except RpcNotAvailableError:
            logger.warning("RPC %s unavailable; evaluating ban rows locally", RPC_IS_USER_BANNED)
            return BanStatus.from_ban(self.get_active_ban(user_id), self._clock())

        if isinstance(result, list):
            result = result[0] if result else None
        if isinstance(result, bool):
            return BanStatus(is_banned=result)
        if not result or not result.get("is_banned"):
            return BanStatus(is_banned=False)

        banned_until = parse_timestamp(result.get("banned_until"))
        return BanStatus(
            is_banned=True,
            ban_reason=result.get("ban_reason"),
            custom_reason=result.get("custom_reason"),
            banned_until=banned_until,
            ban_message=result.get("ban_message")
            or ban_message(result.get("ban_reason") or "", result.get("custom_reason"), banned_until),
        )

    def ensure_not_banned(self, user_id: str | None) -> None:
        """Raise CustomerBannedError when the customer may not transact."""
        if not user_id:
            return
        status = self.check_ban_status(user_id)
        if status.is_banned:
            logger.warning("Blocked order attempt from banned customer %s", user_id)
            raise CustomerBannedError(user_id, status)

    def ban_history(self, user_id: str) -> list[dict[str, Any]]:
        """All ban rows of a customer, newest first, with a derived ``ban_status``."""
        now = self._clock()
        history = []
        for ban in self._rows(user_id):
            history.append(
                {
                    "id": ban.id,
                    "ban_reason": ban.ban_reason,
                    "ban_reason_label": ban_reason_label(ban.ban_reason, ban.custom_reason),
                    "custom_reason": ban.custom_reason,
                    "banned_at": to_iso(ban.banned_at),
                    "banned_by": ban.banned_by,
                    "banned_until": to_iso(ban.banned_until),
                    "is_active": ban.is_active,
                    "notes": ban.notes,
                    "ban_status": ban_state(ban, now),
                }
            )
        return history
