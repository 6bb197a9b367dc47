"""
Request-scoped helpers shared by the API blueprints.
"""

from __future__ import annotations

from typing import Any

from flask import current_app, g, request

from boki_shared.constants import RPC_SET_USER_CONTEXT
from boki_shared.logging_config import get_logger
from boki_shared.store.base import RpcNotAvailableError

logger = get_logger(__name__)

ACTOR_HEADER = "X-Actor-Id"


def get_service(name: str) -> Any:
    """Look up a service wired by ``create_app``."""
    return current_app.extensions["boki"][name]


def get_actor_id() -> str | None:
    """Id of the admin or cashier making the request, if the caller sent one."""
    actor_id = (request.headers.get(ACTOR_HEADER) or "").strip()
    return actor_id or None


def set_user_context() -> None:
    """
    Tell the hosted database who is acting so row-level policies apply.

    Runs before every request that carries an actor id. Stores without the
    ``set_user_context`` procedure are skipped.
    """
    actor_id = get_actor_id()
    g.actor_id = actor_id
    if not actor_id:
        return
    store = get_service("store")
    try:
        store.rpc(RPC_SET_USER_CONTEXT, {"user_id": actor_id, "user_role": "admin"})
    except RpcNotAvailableError:
        logger.debug("RPC %s not available; skipping user context", RPC_SET_USER_CONTEXT)
