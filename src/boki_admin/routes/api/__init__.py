"""
API blueprint: registers every back-office endpoint under ``/api``.
"""

from __future__ import annotations

from flask import Blueprint

from boki_admin.context import get_service
from boki_shared.constants import RPC_GET_SERVER_TIME
from boki_shared.datetime_utils import parse_timestamp, to_iso, utcnow
from boki_shared.store.base import RpcNotAvailableError

# Create main API blueprint
api_bp = Blueprint("api", __name__)

# Import sub-blueprints
from .customers import customers_bp  # noqa: E402
from .kiosk_orders import kiosk_orders_bp  # noqa: E402
from .orders import orders_bp  # noqa: E402
from .reports import reports_bp  # noqa: E402
from .sizes import sizes_bp  # noqa: E402

# Register all sub-blueprints
api_bp.register_blueprint(orders_bp)
api_bp.register_blueprint(kiosk_orders_bp)
api_bp.register_blueprint(reports_bp)
api_bp.register_blueprint(customers_bp)
api_bp.register_blueprint(sizes_bp)


@api_bp.get("/health")
def health():
    """
    Liveness check that also reports the clock the UI should trust.

    ``server_time`` comes from the database when the ``get_server_time``
    procedure exists, otherwise from this process.
    """
    store = get_service("store")
    clock_source = "database"
    try:
        server_time = parse_timestamp(store.rpc(RPC_GET_SERVER_TIME, {})) or utcnow()
    except RpcNotAvailableError:
        clock_source = "local"
        server_time = utcnow()
    return {
        "status": "ok",
        "service": get_service("config").app_name,
        "server_time": to_iso(server_time),
        "clock_source": clock_source,
    }, 200
