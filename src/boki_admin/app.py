"""
Factory for the BOKI back-office API.

Serves the admin dashboard and the cashier screen. Both front ends call the
same JSON endpoints under ``/api``.
"""

from __future__ import annotations

import os

from flask import Flask
from flask_cors import CORS

from boki_shared.config import AppConfig, load_config, validate_required_env_vars
from boki_shared.error_handlers import register_error_handlers
from boki_shared.logging_config import configure_logging, get_logger
from boki_shared.services.ban_service import BanService
from boki_shared.services.customer_service import CustomerService
from boki_shared.services.kiosk_order_service import KioskOrderService
from boki_shared.services.order_service import OrderService
from boki_shared.services.order_state_machine import OrderStateMachine
from boki_shared.services.report_service import ReportService
from boki_shared.services.size_service import SizeService
from boki_shared.store import RealtimeManager, RowStore, build_store

logger = get_logger(__name__)


def _build_services(config: AppConfig, store: RowStore, feed: RealtimeManager) -> dict:
    state_machine = OrderStateMachine()
    ban_service = BanService(store)
    order_service = OrderService(store, ban_service=ban_service, state_machine=state_machine)
    kiosk_order_service = KioskOrderService(store, state_machine=state_machine)
    return {
        "config": config,
        "store": store,
        "feed": feed,
        "ban_service": ban_service,
        "order_service": order_service,
        "kiosk_order_service": kiosk_order_service,
        "customer_service": CustomerService(store),
        "size_service": SizeService(store),
        "report_service": ReportService(
            store,
            business_tz=config.tzinfo,
            top_items_limit=config.report_top_items_limit,
            daily_window_days=config.report_daily_window_days,
            order_service=order_service,
            kiosk_order_service=kiosk_order_service,
        ),
    }


def create_app(config: AppConfig | None = None, store: RowStore | None = None) -> Flask:
    """
    Build the Flask application that powers the back-office API.

    Tests pass an explicit ``config`` and an in-memory ``store``; in
    production both come from the environment.
    """
    if config is None:
        # Validate all required environment variables (fail-fast)
        validate_required_env_vars()
        config = load_config("boki-admin")

    configure_logging(config.app_name, config.log_level)

    feed = RealtimeManager()
    if store is None:
        store = build_store(config, feed=feed)

    app = Flask(__name__)
    app.config["APP_NAME"] = config.app_name
    app.config["RESTAURANT_NAME"] = config.restaurant_name
    app.config["CURRENCY"] = config.currency_code
    app.config["BUSINESS_TIMEZONE"] = config.business_timezone
    app.config["DEBUG"] = config.debug_mode
    app.extensions["boki"] = _build_services(config, store, feed)

    register_error_handlers(app)

    from boki_admin.context import set_user_context
    from boki_admin.routes.api import api_bp

    app.before_request(set_user_context)
    app.register_blueprint(api_bp, url_prefix="/api")

    # Configure CORS with secure defaults
    allowed_origins = (
        os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if os.getenv("CORS_ALLOWED_ORIGINS")
        else []
    )
    if config.get_bool("debug_mode") or not allowed_origins:
        allowed_origins = [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins, "supports_credentials": True}},
        supports_credentials=True,
    )

    logger.info(
        "BOKI admin API ready (store=%s, timezone=%s)",
        config.store_backend,
        config.business_timezone,
    )
    return app
