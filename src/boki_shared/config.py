"""
Utilities to centralize configuration handling across the BOKI services.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

STORE_BACKENDS = {"supabase", "memory"}


@dataclass
class AppConfig:
    """Simple container for application level settings."""

    app_name: str
    # Supabase
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str
    store_backend: str
    # Business settings
    business_timezone: str
    restaurant_name: str
    currency_code: str
    # Reports
    report_top_items_limit: int
    report_daily_window_days: int
    # App settings
    log_level: str
    debug_mode: bool

    def get_bool(self, key: str, default: bool = False) -> bool:
        """
        Get boolean config value from AppConfig.

        Args:
            key: Configuration key (e.g., 'debug_mode')
            default: Default value if not set (defaults to False)

        Returns:
            bool: Configuration value
        """
        value = getattr(self, key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @property
    def tzinfo(self) -> ZoneInfo:
        """Business time zone used for every day boundary."""
        return ZoneInfo(self.business_timezone)

    @property
    def supabase_key(self) -> str:
        """
        Key used by the back-office client.

        The service role key bypasses row-level security, so it wins over the
        anon key whenever both are configured.
        """
        return self.supabase_service_role_key or self.supabase_anon_key


def _read_env(name: str, default: str | None = None) -> str:
    """
    Internal helper to fetch environment variables with support for defaults.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"BUSINESS_TIMEZONE '{name}' is not a known time zone") from exc
    return name


def validate_required_env_vars() -> None:
    """
    Validate that the variables needed by the selected store backend are set.

    Fails fast during startup rather than on the first store call.

    Raises:
        RuntimeError: If any required variable is missing or has an invalid value
    """
    errors = []

    backend = os.getenv("STORE_BACKEND", "supabase").strip().lower()
    if backend not in STORE_BACKENDS:
        errors.append(
            f"STORE_BACKEND must be one of {', '.join(sorted(STORE_BACKENDS))}, got: {backend}"
        )

    if backend == "supabase":
        if not os.getenv("SUPABASE_URL", ""):
            errors.append("SUPABASE_URL must be configured")
        if not (os.getenv("SUPABASE_SERVICE_ROLE_KEY", "") or os.getenv("SUPABASE_ANON_KEY", "")):
            errors.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY must be configured")

    for name in ("REPORT_TOP_ITEMS_LIMIT", "REPORT_DAILY_WINDOW_DAYS"):
        raw = os.getenv(name, "")
        if raw:
            try:
                if int(raw) < 1:
                    errors.append(f"{name} must be a positive integer, got: {raw}")
            except ValueError:
                errors.append(f"{name} must be a valid integer, got: {raw}")

    if errors:
        error_msg = "\nConfiguration Errors - Missing or invalid environment variables:\n"
        for error in errors:
            error_msg += f"  - {error}\n"
        raise RuntimeError(error_msg)


def load_config(app_name: str) -> AppConfig:
    """
    Produce an AppConfig instance populated from environment variables.

    Each service passes its desired `app_name` to keep logs easy to
    differentiate while still reusing the same config loader.

    Set STORE_BACKEND=memory to run against the in-memory row store.
    """
    return AppConfig(
        app_name=app_name,
        # Supabase
        supabase_url=_read_env("SUPABASE_URL", ""),
        supabase_anon_key=_read_env("SUPABASE_ANON_KEY", ""),
        supabase_service_role_key=_read_env("SUPABASE_SERVICE_ROLE_KEY", ""),
        store_backend=_read_env("STORE_BACKEND", "supabase").strip().lower(),
        # Business settings
        business_timezone=_validate_timezone(_read_env("BUSINESS_TIMEZONE", "Asia/Manila")),
        restaurant_name=_read_env("RESTAURANT_NAME", "BOKI Restaurant"),
        currency_code=_read_env("CURRENCY_CODE", "PHP"),
        # Reports
        report_top_items_limit=int(_read_env("REPORT_TOP_ITEMS_LIMIT", "5")),
        report_daily_window_days=int(_read_env("REPORT_DAILY_WINDOW_DAYS", "7")),
        # App settings
        log_level=_read_env("LOG_LEVEL", "INFO"),
        debug_mode=read_bool("DEBUG_MODE", "false"),
    )
