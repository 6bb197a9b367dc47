"""
Tests for environment configuration and logging setup.
"""

import json
import logging

import pytest

from boki_shared.config import load_config, validate_required_env_vars
from boki_shared.logging_config import configure_logging

ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "STORE_BACKEND",
    "BUSINESS_TIMEZONE",
    "RESTAURANT_NAME",
    "CURRENCY_CODE",
    "REPORT_TOP_ITEMS_LIMIT",
    "REPORT_DAILY_WINDOW_DAYS",
    "LOG_LEVEL",
    "DEBUG_MODE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_defaults(self):
        config = load_config("boki-admin")
        assert config.app_name == "boki-admin"
        assert config.store_backend == "supabase"
        assert config.business_timezone == "Asia/Manila"
        assert config.currency_code == "PHP"
        assert config.report_top_items_limit == 5
        assert config.report_daily_window_days == 7
        assert config.debug_mode is False

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "Memory")
        monkeypatch.setenv("DEBUG_MODE", "yes")
        monkeypatch.setenv("REPORT_TOP_ITEMS_LIMIT", "10")
        config = load_config("boki-admin")
        assert config.store_backend == "memory"
        assert config.get_bool("debug_mode") is True
        assert config.report_top_items_limit == 10

    def test_service_role_key_wins(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
        assert load_config("boki-admin").supabase_key == "service"

    def test_unknown_timezone(self, monkeypatch):
        monkeypatch.setenv("BUSINESS_TIMEZONE", "Mars/Olympus_Mons")
        with pytest.raises(RuntimeError, match="BUSINESS_TIMEZONE"):
            load_config("boki-admin")


class TestValidateRequiredEnvVars:
    def test_supabase_backend_needs_credentials(self):
        with pytest.raises(RuntimeError) as excinfo:
            validate_required_env_vars()
        assert "SUPABASE_URL" in str(excinfo.value)
        assert "SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY" in str(excinfo.value)

    def test_memory_backend_needs_nothing(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "memory")
        validate_required_env_vars()

    def test_invalid_report_limits(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "memory")
        monkeypatch.setenv("REPORT_DAILY_WINDOW_DAYS", "0")
        monkeypatch.setenv("REPORT_TOP_ITEMS_LIMIT", "many")
        with pytest.raises(RuntimeError) as excinfo:
            validate_required_env_vars()
        assert "REPORT_DAILY_WINDOW_DAYS must be a positive integer" in str(excinfo.value)
        assert "REPORT_TOP_ITEMS_LIMIT must be a valid integer" in str(excinfo.value)


class TestConfigureLogging:
    def test_json_lines_on_stdout(self, capsys):
        logger = configure_logging("boki-logging-test", "INFO")
        logger.info("ready", extra={"order_id": "order-1"})

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["message"] == "ready"
        assert record["level"] == "INFO"
        assert record["logger"] == "boki-logging-test"
        assert record["order_id"] == "order-1"

    def test_level_applies_to_package_loggers(self):
        configure_logging("boki-logging-level-test", "WARNING")
        assert logging.getLogger("boki_shared").level == logging.WARNING
        assert logging.getLogger("boki-logging-level-test").level == logging.WARNING
