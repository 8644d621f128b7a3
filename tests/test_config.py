"""
Tests for settings parsing and logging configuration.
"""
import logging

import pytest
from pydantic import ValidationError

from multiswagger.core.config import Settings
from multiswagger.core.structured_logging import (
    StructuredFormatter,
    STRUCTURED_FORMAT,
    configure_logging,
    get_correlation_id,
    parse_level,
    reset_correlation_id,
    set_correlation_id,
)


class TestSettings:

    def test_defaults(self, monkeypatch):
        for var in ("NAMESPACE", "CONFIGMAP_NAME", "PORT", "SWAGGER_BASE_PATH", "WATCH_INTERVAL_SECONDS"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)
        assert settings.namespace == "default"
        assert settings.configmap_name == "openapi-specs"
        assert settings.port == 9090
        assert settings.base_path == ""
        assert settings.watch_interval_seconds == 10
        assert settings.allowed_proxy_hosts == ["*"]

    def test_environment_names(self, monkeypatch):
        monkeypatch.setenv("NAMESPACE", "shop")
        monkeypatch.setenv("CONFIGMAP_NAME", "shop-specs")
        monkeypatch.setenv("SWAGGER_BASE_PATH", "docs/")
        monkeypatch.setenv("PORT", "8081")
        monkeypatch.setenv("PROXY_ALLOWED_HOSTS", "Orders.Shop.svc, .internal")
        settings = Settings(_env_file=None)
        assert settings.namespace == "shop"
        assert settings.configmap_name == "shop-specs"
        assert settings.base_path == "/docs"
        assert settings.port == 8081
        assert settings.allowed_proxy_hosts == ["orders.shop.svc", ".internal"]

    @pytest.mark.parametrize("raw,expected", [
        ("", ""),
        ("/", ""),
        ("/swagger", "/swagger"),
        ("swagger/", "/swagger"),
        ("/a/b/", "/a/b"),
    ])
    def test_base_path_normalized(self, raw, expected):
        assert Settings(base_path=raw, _env_file=None).base_path == expected

    def test_invalid_port_rejected(self):
        with pytest.raises(ValidationError):
            Settings(port=0, _env_file=None)

    def test_invalid_interval_rejected(self):
        with pytest.raises(ValidationError):
            Settings(watch_interval_seconds=0, _env_file=None)


class TestLogging:

    @pytest.mark.parametrize("name,level", [
        ("debug", logging.DEBUG),
        ("TRACE", logging.DEBUG),
        ("warn", logging.WARNING),
        ("error", logging.ERROR),
        ("panic", logging.CRITICAL),
        ("verbose", logging.INFO),
        ("", logging.INFO),
        (None, logging.INFO),
    ])
    def test_parse_level(self, name, level):
        assert parse_level(name) == level

    def test_dev_mode_forces_debug(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            level = configure_logging(Settings(log_level="error", dev_mode=True, _env_file=None))
            assert level == logging.DEBUG
            assert root.level == logging.DEBUG
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)

    def test_formatter_includes_correlation_id(self):
        formatter = StructuredFormatter(STRUCTURED_FORMAT)
        record = logging.LogRecord("multiswagger.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)

        token = set_correlation_id("req-42")
        try:
            assert get_correlation_id() == "req-42"
            line = formatter.format(record)
        finally:
            reset_correlation_id(token)

        assert "[INFO] [req:req-42] [multiswagger.test] hello world" in line
        assert get_correlation_id() is None

    def test_formatter_without_request(self):
        formatter = StructuredFormatter(STRUCTURED_FORMAT)
        record = logging.LogRecord("multiswagger.test", logging.WARNING, __file__, 1, "idle", (), None)
        assert "[req:-]" in formatter.format(record)
