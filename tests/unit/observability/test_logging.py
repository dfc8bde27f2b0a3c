"""Unit tests for observability logging."""
from __future__ import annotations

import json
import logging

import pytest
import structlog

from tagcache.observability.logging import (
    CacheKeyTruncator,
    JsonLoggerFactory,
    Logger,
    ServiceNameProcessor,
    get_logger,
)


@pytest.fixture(autouse=True)
def _reset_structlog():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestGetLogger:
    def test_satisfies_logger_protocol(self) -> None:
        log: Logger = get_logger(__name__)
        for method in ("debug", "info", "warning", "error", "exception"):
            assert callable(getattr(log, method))

    def test_binds_initial_values(self) -> None:
        with structlog.testing.capture_logs() as captured:
            get_logger(__name__, component="cache").info("cache_cleared", backend="memory")
        assert captured == [
            {"component": "cache", "backend": "memory", "event": "cache_cleared", "log_level": "info"}
        ]


class TestJsonLoggerFactory:
    def test_configure_renders_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        JsonLoggerFactory.configure(logging.DEBUG)
        get_logger("tagcache.test").warning("cache_operation_degraded", operation="get")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "cache_operation_degraded"
        assert payload["operation"] == "get"
        assert payload["level"] == "warning"
        assert payload["logger"] == "tagcache.test"
        assert "timestamp" in payload

    def test_configure_sets_root_level(self) -> None:
        JsonLoggerFactory.configure(logging.ERROR)
        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1

    def test_configure_stamps_service_and_truncates_keys(self, capsys: pytest.CaptureFixture[str]) -> None:
        JsonLoggerFactory.configure(service="catalog-api", max_key_length=10)
        get_logger("tagcache.test").info("cache_hit", key="api:/destinations?page=1")
        payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert payload["service"] == "catalog-api"
        assert payload["key"] == "api:/desti..."
        assert payload["key_length"] == 24


class TestProcessors:
    def test_service_name_does_not_override_explicit_field(self) -> None:
        proc = ServiceNameProcessor("tagcache")
        assert proc(None, "info", {"event": "x"}) == {"event": "x", "service": "tagcache"}
        assert proc(None, "info", {"service": "other"})["service"] == "other"

    def test_short_key_untouched(self) -> None:
        event = {"event": "cache_miss", "key": "cache:faqs"}
        assert CacheKeyTruncator(50)(None, "info", dict(event)) == event

    def test_truncates_key_list(self) -> None:
        out = CacheKeyTruncator(4)(None, "info", {"keys": ["abcdef", "ab"]})
        assert out["keys"] == ["abcd...", "ab"]
        assert "key_length" not in out
