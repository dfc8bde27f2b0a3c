"""Unit tests for the kernel error hierarchy."""
from __future__ import annotations

import json

import pytest

from tagcache.kernel.errors import (
    ApplicationError,
    BackingStoreUnavailableError,
    BaseError,
    ComputeError,
    InfrastructureError,
    SerializationError,
    TimeoutError as AppTimeoutError,
)


# ---------------------------------------------------------------------------
# BaseError
# ---------------------------------------------------------------------------


class TestBaseError:
    def test_default_code(self) -> None:
        err = BaseError("boom")
        assert err.code == "base_error"
        assert err.message == "boom"
        assert err.detail == {}

    def test_explicit_code_and_detail(self) -> None:
        err = BaseError("boom", code="custom", detail={"k": 1})
        assert err.code == "custom"
        assert err.detail == {"k": 1}

    def test_cause_is_chained(self) -> None:
        original = RuntimeError("root")
        err = BaseError("wrapped", cause=original)
        assert err.cause is original
        assert err.__cause__ is original

    def test_str_is_json(self) -> None:
        err = BaseError("boom", detail={"key": "a"})
        payload = json.loads(str(err))
        assert payload == {"code": "base_error", "message": "boom", "detail": {"key": "a"}}

    def test_to_dict_includes_cause_repr(self) -> None:
        err = BaseError("boom", cause=ValueError("bad"))
        assert err.to_dict()["cause"] == "ValueError('bad')"

    def test_repr(self) -> None:
        assert repr(BaseError("boom")) == "BaseError(code='base_error', message='boom')"


# ---------------------------------------------------------------------------
# Application errors
# ---------------------------------------------------------------------------


class TestApplicationErrors:
    def test_compute_error_carries_key(self) -> None:
        err = ComputeError("dest:1", cause=KeyError("x"))
        assert err.key == "dest:1"
        assert err.code == "compute_error"
        assert "dest:1" in err.message
        assert isinstance(err, ApplicationError)

    def test_compute_error_custom_message(self) -> None:
        err = ComputeError("k", "loader exploded")
        assert err.message == "loader exploded"

    def test_timeout_error_code(self) -> None:
        err = AppTimeoutError("too slow")
        assert err.code == "timeout"
        assert isinstance(err, ApplicationError)

    def test_timeout_error_is_not_builtin_timeout(self) -> None:
        assert not issubclass(AppTimeoutError, OSError)


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------


class TestInfrastructureErrors:
    def test_backing_store_default_message(self) -> None:
        err = BackingStoreUnavailableError("redis")
        assert err.backend == "redis"
        assert err.message == "Cache backend 'redis' is unavailable"
        assert err.code == "backing_store_unavailable"
        assert isinstance(err, InfrastructureError)

    def test_serialization_error_payload_type(self) -> None:
        err = SerializationError("cannot encode", payload_type="set")
        assert err.payload_type == "set"
        assert err.code == "serialization_error"
        assert isinstance(err, InfrastructureError)

    def test_infrastructure_errors_are_not_application_errors(self) -> None:
        with pytest.raises(InfrastructureError):
            raise BackingStoreUnavailableError("memory")
        assert not issubclass(InfrastructureError, ApplicationError)


class TestLogFields:
    def test_minimal(self) -> None:
        assert BaseError("boom").log_fields() == {"code": "base_error", "error": "boom"}

    def test_with_detail_and_cause(self) -> None:
        err = BackingStoreUnavailableError(
            "redis", "Redis get failed", detail={"operation": "get"}, cause=ConnectionError("refused")
        )
        assert err.log_fields() == {
            "code": "backing_store_unavailable",
            "error": "Redis get failed",
            "detail": {"operation": "get"},
            "cause": "ConnectionError",
        }
