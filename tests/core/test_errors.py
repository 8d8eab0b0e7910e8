"""Tests for actionruntime.core.errors."""

from __future__ import annotations

import pytest

from actionruntime.core.errors import (
    ActionCancelledError,
    ActionRuntimeError,
    ActionTimeoutError,
    DriverError,
    ErrorCategory,
    OptionsValidationError,
    ResultTooLargeError,
    TemplateEncodingError,
    UnknownAdapterError,
    UnsupportedOperationError,
    categorize_error,
    http_status_for,
)


class TestCategories:
    @pytest.mark.parametrize(
        ("error", "category", "status"),
        [
            (OptionsValidationError("bad"), ErrorCategory.VALIDATION, 400),
            (UnknownAdapterError("nosuch"), ErrorCategory.UNKNOWN_ADAPTER, 400),
            (TemplateEncodingError("k", object()), ErrorCategory.TEMPLATE_ENCODING, 400),
            (DriverError("down"), ErrorCategory.DRIVER, 400),
            (ActionTimeoutError(30.0), ErrorCategory.TIMEOUT, 504),
            (ActionCancelledError(), ErrorCategory.CANCELLED, 499),
            (ActionRuntimeError("internal"), ErrorCategory.INTERNAL, 500),
        ],
    )
    def test_category_and_status(self, error: ActionRuntimeError, category: ErrorCategory, status: int) -> None:
        assert error.category is category
        assert categorize_error(error) is category
        assert http_status_for(error) == status

    def test_foreign_exception_is_internal(self) -> None:
        assert categorize_error(KeyError("x")) is ErrorCategory.INTERNAL
        assert http_status_for(KeyError("x")) == 500

    def test_driver_subclasses(self) -> None:
        assert isinstance(UnsupportedOperationError("aiagent", "get_meta_info"), DriverError)
        assert isinstance(ResultTooLargeError(1024), DriverError)


class TestMessages:
    def test_unknown_adapter_message(self) -> None:
        assert UnknownAdapterError("nosuch").message == "unknown action type: nosuch"

    def test_timeout_message(self) -> None:
        error = ActionTimeoutError(30.0, 30.5, "postgresql.run")
        assert error.message == "postgresql.run timed out after 30.0s (ran for 30.50s)"

    def test_unsupported_message(self) -> None:
        assert UnsupportedOperationError("aiagent", "get_meta_info").message == (
            "aiagent does not support get_meta_info"
        )

    def test_template_error_names_key(self) -> None:
        error = TemplateEncodingError("price", object())
        assert "'price'" in error.message
        assert "object" in error.message


class TestContext:
    def test_with_context_is_fluent(self) -> None:
        error = DriverError("down").with_context(action_type="mysql", resource_id="res-1", attempt=2)
        assert error.context.action_type == "mysql"
        assert error.context.resource_id == "res-1"
        assert error.context.metadata == {"attempt": 2}

    def test_to_dict(self) -> None:
        cause = ConnectionRefusedError("refused")
        error = DriverError("postgresql query failed", cause=cause).with_context(action_type="postgresql")
        assert error.__cause__ is cause
        assert error.to_dict() == {
            "error_type": "DriverError",
            "message": "postgresql query failed",
            "category": "DRIVER",
            "http_status": 400,
            "context": {"action_type": "postgresql"},
            "cause": "refused",
        }

    def test_validation_errors_in_dict(self) -> None:
        error = OptionsValidationError("invalid", errors=[{"loc": ["host"]}])
        assert error.to_dict()["errors"] == [{"loc": ["host"]}]

    def test_empty_context_omitted(self) -> None:
        assert "context" not in ActionRuntimeError("x").to_dict()
