"""
Structured error types for the action runtime.

Every failure the runtime can surface is one of six kinds. Each kind is a
typed exception carrying a category, an HTTP status hint for the hosting
service, structured context, and the chained driver exception.

Manifesto:
    - **Typed failure kinds:** One class per failure kind, never bare Exception
    - **Envelope-friendly:** ``message`` is what lands in ``extra["message"]``
    - **Rich Context:** Errors carry action type, resource and execution ids
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                    ActionRuntimeError                            │
        │            (category, http_status, context, cause)               │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  OptionsValidationError   UnknownAdapterError                    │
        │  (VALIDATION, 400)        (UNKNOWN_ADAPTER, 400)                 │
        │                                                                  │
        │  TemplateEncodingError    DriverError                            │
        │  (TEMPLATE_ENCODING, 400) (DRIVER, 400)                          │
        │                                │                                 │
        │                   UnsupportedOperationError                      │
        │                   ResultTooLargeError                            │
        │                                                                  │
        │  ActionTimeoutError       ActionCancelledError                   │
        │  (TIMEOUT, 504)           (CANCELLED, 499)                       │
        └─────────────────────────────────────────────────────────────────┘

Propagation:
    Validation, unknown-adapter, driver, timeout and cancellation failures
    are turned into unsuccessful envelopes by the dispatcher.
    ``TemplateEncodingError`` aborts the invocation and is raised.

Examples:
    >>> try:
    ...     raise ConnectionRefusedError("connection refused")
    ... except ConnectionRefusedError as e:
    ...     err = DriverError("postgresql query failed", cause=e)
    >>> err.category
    <ErrorCategory.DRIVER: 'DRIVER'>
    >>> err.http_status
    400

Tags:
    error-handling, exception-hierarchy, error-context, action-runtime
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Failure kinds surfaced by the runtime.

    The string value is stable and is what ``to_dict()`` reports, so hosting
    services can route on it.
    """

    VALIDATION = "VALIDATION"
    UNKNOWN_ADAPTER = "UNKNOWN_ADAPTER"
    TEMPLATE_ENCODING = "TEMPLATE_ENCODING"
    DRIVER = "DRIVER"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a runtime error.

    Attributes:
        action_type: Adapter name of the failing invocation
        display_name: Display name of the action
        resource_id: Opaque resource reference, if any
        execution_id: Dispatcher execution identifier
        option: Option field that failed validation
        metadata: Additional key-value pairs
    """

    action_type: str | None = None
    display_name: str | None = None
    resource_id: str | None = None
    execution_id: str | None = None
    option: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["action_type", "display_name", "resource_id", "execution_id", "option"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ActionRuntimeError(Exception):
    """
    Base exception for all action runtime errors.

    Subclasses set ``default_category`` and ``http_status``. ``message`` is
    the human-readable text placed in an unsuccessful envelope's extras.

    Examples:
        >>> error = ActionRuntimeError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(action_type="mysql").context.action_type
        'mysql'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ActionRuntimeError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DriverError("query failed").with_context(
                action_type="postgresql", resource_id="res-1"
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "http_status": self.http_status,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CLIENT ERRORS (surfaced as 4xx)
# =============================================================================


class OptionsValidationError(ActionRuntimeError):
    """
    Resource or action options did not decode into the adapter's typed
    record, or violated a declared field constraint.
    """

    default_category = ErrorCategory.VALIDATION
    http_status = 400

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


class UnknownAdapterError(ActionRuntimeError):
    """The action type name is not in the registry."""

    default_category = ErrorCategory.UNKNOWN_ADAPTER
    http_status = 400

    def __init__(self, action_type: str | int, message: str | None = None):
        super().__init__(message or f"unknown action type: {action_type}")
        self.action_type = action_type


class TemplateEncodingError(ActionRuntimeError):
    """A context value could not be JSON-encoded during substitution."""

    default_category = ErrorCategory.TEMPLATE_ENCODING
    http_status = 400

    def __init__(self, key: str, value: Any, *, cause: BaseException | None = None):
        super().__init__(
            f"cannot encode value of type {type(value).__name__} for template key {key!r}",
            cause=cause,
        )
        self.key = key
        self.value = value


# =============================================================================
# DRIVER ERRORS
# =============================================================================


class DriverError(ActionRuntimeError):
    """The adapter's underlying transport reported an error."""

    default_category = ErrorCategory.DRIVER
    http_status = 400


class UnsupportedOperationError(DriverError):
    """The adapter does not implement the requested capability."""

    def __init__(self, action_type: str, operation: str):
        super().__init__(f"{action_type} does not support {operation}")
        self.operation = operation


class ResultTooLargeError(DriverError):
    """The retrieved rows exceed the configured result memory limit."""

    def __init__(self, limit_bytes: int):
        mib = limit_bytes // (1024 * 1024)
        super().__init__(
            f"returned result exceeds {mib}MiB, please adjust the query limit "
            "to reduce the number of results"
        )
        self.limit_bytes = limit_bytes


# =============================================================================
# DEADLINE ERRORS
# =============================================================================


class ActionTimeoutError(ActionRuntimeError):
    """The invocation's deadline fired."""

    default_category = ErrorCategory.TIMEOUT
    http_status = 504

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"{operation} timed out after {timeout}s"
        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"
        super().__init__(msg)


class ActionCancelledError(ActionRuntimeError):
    """An external cancellation signal arrived before the action finished."""

    default_category = ErrorCategory.CANCELLED
    http_status = 499

    def __init__(self, operation: str = "operation"):
        super().__init__(f"{operation} was cancelled")
        self.operation = operation


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, ActionRuntimeError):
        return error.category
    return ErrorCategory.INTERNAL


def http_status_for(error: BaseException) -> int:
    """HTTP status a hosting service should answer with for ``error``."""
    if isinstance(error, ActionRuntimeError):
        return error.http_status
    return 500


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ActionRuntimeError",
    "OptionsValidationError",
    "UnknownAdapterError",
    "TemplateEncodingError",
    "DriverError",
    "UnsupportedOperationError",
    "ResultTooLargeError",
    "ActionTimeoutError",
    "ActionCancelledError",
    "categorize_error",
    "http_status_for",
]
