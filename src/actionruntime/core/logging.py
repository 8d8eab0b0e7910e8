"""
Structured logging for the action runtime.

Every invocation is a short request/response cycle against an external
system, so one invocation's lines are correlated through contextvars
(``execution_id``, ``action_type``) bound by the dispatcher. Resource and
action options carry credentials; any event field named like a secret is
masked before rendering.

Processor chain::

    merge_contextvars ─► add_log_level ─► TimeStamper(iso)
        ─► redact_credentials ─► service.name
        ─► ECS field names + format_exc_info   (JSON only)
        ─► JSONRenderer | ConsoleRenderer

Level, renderer and service name come from ``RuntimeSettings``
(``ACTIONRUNTIME_LOG_LEVEL``, ``ACTIONRUNTIME_JSON_LOGS``,
``ACTIONRUNTIME_SERVICE_NAME``); keyword arguments override them.

Examples:
    >>> configure_logging()                       # from settings
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> async with LogContext(execution_id="abc", action_type="mysql"):
    ...     get_logger(__name__).info("action.submitted")

Tags:
    logging, structlog, observability, ecs, action-runtime
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from actionruntime.core.settings import RuntimeSettings, get_settings

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "databasepassword",
        "token",
        "bearer",
        "authorization",
        "requesttoken",
        "clientkey",
        "privatekey",
        "secret",
        "cookies",
    }
)


def _is_sensitive(key: object) -> bool:
    return isinstance(key, str) and key.replace("_", "").replace("-", "").lower() in SENSITIVE_KEYS


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: REDACTED if _is_sensitive(key) else _redact(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def redact_credentials(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential-named fields, including inside nested option mappings."""
    for key, value in list(event_dict.items()):
        event_dict[key] = REDACTED if _is_sensitive(key) else _redact(value)
    return event_dict


class ServiceName:
    """Processor stamping ``service.name`` on every event."""

    def __init__(self, name: str):
        self.name = name

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.name)
        return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    settings: RuntimeSettings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    service: str | None = None,
) -> None:
    """Configure structlog for the hosting process.

    Args:
        settings: Source of defaults (``get_settings()`` when omitted)
        level: Overrides ``settings.log_level``
        json_format: Overrides ``settings.json_logs``; None in both means JSON unless stdout is a tty
        service: Overrides ``settings.service_name``
    """
    settings = settings or get_settings()
    level = (level or ("DEBUG" if settings.debug else settings.log_level)).upper()
    if json_format is None:
        json_format = settings.json_logs
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_credentials,
        ServiceName(service or settings.service_name),
    ]
    if json_format:
        processors += [_ecs_field_names, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every later event of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


class LogContext:
    """Scoped ``bind_context``; fields are unbound on exit.

    Example:
        async with LogContext(execution_id="abc123", action_type="mysql"):
            logger.info("action.started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._context)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


__all__ = [
    "REDACTED",
    "SENSITIVE_KEYS",
    "redact_credentials",
    "ServiceName",
    "configure_logging",
    "get_logger",
    "bind_context",
    "LogContext",
]
