"""Runtime settings for the action runtime.

Deadlines, result limits, and the source-manager endpoint are deployment
concerns. ``RuntimeSettings`` reads them from ``ACTIONRUNTIME_*`` environment
variables or a ``.env`` file and validates them at startup.

Features:
    - **RuntimeSettings:** query deadline, result memory limit, source manager
    - **env_prefix:** ``ACTIONRUNTIME_``
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from actionruntime.core.settings import get_settings
    >>> get_settings().query_timeout_seconds
    30.0

Tags:
    settings, configuration, pydantic, environment, action-runtime
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_QUERY_AND_EXEC_TIMEOUT = 30.0
DEFAULT_RESULT_MEMORY_LIMIT = 20 * 1024 * 1024
DEFAULT_RESULT_MEMORY_CHECK_SAMPLE = 100


class RuntimeSettings(BaseSettings):
    """Settings shared by the dispatcher and the bundled connectors.

    Fields
    ──────
    log_level                  : Structlog log level
    json_logs                  : JSON renderer (None = auto-detect tty)
    service_name               : ``service.name`` stamped on every log event
    query_timeout_seconds      : Default wall-clock deadline per invocation
    result_memory_limit        : Max bytes of rows retrieved from a driver
    result_memory_check_sample : Rows sampled before the size estimate is checked
    source_manager_url         : Base URL of the resource source-of-truth service
    source_manager_token       : Request token sent to the source manager
    http_timeout_seconds       : Transport timeout for outbound HTTP calls
    """

    model_config = SettingsConfigDict(
        env_prefix="ACTIONRUNTIME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "action-runtime"

    # ── Execution ────────────────────────────────────────────────
    query_timeout_seconds: float = Field(
        default=DEFAULT_QUERY_AND_EXEC_TIMEOUT,
        gt=0,
        description="Default deadline applied to every adapter invocation",
    )
    result_memory_limit: int = Field(default=DEFAULT_RESULT_MEMORY_LIMIT, gt=0)
    result_memory_check_sample: int = Field(default=DEFAULT_RESULT_MEMORY_CHECK_SAMPLE, gt=0)

    # ── Source manager ───────────────────────────────────────────
    source_manager_url: str = "http://127.0.0.1:8008"
    source_manager_token: str = ""
    http_timeout_seconds: float = Field(default=DEFAULT_QUERY_AND_EXEC_TIMEOUT, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Process-wide settings, loaded once."""
    return RuntimeSettings()


__all__ = [
    "DEFAULT_QUERY_AND_EXEC_TIMEOUT",
    "DEFAULT_RESULT_MEMORY_LIMIT",
    "DEFAULT_RESULT_MEMORY_CHECK_SAMPLE",
    "RuntimeSettings",
    "get_settings",
]
