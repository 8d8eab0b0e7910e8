"""Tests for actionruntime.core.settings and actionruntime.core.logging."""

from __future__ import annotations

import json

import pytest
import structlog
from pydantic import ValidationError

from actionruntime.core.logging import (
    REDACTED,
    LogContext,
    bind_context,
    configure_logging,
    get_logger,
    redact_credentials,
)
from actionruntime.core.settings import (
    DEFAULT_QUERY_AND_EXEC_TIMEOUT,
    DEFAULT_RESULT_MEMORY_LIMIT,
    RuntimeSettings,
    get_settings,
)


class TestRuntimeSettings:
    def test_defaults(self) -> None:
        settings = RuntimeSettings(_env_file=None)
        assert settings.query_timeout_seconds == DEFAULT_QUERY_AND_EXEC_TIMEOUT == 30.0
        assert settings.result_memory_limit == DEFAULT_RESULT_MEMORY_LIMIT
        assert settings.source_manager_url == "http://127.0.0.1:8008"

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACTIONRUNTIME_QUERY_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("ACTIONRUNTIME_SOURCE_MANAGER_TOKEN", "tok")
        settings = RuntimeSettings(_env_file=None)
        assert settings.query_timeout_seconds == 5.0
        assert settings.source_manager_token == "tok"

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError):
            RuntimeSettings(_env_file=None, query_timeout_seconds=0)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestLogging:
    @pytest.fixture(autouse=True)
    def _reset_structlog(self):
        yield
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()

    def test_configure_console(self) -> None:
        configure_logging(level="DEBUG", json_format=False)
        get_logger(__name__).debug("test.console")

    def test_configure_from_settings(self, capsys: pytest.CaptureFixture[str]) -> None:
        settings = RuntimeSettings(_env_file=None, log_level="WARNING", json_logs=True, service_name="builder-runtime")
        configure_logging(settings)
        logger = get_logger(__name__)
        logger.info("test.hidden")
        logger.warning("test.shown")

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["event"] == "test.shown"
        assert event["service.name"] == "builder-runtime"
        assert "@timestamp" in event

    def test_debug_setting_lowers_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(RuntimeSettings(_env_file=None, debug=True, json_logs=True))
        get_logger(__name__).debug("test.debug")
        assert json.loads(capsys.readouterr().out)["service.name"] == "action-runtime"

    def test_credentials_are_redacted(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO", json_format=True)
        get_logger(__name__).info(
            "test.redact",
            authorization="Bearer abc",
            options={"host": "db", "databasePassword": "s3cret", "auth": [{"token": "t"}]},
        )
        event = json.loads(capsys.readouterr().out)
        assert event["authorization"] == REDACTED
        assert event["options"] == {"host": "db", "databasePassword": REDACTED, "auth": [{"token": REDACTED}]}

    def test_redact_leaves_plain_fields(self) -> None:
        event = {"event": "x", "client_key": "k", "rows": 3}
        assert redact_credentials(None, "info", event) == {"event": "x", "client_key": REDACTED, "rows": 3}

    def test_configure_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO", json_format=True, service="runtime-tests")
        get_logger(__name__).info("test.json", rows=3)
        out = capsys.readouterr().out
        assert '"event": "test.json"' in out
        assert '"service.name": "runtime-tests"' in out
        assert '"log.level": "info"' in out

    @pytest.mark.asyncio
    async def test_log_context_scopes_bindings(self) -> None:
        structlog.contextvars.clear_contextvars()
        async with LogContext(execution_id="abc", action_type="mysql"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"execution_id": "abc", "action_type": "mysql"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_sync_log_context_keeps_outer_bindings(self) -> None:
        structlog.contextvars.clear_contextvars()
        bind_context(service_run="r1")
        with LogContext(execution_id="abc"):
            assert structlog.contextvars.get_contextvars()["execution_id"] == "abc"
        assert structlog.contextvars.get_contextvars() == {"service_run": "r1"}
        structlog.contextvars.clear_contextvars()
