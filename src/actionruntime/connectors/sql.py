"""Shared flow for relational connectors.

Manifesto:
    Every SQL connector runs the same pipeline; only the driver calls
    differ. The shared base owns the pipeline; each driver subclass
    supplies the primitives (fetch rows, execute, ping, describe).

Pipeline::

    raw_action_options["query"] + ["context"]
        │
        ▼
    SQLEscaper(resource_type).escape(query, context, safe=mode == "sql-safe")
        │
        ▼
    is_select_sql(escaped) ──yes──► _fetch_rows ──► retrieve_rows ──► ok(rows)
        │
        no
        ▼
    _execute ──► ok(message="Affected N rows.")

    Every driver call runs under the invocation deadline.

Tags:
    sql, connector, prepared-statement, action-runtime
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, cast

from pydantic import ConfigDict, model_validator

from actionruntime.connectors.base import ConnectorOptions, DataConnector, context_of
from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import ActionRuntimeError, DriverError, OptionsValidationError
from actionruntime.core.logging import get_logger
from actionruntime.core.result import ConnectionResult, MetaInfoResult, RuntimeResult, retrieve_rows
from actionruntime.core.settings import get_settings
from actionruntime.core.sql import SQLEscaper, is_select_sql
from actionruntime.core.timeout import run_with_deadline

logger = get_logger(__name__)

MODE_GUI = "gui"
MODE_SQL = "sql"
MODE_SQL_SAFE = "sql-safe"


class SSLOptions(ConnectorOptions):
    """TLS settings shared by the relational resources."""

    ssl: bool = False
    server_cert: str = ""
    client_key: str = ""
    client_cert: str = ""

    @model_validator(mode="after")
    def _server_cert_required(self) -> SSLOptions:
        if self.ssl and not self.server_cert:
            raise ValueError("serverCert is required when ssl is enabled")
        return self


class SQLResource(ConnectorOptions):
    """Connection settings for a relational resource."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    host: str
    port: str
    database_name: str
    database_username: str
    database_password: str
    ssl: SSLOptions = SSLOptions()


class SQLQuery(ConnectorOptions):
    """Action options of a relational action."""

    mode: Literal["gui", "sql", "sql-safe"] = MODE_SQL_SAFE
    query: str = ""

    def is_safe_mode(self) -> bool:
        return self.mode == MODE_SQL_SAFE


@dataclass
class FetchedRows:
    """Column names and value rows as returned by a driver."""

    columns: list[str]
    rows: list[Sequence[Any]]
    uuid_columns: list[str] = field(default_factory=list)


class SQLConnector(DataConnector):
    """
    Base class for connectors speaking SQL through a driver.

    Instances are bound to a concrete resource type so that aliases
    (``mariadb``, ``neon``, ...) pick the right placeholder dialect.
    """

    resource_model = SQLResource
    action_model = SQLQuery
    driver_name: str = "sql"

    def __init__(self, resource_type: int):
        self.resource_type = ActionType(resource_type)
        self.action_type = self.resource_type.type_name
        self.escaper = SQLEscaper(self.resource_type)

    # -------------------------------------------------------------------------
    # Driver primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _fetch_rows(self, resource: SQLResource, sql: str, args: list[Any]) -> FetchedRows:
        """Run a row-returning statement."""

    @abstractmethod
    async def _execute(self, resource: SQLResource, sql: str, args: list[Any]) -> int:
        """Run a statement and return the affected row count."""

    @abstractmethod
    async def _ping(self, resource: SQLResource) -> None:
        """Open a connection and issue a trivial round trip."""

    @abstractmethod
    async def _describe(self, resource: SQLResource) -> dict[str, dict[str, dict[str, str]]]:
        """Return ``table -> column -> {"data_type": ...}``."""

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    def _resource(self, resource_options: Mapping[str, Any]) -> SQLResource:
        return cast(SQLResource, self.decode_resource(resource_options))

    async def test_connection(self, resource_options: Mapping[str, Any]) -> ConnectionResult:
        resource = self._resource(resource_options)
        try:
            await run_with_deadline(self._ping(resource), operation=f"{self.driver_name}.ping")
        except ActionRuntimeError:
            raise
        except Exception as e:
            raise DriverError(f"{self.action_type} connection failed: {e}", cause=e) from e
        return ConnectionResult(success=True)

    async def get_meta_info(self, resource_options: Mapping[str, Any]) -> MetaInfoResult:
        resource = self._resource(resource_options)
        try:
            schema = await run_with_deadline(self._describe(resource), operation=f"{self.driver_name}.describe")
        except ActionRuntimeError:
            raise
        except Exception as e:
            raise DriverError(f"{self.action_type} meta info failed: {e}", cause=e) from e
        return MetaInfoResult(success=True, schema=schema)

    async def run(
        self,
        resource_options: Mapping[str, Any],
        action_options: Mapping[str, Any],
        raw_action_options: Mapping[str, Any],
    ) -> RuntimeResult:
        resource = self._resource(resource_options)
        action = cast(SQLQuery, self.decode_action(action_options))

        raw_query = raw_action_options.get("query")
        if not isinstance(raw_query, str):
            raise OptionsValidationError("missing or invalid query in action options")
        context = context_of(raw_action_options)

        sql, args = self.escaper.escape(raw_query, context, safe=action.is_safe_mode())
        select = is_select_sql(sql)
        logger.debug(
            "sql.run",
            action_type=self.action_type,
            mode=action.mode,
            select=select,
            arg_count=len(args),
        )

        try:
            if select:
                fetched = await run_with_deadline(
                    self._fetch_rows(resource, sql, args), operation=f"{self.driver_name}.fetch"
                )
                settings = get_settings()
                rows = retrieve_rows(
                    fetched.columns,
                    fetched.rows,
                    uuid_columns=fetched.uuid_columns,
                    memory_limit=settings.result_memory_limit,
                    check_sample=settings.result_memory_check_sample,
                )
                return RuntimeResult.ok(rows)

            affected = await run_with_deadline(
                self._execute(resource, sql, args), operation=f"{self.driver_name}.execute"
            )
        except ActionRuntimeError:
            raise
        except Exception as e:
            raise DriverError(f"{self.action_type} query failed: {e}", cause=e) from e

        return RuntimeResult.ok(message=f"Affected {affected} rows.")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(resource_type={self.action_type!r})"


__all__ = [
    "MODE_GUI",
    "MODE_SQL",
    "MODE_SQL_SAFE",
    "SSLOptions",
    "SQLResource",
    "SQLQuery",
    "FetchedRows",
    "SQLConnector",
]
