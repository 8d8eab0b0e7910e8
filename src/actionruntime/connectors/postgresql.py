"""PostgreSQL-family connector.

Serves ``postgresql``, ``supabasedb``, ``neon`` and ``hydra``; all of them
speak the PostgreSQL wire protocol and use ``$N`` placeholders.

Uses asyncpg. Each call opens a short-lived connection and closes it in
``finally``; connection pooling is left to the hosting service.
"""

from __future__ import annotations

import os
import ssl
import tempfile
from typing import Any

from actionruntime.connectors.sql import FetchedRows, SQLConnector, SQLResource
from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import DriverError

TABLES_SQL = "SELECT table_name FROM information_schema.tables WHERE table_schema = $1"
COLUMNS_SQL = (
    "SELECT column_name, data_type FROM information_schema.columns "
    "WHERE table_schema = $1 AND table_name = $2"
)
META_SCHEMA = "public"


def build_ssl_context(resource: SQLResource) -> ssl.SSLContext | None:
    """TLS context trusting the resource's server certificate.

    A client certificate and key are loaded when both are present.
    """
    if not resource.ssl.ssl:
        return None
    try:
        context = ssl.create_default_context(cadata=resource.ssl.server_cert)
    except ssl.SSLError as e:
        raise DriverError(f"{resource.host}: SSL/TLS connection failed: invalid server certificate", cause=e) from e

    if resource.ssl.client_cert and resource.ssl.client_key:
        # load_cert_chain only reads from files
        with tempfile.TemporaryDirectory() as tmp:
            cert_path = os.path.join(tmp, "client.crt")
            key_path = os.path.join(tmp, "client.key")
            with open(cert_path, "w") as f:
                f.write(resource.ssl.client_cert)
            with open(key_path, "w") as f:
                f.write(resource.ssl.client_key)
            context.load_cert_chain(cert_path, key_path)
    return context


def parse_command_status(status: str) -> int:
    """Affected row count from a command tag such as ``UPDATE 3`` or ``INSERT 0 1``."""
    last = status.rsplit(" ", 1)[-1] if status else ""
    return int(last) if last.isdigit() else 0


class PostgreSQLConnector(SQLConnector):
    """
    Connector for the PostgreSQL family.

    Usage:
        connector = PostgreSQLConnector(ActionType.NEON)
        result = await connector.run(resource, action, raw_action)
    """

    driver_name = "postgresql"

    def __init__(self, resource_type: int = ActionType.POSTGRESQL):
        super().__init__(resource_type)

    async def _connect(self, resource: SQLResource) -> Any:
        try:
            import asyncpg
        except ImportError:
            raise DriverError(
                "asyncpg is required for PostgreSQL. Install with: pip install asyncpg"
            ) from None

        return await asyncpg.connect(
            host=resource.host,
            port=int(resource.port),
            user=resource.database_username,
            password=resource.database_password,
            database=resource.database_name,
            ssl=build_ssl_context(resource),
        )

    async def _fetch_rows(self, resource: SQLResource, sql: str, args: list[Any]) -> FetchedRows:
        conn = await self._connect(resource)
        try:
            statement = await conn.prepare(sql)
            columns = [attr.name for attr in statement.get_attributes()]
            records = await statement.fetch(*args)
        finally:
            await conn.close()
        return FetchedRows(columns=columns, rows=[tuple(record) for record in records])

    async def _execute(self, resource: SQLResource, sql: str, args: list[Any]) -> int:
        conn = await self._connect(resource)
        try:
            status = await conn.execute(sql, *args)
        finally:
            await conn.close()
        return parse_command_status(status)

    async def _ping(self, resource: SQLResource) -> None:
        conn = await self._connect(resource)
        try:
            await conn.fetchval("SELECT 1")
        finally:
            await conn.close()

    async def _describe(self, resource: SQLResource) -> dict[str, dict[str, dict[str, str]]]:
        conn = await self._connect(resource)
        try:
            schema: dict[str, dict[str, dict[str, str]]] = {}
            for table in await conn.fetch(TABLES_SQL, META_SCHEMA):
                columns = await conn.fetch(COLUMNS_SQL, META_SCHEMA, table[0])
                schema[table[0]] = {column[0]: {"data_type": column[1]} for column in columns}
        finally:
            await conn.close()
        return schema


__all__ = [
    "PostgreSQLConnector",
    "build_ssl_context",
    "parse_command_status",
]
