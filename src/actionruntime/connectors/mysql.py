"""MySQL-family connector.

Serves ``mysql``, ``mariadb`` and ``tidb`` with ``?`` placeholders.

mysql-connector-python is a blocking driver, so every round trip runs in a
worker thread via ``asyncio.to_thread`` under the invocation deadline.
Bound arguments go through a prepared cursor; statements without
arguments use a plain cursor so literal ``%`` characters are left alone.

Cancellation::

    deadline / cancel ──► KILL QUERY <connection_id>  (second connection)
                      ──► worker statement fails, its connection closes
                      ──► ActionTimeoutError / ActionCancelledError

    The driver's socket timeout is the invocation's remaining time, so a
    worker never outlives the deadline by more than a second even when the
    kill cannot be delivered.
"""

from __future__ import annotations

import asyncio
import math
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from actionruntime.connectors.sql import FetchedRows, SQLConnector, SQLResource
from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import DriverError
from actionruntime.core.logging import get_logger
from actionruntime.core.settings import DEFAULT_QUERY_AND_EXEC_TIMEOUT
from actionruntime.core.timeout import current_deadline

logger = get_logger(__name__)

T = TypeVar("T")

TABLES_SQL = "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES WHERE TABLE_SCHEMA = ?"
COLUMNS_SQL = (
    "SELECT COLUMN_NAME, DATA_TYPE FROM INFORMATION_SCHEMA.COLUMNS "
    "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?"
)
CONNECT_TIMEOUT_SECONDS = 30


def driver_timeout() -> int:
    """Socket timeout in whole seconds: the current deadline's remaining time, rounded up."""
    deadline = current_deadline()
    remaining = DEFAULT_QUERY_AND_EXEC_TIMEOUT if deadline is None else deadline.remaining()
    return max(1, math.ceil(remaining))


@contextmanager
def _ssl_files(resource: SQLResource) -> Iterator[dict[str, Any]]:
    """Connection keyword arguments for TLS, backed by temporary PEM files."""
    if not resource.ssl.ssl:
        yield {}
        return

    with tempfile.TemporaryDirectory() as tmp:
        kwargs: dict[str, Any] = {"ssl_ca": os.path.join(tmp, "ca.pem"), "ssl_verify_cert": True}
        pems = {"ssl_ca": resource.ssl.server_cert}
        if resource.ssl.client_cert and resource.ssl.client_key:
            kwargs["ssl_cert"] = os.path.join(tmp, "client.pem")
            kwargs["ssl_key"] = os.path.join(tmp, "client.key")
            pems["ssl_cert"] = resource.ssl.client_cert
            pems["ssl_key"] = resource.ssl.client_key
        for key, content in pems.items():
            with open(kwargs[key], "w") as f:
                f.write(content)
        yield kwargs


@contextmanager
def connect(resource: SQLResource, timeout: int = CONNECT_TIMEOUT_SECONDS) -> Iterator[Any]:
    """Open a blocking connection and close it on exit.

    ``timeout`` bounds the connect and every socket read or write.
    """
    try:
        import mysql.connector
    except ImportError:
        raise DriverError(
            "mysql-connector-python is required for MySQL. "
            "Install with: pip install mysql-connector-python"
        ) from None

    with _ssl_files(resource) as ssl_kwargs:
        conn = mysql.connector.connect(
            host=resource.host,
            port=int(resource.port),
            user=resource.database_username,
            password=resource.database_password,
            database=resource.database_name,
            connection_timeout=timeout,
            **ssl_kwargs,
        )
    try:
        yield conn
    finally:
        conn.close()


class MySQLSession:
    """
    One blocking connection, opened in a worker thread.

    The server-side connection id is recorded once connected so that
    another thread can interrupt the running statement.
    """

    def __init__(self, resource: SQLResource, timeout: int = CONNECT_TIMEOUT_SECONDS):
        self.resource = resource
        self.timeout = timeout
        self.connection_id: int | None = None

    @contextmanager
    def connect(self) -> Iterator[Any]:
        with connect(self.resource, self.timeout) as conn:
            self.connection_id = conn.connection_id
            yield conn

    def kill_query(self) -> None:
        """Interrupt the statement running on this session's connection."""
        if self.connection_id is None:
            return
        with connect(self.resource) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(f"KILL QUERY {int(self.connection_id)}")
            finally:
                cursor.close()


def _cursor(conn: Any, args: list[Any]) -> Any:
    return conn.cursor(prepared=True) if args else conn.cursor()


def fetch_rows(session: MySQLSession, sql: str, args: list[Any]) -> FetchedRows:
    with session.connect() as conn:
        cursor = _cursor(conn, args)
        try:
            cursor.execute(sql, tuple(args))
            columns = [desc[0] for desc in cursor.description or ()]
            rows = cursor.fetchall() if cursor.description else []
        finally:
            cursor.close()
    return FetchedRows(columns=columns, rows=list(rows))


def execute(session: MySQLSession, sql: str, args: list[Any]) -> int:
    with session.connect() as conn:
        cursor = _cursor(conn, args)
        try:
            cursor.execute(sql, tuple(args))
            affected = max(cursor.rowcount, 0)
        finally:
            cursor.close()
        conn.commit()
    return affected


def ping(session: MySQLSession) -> None:
    with session.connect() as conn:
        conn.ping(reconnect=False)


def describe(session: MySQLSession) -> dict[str, dict[str, dict[str, str]]]:
    schema: dict[str, dict[str, dict[str, str]]] = {}
    database = session.resource.database_name
    with session.connect() as conn:
        cursor = conn.cursor(prepared=True)
        try:
            cursor.execute(TABLES_SQL, (database,))
            tables = [row[0] for row in cursor.fetchall()]
            for table in tables:
                cursor.execute(COLUMNS_SQL, (database, table))
                schema[table] = {row[0]: {"data_type": row[1]} for row in cursor.fetchall()}
        finally:
            cursor.close()
    return schema


class MySQLConnector(SQLConnector):
    """Connector for the MySQL family."""

    driver_name = "mysql"

    def __init__(self, resource_type: int = ActionType.MYSQL):
        super().__init__(resource_type)

    async def _in_thread(self, resource: SQLResource, work: Callable[..., T], *args: Any) -> T:
        """Run ``work`` in a worker thread; on cancellation kill its statement and wait for it."""
        session = MySQLSession(resource, driver_timeout())
        worker = asyncio.ensure_future(asyncio.to_thread(work, session, *args))
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            await self._release(session, worker)
            raise

    async def _release(self, session: MySQLSession, worker: asyncio.Future[Any]) -> None:
        try:
            await asyncio.to_thread(session.kill_query)
        except Exception as e:
            logger.warning("mysql.kill_failed", connection_id=session.connection_id, error=str(e))
        await asyncio.gather(worker, return_exceptions=True)
        logger.debug("mysql.released", connection_id=session.connection_id)

    async def _fetch_rows(self, resource: SQLResource, sql: str, args: list[Any]) -> FetchedRows:
        return await self._in_thread(resource, fetch_rows, sql, args)

    async def _execute(self, resource: SQLResource, sql: str, args: list[Any]) -> int:
        return await self._in_thread(resource, execute, sql, args)

    async def _ping(self, resource: SQLResource) -> None:
        await self._in_thread(resource, ping)

    async def _describe(self, resource: SQLResource) -> dict[str, dict[str, dict[str, str]]]:
        return await self._in_thread(resource, describe)


__all__ = [
    "MySQLConnector",
    "MySQLSession",
    "driver_timeout",
    "connect",
    "fetch_rows",
    "execute",
    "ping",
    "describe",
]
