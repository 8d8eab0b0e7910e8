"""Placeholder dialects for parameterized SQL.

Safe-mode SQL replaces every bound ``{{ key }}`` site with a driver
placeholder. Which placeholder depends on the target database, and is
decided by the resource's action type id, never by the SQL text.

Architecture::

    ┌──────────────────────────────┐   ┌──────────────────────────────┐
    │ IndexedDialect               │   │ QmarkDialect                 │
    │ $1, $2, $3                   │   │ ?, ?, ?                      │
    │ postgresql, supabasedb,      │   │ everything else (mysql,      │
    │ neon, hydra                  │   │ mariadb, tidb, mssql, ...)   │
    └──────────────────────────────┘   └──────────────────────────────┘

Examples:
    >>> from actionruntime.connectors.types import ActionType
    >>> get_dialect(ActionType.POSTGRESQL).placeholder(2)
    '$2'
    >>> get_dialect(ActionType.MYSQL).placeholders(3)
    '?, ?, ?'

Tags:
    sql, dialect, placeholders, action-runtime
"""

from __future__ import annotations

from typing import Protocol

from actionruntime.connectors.types import ActionType


class Dialect(Protocol):
    """Placeholder syntax of a SQL driver."""

    @property
    def name(self) -> str:
        """Dialect identifier."""
        ...

    def placeholder(self, index: int) -> str:
        """Placeholder for the 1-based ``index``-th argument."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholders for ``count`` arguments."""
        ...


class IndexedDialect:
    """``$N`` placeholders, as spoken by the PostgreSQL wire protocol."""

    @property
    def name(self) -> str:
        return "indexed"

    def placeholder(self, index: int) -> str:
        return f"${index}"

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(1, count + 1))


class QmarkDialect:
    """``?`` placeholders."""

    @property
    def name(self) -> str:
        return "qmark"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" * count)


INDEXED_PLACEHOLDER_TYPES: frozenset[ActionType] = frozenset(
    {
        ActionType.POSTGRESQL,
        ActionType.SUPABASEDB,
        ActionType.NEON,
        ActionType.HYDRA,
    }
)

_INDEXED = IndexedDialect()
_QMARK = QmarkDialect()


def get_dialect(resource_type: int) -> Dialect:
    """Dialect for an action type id.

    Args:
        resource_type: Numeric action type id (``ActionType`` or plain int)

    Returns:
        :class:`IndexedDialect` for the PostgreSQL family, else :class:`QmarkDialect`
    """
    if resource_type in INDEXED_PLACEHOLDER_TYPES:
        return _INDEXED
    return _QMARK


__all__ = [
    "Dialect",
    "IndexedDialect",
    "QmarkDialect",
    "INDEXED_PLACEHOLDER_TYPES",
    "get_dialect",
]
