"""Leading-keyword classification of SQL statements.

SQL adapters call :func:`is_select_sql` to choose between a row-returning
and a rows-affected execution primitive. Only the first non-ignored token
is examined; multi-statement input is classified by its first statement.
"""

from __future__ import annotations

from enum import Enum

from actionruntime.core.sql.lexer import Lexer, TokenKind


class SQLKind(str, Enum):
    """Statement kind decided by the leading keyword."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    OTHER = "other"


_KIND_BY_TOKEN = {
    TokenKind.SELECT: SQLKind.SELECT,
    TokenKind.INSERT: SQLKind.INSERT,
    TokenKind.UPDATE: SQLKind.UPDATE,
    TokenKind.DELETE: SQLKind.DELETE,
}


def classify_sql(sql: str) -> SQLKind:
    """Kind of ``sql`` by its first keyword, case-insensitively.

    Examples:
        >>> classify_sql("  -- c\\n /*c*/ SELECT 1")
        <SQLKind.SELECT: 'select'>
        >>> classify_sql("update t set x=1")
        <SQLKind.UPDATE: 'update'>
    """
    token = Lexer(sql).next_token()
    return _KIND_BY_TOKEN.get(token.kind, SQLKind.OTHER)


def is_select_sql(sql: str) -> bool:
    """True when the statement's leading keyword is ``select``."""
    return classify_sql(sql) is SQLKind.SELECT


__all__ = ["SQLKind", "classify_sql", "is_select_sql"]
