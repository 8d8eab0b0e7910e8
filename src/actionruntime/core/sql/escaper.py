"""Templated SQL to prepared statement conversion.

Safe mode turns every bound ``{{ key }}`` site into the dialect's
placeholder and collects the bound values, in textual order, as the
statement's arguments. Raw mode inlines the values as text instead.

Examples:
    >>> from actionruntime.connectors.types import ActionType
    >>> SQLEscaper(ActionType.POSTGRESQL).escape(
    ...     "select * from t where a = {{x}} and b = {{y}}", {"x": 1, "y": "q"}, safe=True
    ... )
    ('select * from t where a = $1 and b = $2', [1, 'q'])

Guardrails:
    ❌ DON'T: Format user values into SQL strings in safe mode
    ✅ DO: Pass ``args`` to the driver alongside the escaped statement
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from actionruntime.core.dialect import Dialect, get_dialect
from actionruntime.core.logging import get_logger
from actionruntime.core.template import assemble_template, scan_template

logger = get_logger(__name__)


class SQLEscaper:
    """Escaper bound to the placeholder dialect of one resource type."""

    def __init__(self, resource_type: int):
        self.resource_type = resource_type
        self.dialect: Dialect = get_dialect(resource_type)

    def escape(
        self,
        sql: str,
        context: Mapping[str, Any],
        safe: bool = True,
    ) -> tuple[str, list[Any]]:
        """Escape templated SQL.

        Args:
            sql: SQL text with ``{{ key }}`` sites
            context: Bound values; keys are whitespace-trimmed before lookup
            safe: Emit placeholders and arguments when True, inline values otherwise

        Returns:
            ``(escaped_sql, args)``. ``args`` is always empty in raw mode.
            Unbound sites are kept verbatim and contribute no argument.
        """
        lookup = {str(key).strip(): value for key, value in context.items()}

        if not safe:
            return assemble_template(sql, lookup), []

        parts: list[str] = []
        args: list[Any] = []
        for part in scan_template(sql):
            if isinstance(part, str):
                parts.append(part)
            elif part.key in lookup:
                args.append(lookup[part.key])
                parts.append(self.dialect.placeholder(len(args)))
            else:
                parts.append(part.raw)

        logger.debug("sql.escaped", dialect=self.dialect.name, arg_count=len(args))
        return "".join(parts), args


def escape_sql(
    resource_type: int,
    sql: str,
    context: Mapping[str, Any],
    safe: bool = True,
) -> tuple[str, list[Any]]:
    """Shortcut for ``SQLEscaper(resource_type).escape(sql, context, safe)``."""
    return SQLEscaper(resource_type).escape(sql, context, safe)


__all__ = ["SQLEscaper", "escape_sql"]
