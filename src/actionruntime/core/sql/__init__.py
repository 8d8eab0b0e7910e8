"""SQL helpers shared by SQL connectors.

Modules
-------
lexer           Minimal tokenizer (comments, strings, words)
classifier      Leading-keyword statement kind (``is_select_sql``)
escaper         ``{{ key }}`` sites to dialect placeholders plus arguments
"""

from actionruntime.core.sql.classifier import SQLKind, classify_sql, is_select_sql
from actionruntime.core.sql.escaper import SQLEscaper, escape_sql

__all__ = [
    "SQLKind",
    "classify_sql",
    "is_select_sql",
    "SQLEscaper",
    "escape_sql",
]
