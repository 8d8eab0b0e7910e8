"""Minimal SQL tokenizer.

Only enough lexing to find the leading keyword of a statement. Ignored
input is skipped exactly: whitespace, line terminators, a byte-order mark,
``#`` and ``--`` single-line comments, and ``/* ... */`` comments.

The lexer never raises on malformed input. An unterminated comment or
string runs to the end of the statement.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from enum import Enum
from typing import NamedTuple


class TokenKind(str, Enum):
    """Token categories produced by :class:`Lexer`."""

    EOF = "eof"
    WORD = "word"
    NUMBER = "number"
    STRING = "string"
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE = "create"
    OTHER = "other"


KEYWORDS: dict[str, TokenKind] = {
    "select": TokenKind.SELECT,
    "insert": TokenKind.INSERT,
    "update": TokenKind.UPDATE,
    "delete": TokenKind.DELETE,
    "create": TokenKind.CREATE,
}

_WORD = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")
_NUMBER = re.compile(r"0[xX][0-9a-fA-F]+|-?[0-9]+(?:\.[0-9]*)?(?:[eE][+\-]?[0-9]+)?|-?\.[0-9]+")
_STRING_ESCAPES = {'"': '"', "\\": "\\", "/": "/", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t"}

_WHITESPACE = frozenset("\t\v\f \ufeff")
_LINE_TERMINATORS = ("\r\n", "\n\r", "\r", "\n")


class Token(NamedTuple):
    kind: TokenKind
    text: str
    line: int


class Lexer:
    """Pull-based tokenizer over a single SQL string.

    Example:
        >>> lexer = Lexer("/* hint */ SELECT 1")
        >>> lexer.next_token().kind
        <TokenKind.SELECT: 'select'>
    """

    def __init__(self, sql: str):
        self._sql = sql
        self._pos = 0
        self._line = 1
        self._peeked: Token | None = None

    @property
    def line(self) -> int:
        """Current line number (1-based)."""
        return self._line

    @property
    def pos(self) -> int:
        """Offset of the next unread character."""
        return self._pos

    def look_ahead(self) -> Token:
        """Return the next token without consuming it."""
        if self._peeked is None:
            self._peeked = self._read_token()
        return self._peeked

    def next_token(self) -> Token:
        """Consume and return the next token."""
        if self._peeked is not None:
            token, self._peeked = self._peeked, None
            return token
        return self._read_token()

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            if token.kind is TokenKind.EOF:
                return
            yield token

    def _startswith(self, prefix: str) -> bool:
        return self._sql.startswith(prefix, self._pos)

    def _skip_to_line_end(self) -> None:
        while self._pos < len(self._sql) and self._sql[self._pos] not in "\r\n":
            self._pos += 1

    def _skip_ignored(self) -> None:
        sql = self._sql
        while self._pos < len(sql):
            for terminator in _LINE_TERMINATORS:
                if self._startswith(terminator):
                    self._pos += len(terminator)
                    self._line += 1
                    break
            else:
                if sql[self._pos] in _WHITESPACE:
                    self._pos += 1
                elif self._startswith("#") or self._startswith("--"):
                    self._skip_to_line_end()
                elif self._startswith("/*"):
                    end = sql.find("*/", self._pos + 2)
                    stop = len(sql) if end < 0 else end + 2
                    self._line += sql.count("\n", self._pos, stop)
                    self._pos = stop
                else:
                    return

    def _read_string(self) -> str:
        # opening quote already consumed
        sql = self._sql
        chars: list[str] = []
        while self._pos < len(sql):
            c = sql[self._pos]
            if c == '"':
                self._pos += 1
                break
            if c == "\\" and self._pos + 1 < len(sql):
                nxt = sql[self._pos + 1]
                chars.append(_STRING_ESCAPES.get(nxt, nxt))
                self._pos += 2
                continue
            if c == "\n":
                self._line += 1
            chars.append(c)
            self._pos += 1
        return "".join(chars)

    def _read_token(self) -> Token:
        self._skip_ignored()
        line = self._line
        if self._pos >= len(self._sql):
            return Token(TokenKind.EOF, "", line)

        c = self._sql[self._pos]
        if c == '"':
            self._pos += 1
            return Token(TokenKind.STRING, self._read_string(), line)

        match = _WORD.match(self._sql, self._pos)
        if match:
            text = match.group()
            self._pos = match.end()
            return Token(KEYWORDS.get(text.lower(), TokenKind.WORD), text, line)

        match = _NUMBER.match(self._sql, self._pos)
        if match:
            self._pos = match.end()
            return Token(TokenKind.NUMBER, match.group(), line)

        self._pos += 1
        return Token(TokenKind.OTHER, c, line)


__all__ = ["KEYWORDS", "Lexer", "Token", "TokenKind"]
