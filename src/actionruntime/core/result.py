"""Result envelope and row retrieval.

Every connector's ``run`` returns a :class:`RuntimeResult`: a success flag,
an ordered list of row mappings, and a free-form ``extra`` mapping. The
hosting service serializes it as ``{"success", "rows", "extra"}``.

Manifesto:
    Drivers disagree about how rows come back: tuples, records, text as
    bytes, UUIDs as 16 raw bytes, duplicate column names from joins.
    ``retrieve_rows()`` is the single place that normalizes them, so every
    SQL connector hands the builder the same shape.

Row retrieval rules:
    - column order follows the driver
    - duplicate names become ``name_0``, ``name_1``, ... (the first
      collision renames the original to ``name_0``)
    - byte sequences that are valid UTF-8 become ``str``
    - UUID values become canonical dashed text
    - results projected past the memory limit are rejected

Examples:
    >>> RuntimeResult.ok([{"id": 1}]).to_dict()
    {'success': True, 'rows': [{'id': 1}], 'extra': {}}
    >>> dedupe_column_names(["id", "name", "id"])
    ['id_0', 'name', 'id_1']

Tags:
    result-envelope, rows, normalization, action-runtime
"""

from __future__ import annotations

import sys
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from actionruntime.core.errors import ResultTooLargeError
from actionruntime.core.logging import get_logger
from actionruntime.core.settings import (
    DEFAULT_RESULT_MEMORY_CHECK_SAMPLE,
    DEFAULT_RESULT_MEMORY_LIMIT,
)

logger = get_logger(__name__)

# Initial row capacity before the first size sample is taken.
_INITIAL_ROW_CAPACITY = 10000


@dataclass
class RuntimeResult:
    """Uniform envelope returned by every connector's ``run``.

    Empty ``rows`` with ``success=True`` is a legal successful outcome.
    """

    success: bool = False
    rows: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def set_success(self) -> RuntimeResult:
        self.success = True
        return self

    @property
    def message(self) -> str | None:
        """Human-readable message carried in ``extra``, if any."""
        return self.extra.get("message")

    def to_dict(self) -> dict[str, Any]:
        """Wire format: ``{"success", "rows", "extra"}``."""
        return {"success": self.success, "rows": self.rows, "extra": self.extra}

    @classmethod
    def ok(cls, rows: list[dict[str, Any]] | None = None, **extra: Any) -> RuntimeResult:
        """Successful envelope."""
        return cls(success=True, rows=rows or [], extra=extra)

    @classmethod
    def fail(cls, message: str, **extra: Any) -> RuntimeResult:
        """Unsuccessful envelope with ``message`` surfaced in ``extra``."""
        return cls(success=False, rows=[], extra={"message": message, **extra})


@dataclass
class ValidateResult:
    """Verdict of validate-resource / validate-action."""

    valid: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectionResult:
    """Outcome of test-connection."""

    success: bool = False


@dataclass
class MetaInfoResult:
    """Schema description returned by get-meta-info.

    SQL connectors report ``table -> column -> {"data_type": ...}``.
    """

    success: bool = False
    schema: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# ROW RETRIEVAL
# =============================================================================


def _free_name(base: str, index: int, taken: set[str]) -> str:
    candidate = f"{base}_{index}"
    while candidate in taken:
        index += 1
        candidate = f"{base}_{index}"
    return candidate


def dedupe_column_names(names: Sequence[str]) -> list[str]:
    """Make column names unique with the ``_N`` suffix rule.

    The second occurrence of ``name`` renames the first to ``name_0`` and
    itself becomes ``name_1``; later occurrences continue ``name_2``, ...
    A suffix already used by another column is skipped.
    """
    renamed: list[str] = []
    taken: set[str] = set()
    hits: dict[str, int] = {}
    first_pos: dict[str, int] = {}

    for name in names:
        if name in hits:
            if hits[name] == 1:
                pos = first_pos[name]
                taken.discard(renamed[pos])
                renamed[pos] = _free_name(name, 0, taken)
                taken.add(renamed[pos])
            candidate = _free_name(name, hits[name], taken)
            hits[name] += 1
        else:
            hits[name] = 1
            first_pos[name] = len(renamed)
            candidate = name if name not in taken else _free_name(name, 1, taken)
        taken.add(candidate)
        renamed.append(candidate)

    return renamed


def normalize_value(value: Any, *, uuid_column: bool = False) -> Any:
    """Normalize a single driver value for the envelope.

    Byte sequences holding valid UTF-8 become text; other byte sequences are
    returned as ``bytes``. UUIDs, and 16-byte values of a UUID column,
    become canonical dashed text.
    """
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if uuid_column and len(raw) == 16:
            return str(uuid.UUID(bytes=raw))
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw
    return value


def _estimate_size(rows: list[dict[str, Any]]) -> int:
    total = sys.getsizeof(rows)
    for row in rows:
        total += sys.getsizeof(row)
        for key, value in row.items():
            total += sys.getsizeof(key) + sys.getsizeof(value)
    return total


def retrieve_rows(
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    *,
    uuid_columns: Iterable[str] = (),
    memory_limit: int = DEFAULT_RESULT_MEMORY_LIMIT,
    check_sample: int = DEFAULT_RESULT_MEMORY_CHECK_SAMPLE,
) -> list[dict[str, Any]]:
    """Convert driver rows into envelope row mappings.

    Args:
        columns: Column names in driver order
        rows: Iterable of value sequences aligned with ``columns``
        uuid_columns: Names of columns whose 16-byte values are UUIDs
        memory_limit: Maximum projected size of the result in bytes
        check_sample: Row count after which the size projection is computed

    Raises:
        ResultTooLargeError: If the result is projected past ``memory_limit``
    """
    names = dedupe_column_names(columns)
    uuid_names = set(uuid_columns)
    uuid_positions = {i for i, col in enumerate(columns) if col in uuid_names}
    capacity = _INITIAL_ROW_CAPACITY
    result: list[dict[str, Any]] = []

    for count, row in enumerate(rows, start=1):
        result.append(
            {
                name: normalize_value(value, uuid_column=i in uuid_positions)
                for i, (name, value) in enumerate(zip(names, row, strict=False))
            }
        )
        if count == check_sample:
            sample_size = max(_estimate_size(result), 1)
            capacity = (memory_limit // sample_size) * check_sample
        if count > capacity:
            logger.error("rows.limit_exceeded", rows=count, size=_estimate_size(result))
            raise ResultTooLargeError(memory_limit)

    return result


__all__ = [
    "RuntimeResult",
    "ValidateResult",
    "ConnectionResult",
    "MetaInfoResult",
    "dedupe_column_names",
    "normalize_value",
    "retrieve_rows",
]
