"""Tests for actionruntime.core.result -- envelope and row retrieval."""

from __future__ import annotations

import uuid

import pytest

from actionruntime.core.errors import ResultTooLargeError
from actionruntime.core.result import (
    ConnectionResult,
    MetaInfoResult,
    RuntimeResult,
    ValidateResult,
    dedupe_column_names,
    normalize_value,
    retrieve_rows,
)


class TestRuntimeResult:
    def test_defaults(self) -> None:
        result = RuntimeResult()
        assert result.success is False
        assert result.rows == []
        assert result.extra == {}

    def test_ok(self) -> None:
        result = RuntimeResult.ok([{"id": 1}], message="done")
        assert result.to_dict() == {"success": True, "rows": [{"id": 1}], "extra": {"message": "done"}}

    def test_ok_with_empty_rows_is_success(self) -> None:
        assert RuntimeResult.ok().success is True

    def test_fail(self) -> None:
        result = RuntimeResult.fail("boom")
        assert result.success is False
        assert result.message == "boom"
        assert result.rows == []

    def test_set_success_is_fluent(self) -> None:
        result = RuntimeResult().set_success()
        assert result.success is True

    def test_instances_do_not_share_containers(self) -> None:
        a, b = RuntimeResult(), RuntimeResult()
        a.rows.append({"x": 1})
        assert b.rows == []

    def test_companion_records(self) -> None:
        assert ValidateResult().valid is False
        assert ConnectionResult(success=True).success is True
        assert MetaInfoResult().schema == {}


class TestDedupeColumnNames:
    def test_unique_names_unchanged(self) -> None:
        assert dedupe_column_names(["id", "name"]) == ["id", "name"]

    def test_first_collision_renames_original(self) -> None:
        assert dedupe_column_names(["id", "name", "id"]) == ["id_0", "name", "id_1"]

    def test_three_way_collision(self) -> None:
        assert dedupe_column_names(["id", "id", "id"]) == ["id_0", "id_1", "id_2"]

    def test_suffix_already_taken_is_skipped(self) -> None:
        names = dedupe_column_names(["id_1", "id", "id"])
        assert len(set(names)) == 3
        assert names[0] == "id_1"

    def test_empty(self) -> None:
        assert dedupe_column_names([]) == []


class TestNormalizeValue:
    def test_utf8_bytes_become_text(self) -> None:
        assert normalize_value(b"caf\xc3\xa9") == "café"

    def test_bytearray_and_memoryview(self) -> None:
        assert normalize_value(bytearray(b"abc")) == "abc"
        assert normalize_value(memoryview(b"abc")) == "abc"

    def test_invalid_utf8_stays_bytes(self) -> None:
        assert normalize_value(b"\xff\xfe") == b"\xff\xfe"

    def test_uuid_object(self) -> None:
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert normalize_value(value) == "12345678-1234-5678-1234-567812345678"

    def test_uuid_column_raw_bytes(self) -> None:
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert normalize_value(value.bytes, uuid_column=True) == str(value)

    def test_other_values_untouched(self) -> None:
        assert normalize_value(5) == 5
        assert normalize_value(None) is None


class TestRetrieveRows:
    def test_rows_keyed_by_deduped_columns(self) -> None:
        rows = retrieve_rows(["id", "name", "id"], [(1, b"ann", 10), (2, b"bob", 20)])
        assert rows == [
            {"id_0": 1, "name": "ann", "id_1": 10},
            {"id_0": 2, "name": "bob", "id_1": 20},
        ]

    def test_uuid_columns(self) -> None:
        value = uuid.uuid4()
        rows = retrieve_rows(["uid"], [(value.bytes,)], uuid_columns=["uid"])
        assert rows == [{"uid": str(value)}]

    def test_empty_result(self) -> None:
        assert retrieve_rows(["id"], []) == []

    def test_memory_limit_enforced(self) -> None:
        rows = ((i, "x" * 200) for i in range(1000))
        with pytest.raises(ResultTooLargeError):
            retrieve_rows(["id", "payload"], rows, memory_limit=4096, check_sample=10)

    def test_under_limit_passes(self) -> None:
        rows = [(i,) for i in range(50)]
        assert len(retrieve_rows(["id"], rows, check_sample=10)) == 50

    def test_limit_message(self) -> None:
        assert "exceeds 20MiB" in ResultTooLargeError(20 * 1024 * 1024).message
