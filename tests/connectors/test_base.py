"""Tests for actionruntime.connectors.base -- option decoding and the contract."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import Field

from actionruntime.connectors.base import ConnectorOptions, DataConnector, context_of, decode_options
from actionruntime.core.errors import OptionsValidationError, UnsupportedOperationError
from actionruntime.core.result import RuntimeResult


class EchoResource(ConnectorOptions):
    base_url: str = Field(alias="baseURL", min_length=1)
    retry_count: int = 3


class EchoAction(ConnectorOptions):
    message: str = "hello"


class EchoConnector(DataConnector):
    action_type = "echo"
    resource_model = EchoResource
    action_model = EchoAction

    async def run(self, resource_options, action_options, raw_action_options) -> RuntimeResult:
        action = self.decode_action(action_options)
        return RuntimeResult.ok([{"message": action.message}])


class TestDecodeOptions:
    def test_camel_case_wire_names(self) -> None:
        resource = decode_options(EchoResource, {"baseURL": "https://x", "retryCount": 5})
        assert resource.base_url == "https://x"
        assert resource.retry_count == 5

    def test_snake_case_accepted(self) -> None:
        assert decode_options(EchoResource, {"base_url": "https://x"}).base_url == "https://x"

    def test_unknown_keys_ignored(self) -> None:
        assert decode_options(EchoAction, {"message": "m", "other": 1}).message == "m"

    def test_nulls_fall_back_to_defaults(self) -> None:
        assert decode_options(EchoAction, {"message": None}).message == "hello"

    def test_none_is_empty_mapping(self) -> None:
        assert decode_options(EchoAction, None).message == "hello"

    def test_missing_required_field(self) -> None:
        with pytest.raises(OptionsValidationError) as exc_info:
            decode_options(EchoResource, {}, kind="resource options")
        error = exc_info.value
        assert error.message.startswith("invalid resource options: baseURL")
        assert error.errors[0]["field"] == "baseURL"

    def test_constraint_violation(self) -> None:
        with pytest.raises(OptionsValidationError):
            decode_options(EchoResource, {"baseURL": ""})

    def test_non_mapping(self) -> None:
        with pytest.raises(OptionsValidationError, match="must be a mapping"):
            decode_options(EchoAction, ["not", "a", "mapping"])  # type: ignore[arg-type]


class TestContextOf:
    def test_returns_copy(self) -> None:
        raw: dict[str, Any] = {"query": "q", "context": {"a": 1}}
        context = context_of(raw)
        context["b"] = 2
        assert raw["context"] == {"a": 1}

    @pytest.mark.parametrize("raw", [{}, {"context": None}, {"context": "a=1"}])
    def test_missing_or_invalid(self, raw: dict[str, Any]) -> None:
        with pytest.raises(OptionsValidationError):
            context_of(raw)


class TestDataConnector:
    def test_validate_resource_options(self) -> None:
        assert EchoConnector().validate_resource_options({"baseURL": "https://x"}).valid

    def test_validate_resource_options_failure(self) -> None:
        with pytest.raises(OptionsValidationError):
            EchoConnector().validate_resource_options({"baseURL": 12})

    def test_validate_action_options(self) -> None:
        assert EchoConnector().validate_action_options({}).valid

    def test_decode_returns_declared_models(self) -> None:
        connector = EchoConnector()
        assert type(connector.decode_resource({"baseURL": "https://x"})) is EchoResource
        assert type(connector.decode_action({"message": "hi"})) is EchoAction

    def test_decode_action_failure(self) -> None:
        with pytest.raises(OptionsValidationError):
            EchoConnector().decode_action({"message": ["not", "text"]})

    @pytest.mark.asyncio
    async def test_unsupported_capabilities(self) -> None:
        connector = EchoConnector()
        with pytest.raises(UnsupportedOperationError):
            await connector.test_connection({})
        with pytest.raises(UnsupportedOperationError):
            await connector.get_meta_info({})

    @pytest.mark.asyncio
    async def test_run(self) -> None:
        result = await EchoConnector().run({}, {"message": "hi"}, {"context": {}})
        assert result.rows == [{"message": "hi"}]

    def test_repr(self) -> None:
        assert repr(EchoConnector()) == "EchoConnector(action_type='echo')"
