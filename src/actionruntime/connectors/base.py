"""Connector contract.

Manifesto:
    The dispatcher must never depend on a specific data source. Every
    connector implements the same capability set over free-form option
    mappings and returns the same envelope types.

    Options arrive as dynamic mappings decoded from JSON. Each connector
    declares typed pydantic records for its resource and action options;
    ``decode_options()`` turns a mapping into a record or raises
    ``OptionsValidationError``. No connector pokes at raw dicts with
    scattered type assertions.

Capabilities:
    validate_resource_options   decode resource options, no I/O
    validate_action_options     decode action options, no I/O
    test_connection             one short-lived round trip
    get_meta_info               describe the schema (tables, buckets, ...)
    run                         execute the action, return RuntimeResult

Tags:
    connector, adapter-pattern, abstract-base, pydantic, action-runtime
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from actionruntime.core.errors import OptionsValidationError, UnsupportedOperationError
from actionruntime.core.result import ConnectionResult, MetaInfoResult, RuntimeResult, ValidateResult

M = TypeVar("M", bound=BaseModel)


class ConnectorOptions(BaseModel):
    """Base for typed resource and action option records.

    Field names are snake_case in Python and camelCase on the wire
    (``baseURL`` style acronyms are declared with explicit aliases).
    Unknown keys are ignored. Null values are treated as absent, so the
    empty strings that content pre-processing turns into ``None`` fall back
    to field defaults.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data


def _format_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def decode_options(model: type[M], options: Mapping[str, Any] | None, *, kind: str = "options") -> M:
    """Decode a free-form mapping into ``model``.

    Raises:
        OptionsValidationError: If the mapping does not decode or violates
            a declared constraint
    """
    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise OptionsValidationError(f"{kind} must be a mapping, got {type(options).__name__}")
    try:
        return model.model_validate(dict(options))
    except ValidationError as e:
        errors = _format_errors(e)
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        raise OptionsValidationError(f"invalid {kind}: {summary}", errors=errors, cause=e) from e


def context_of(raw_action_options: Mapping[str, Any]) -> dict[str, Any]:
    """The ``context`` sub-mapping of raw action options.

    Raises:
        OptionsValidationError: If ``context`` is missing or not a mapping
    """
    context = raw_action_options.get("context")
    if not isinstance(context, Mapping):
        raise OptionsValidationError("missing or invalid context in action options")
    return dict(context)


class DataConnector(ABC):
    """
    Abstract base class for connectors.

    Subclasses set ``action_type`` and the two option models, and implement
    ``run``. Validation is inherited; ``test_connection`` and
    ``get_meta_info`` raise ``UnsupportedOperationError`` unless overridden.
    """

    action_type: ClassVar[str] = ""
    resource_model: ClassVar[type[ConnectorOptions] | None] = None
    action_model: ClassVar[type[ConnectorOptions]]

    def decode_resource(self, resource_options: Mapping[str, Any] | None) -> ConnectorOptions | None:
        if self.resource_model is None:
            return None
        return decode_options(self.resource_model, resource_options, kind="resource options")

    def decode_action(self, action_options: Mapping[str, Any] | None) -> ConnectorOptions:
        return decode_options(self.action_model, action_options, kind="action options")

    def validate_resource_options(self, resource_options: Mapping[str, Any] | None) -> ValidateResult:
        """Check that resource options decode. Raises ``OptionsValidationError``."""
        self.decode_resource(resource_options)
        return ValidateResult(valid=True)

    def validate_action_options(self, action_options: Mapping[str, Any] | None) -> ValidateResult:
        """Check that action options decode. Raises ``OptionsValidationError``."""
        self.decode_action(action_options)
        return ValidateResult(valid=True)

    async def test_connection(self, resource_options: Mapping[str, Any]) -> ConnectionResult:
        raise UnsupportedOperationError(self.action_type, "test connection")

    async def get_meta_info(self, resource_options: Mapping[str, Any]) -> MetaInfoResult:
        raise UnsupportedOperationError(self.action_type, "meta info")

    @abstractmethod
    async def run(
        self,
        resource_options: Mapping[str, Any],
        action_options: Mapping[str, Any],
        raw_action_options: Mapping[str, Any],
    ) -> RuntimeResult:
        """Execute the action.

        Args:
            resource_options: Saved resource configuration (may be empty)
            action_options: Content after context substitution
            raw_action_options: Unmodified content plus a ``context`` sub-mapping
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(action_type={self.action_type!r})"


__all__ = [
    "ConnectorOptions",
    "DataConnector",
    "context_of",
    "decode_options",
]
